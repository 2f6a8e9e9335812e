"""Privileged board operations, authenticated by the admin session cookie."""

import logging
from typing import Any, Dict, List, Optional

from ..models.post import Label, TargetType
from .base import AuthExpiredError, target_path
from .client import EngagementAPIClient

logger = logging.getLogger(__name__)


class AdminAPIClient(EngagementAPIClient):
    """Board API client for the administrative surface.

    Login and logout happen elsewhere; this client only carries an existing
    session token. Any 401 surfaces as AuthExpiredError.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        admin_token: str = "",
        timeout: Optional[float] = None,
    ):
        """Initialize the admin client.

        Args:
            base_url: Server root
            admin_token: Session token issued by the admin login
            timeout: Per-request timeout in seconds (None waits indefinitely)
        """
        if not admin_token:
            raise ValueError("admin_token is required for privileged operations")
        super().__init__(base_url=base_url, timeout=timeout, admin_token=admin_token)

    def check_session(self) -> bool:
        """Ask the server whether the session is still valid.

        Returns:
            True if the session is valid, False if it has expired

        Raises:
            TransportError: If the check itself fails for another reason
        """
        try:
            self._request("GET", "/api/admin/check")
        except AuthExpiredError:
            logger.warning("Admin session has expired")
            return False
        return True

    def update_label(self, post_id: int, label: Label) -> Label:
        """Change a post's label.

        Args:
            post_id: Post to relabel
            label: New label, any member of the closed set

        Returns:
            The label as confirmed by the server
        """
        label = Label(label)
        response = self._request(
            "PATCH", target_path(TargetType.POST, post_id, "label"), body={"label": label.value}
        )
        try:
            confirmed = Label(response.json().get("label", label.value))
        except ValueError:
            confirmed = label
        logger.info(f"Post {post_id} relabelled to {confirmed.value}")
        return confirmed

    def delete(self, target_type: TargetType, target_id: int) -> None:
        """Delete a post (with its replies) or a single reply."""
        self._request("DELETE", target_path(target_type, target_id))
        logger.info(f"Deleted {TargetType(target_type).value} {target_id}")

    def create_admin_post(self, username: str, content: str, images: List[str]) -> None:
        """Create a post carrying the admin label."""
        self.create_post(username, content, Label.ADMIN, images)

    def create_admin_reply(
        self, target_id: int, target_type: TargetType, username: str, content: str
    ) -> None:
        """Reply with the admin label attached."""
        body: Dict[str, Any] = {
            "username": username,
            "content": content,
            "label": Label.ADMIN.value,
        }
        self._request("POST", target_path(target_type, target_id, "replies"), body=body)
        logger.info(f"Created admin reply to {TargetType(target_type).value} {target_id}")
