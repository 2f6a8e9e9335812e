"""HTTP adapter for the community board API."""

import logging
from typing import Any, Dict, List, Optional

import requests

from ..models.post import Label, PaginatedPosts, Polarity, SortOrder, TargetType
from ..models.results import PAGE_SIZE
from .base import AuthExpiredError, EngagementAPI, TransportError, target_path

logger = logging.getLogger(__name__)


class EngagementAPIClient(EngagementAPI):
    """Board API client speaking JSON over HTTP."""

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        timeout: Optional[float] = None,
        admin_token: Optional[str] = None,
    ):
        """Initialize the board API client.

        Args:
            base_url: Server root; paths such as /api/posts are appended to it
            timeout: Per-request timeout in seconds (None waits indefinitely)
            admin_token: Privileged session token, sent as the admin_token cookie
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.admin_token = admin_token
        self.headers = {
            "Accept": "application/json",
        }

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        """Send one request and map every failure onto TransportError.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            params: Query parameters
            body: JSON body

        Returns:
            The successful response

        Raises:
            AuthExpiredError: On a 401 response
            TransportError: On any other non-2xx response or network failure
        """
        url = f"{self.base_url}{path}"
        cookies = {"admin_token": self.admin_token} if self.admin_token else None

        try:
            response = requests.request(
                method,
                url,
                params=params,
                json=body,
                headers=self.headers,
                cookies=cookies,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            detail = e.response.text.strip() if e.response is not None else ""
            message = detail or str(e)
            logger.error(f"Board API {method} {path} failed with {status}: {message}")
            if status == 401:
                raise AuthExpiredError(message, status=status) from e
            raise TransportError(message, status=status) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Board API {method} {path} request failed: {e}")
            raise TransportError(f"Request failed: {e}") from e

    def list_posts(
        self,
        label: Optional[Label] = None,
        page: int = 1,
        limit: int = PAGE_SIZE,
        search: Optional[str] = None,
        sort: SortOrder = SortOrder.NEWEST,
    ) -> PaginatedPosts:
        params: Dict[str, Any] = {
            "include": "replies",
            "page": page,
            "limit": limit,
            "sort": SortOrder(sort).value,
        }
        if label:
            params["label"] = Label(label).value
        if search:
            params["search"] = search

        response = self._request("GET", "/api/posts", params=params)

        try:
            result = PaginatedPosts.model_validate(response.json())
        except ValueError as e:
            # Covers both undecodable JSON and pydantic validation failures
            logger.error(f"Malformed posts response: {e}")
            raise TransportError(
                f"Malformed posts response: {e}", status=response.status_code
            ) from e

        logger.debug(
            f"Fetched page {result.page}/{result.total_pages} "
            f"({len(result.posts)} posts, {result.total} total)"
        )
        return result

    def create_post(
        self, username: str, content: str, label: Label, images: List[str]
    ) -> None:
        body = {
            "username": username,
            "content": content,
            "label": Label(label).value,
            "image_urls": list(images),
        }
        self._request("POST", "/api/posts", body=body)
        logger.info(f"Created post by {username} ({len(images)} images)")

    def create_reply(
        self,
        target_id: int,
        target_type: TargetType,
        username: str,
        content: str,
        images: Optional[List[str]] = None,
    ) -> None:
        body: Dict[str, Any] = {"username": username, "content": content}
        if images:
            body["image_urls"] = list(images)
        self._request("POST", target_path(target_type, target_id, "replies"), body=body)
        logger.info(f"Created reply by {username} to {TargetType(target_type).value} {target_id}")

    def create_reaction(
        self, target_id: int, target_type: TargetType, polarity: Polarity
    ) -> None:
        body = {"reaction_type": Polarity(polarity).value}
        self._request("POST", target_path(target_type, target_id, "reaction"), body=body)
