"""Privileged board actions: admin posts and replies, relabel and delete."""

import asyncio
import logging
from typing import List, Optional

from ..api.admin import AdminAPIClient
from ..models.post import Label, TargetType
from .composer import MAX_ADMIN_CONTENT_LENGTH, validate_draft
from .errors import ValidationError
from .reactions import ReactionCoordinator
from .store import PostStore

logger = logging.getLogger(__name__)


class Moderator:
    """Runs admin actions and brings the board back in line afterwards.

    AuthExpiredError is left to propagate; the surrounding application decides
    what an expired session means.
    """

    def __init__(
        self,
        admin_api: AdminAPIClient,
        store: PostStore,
        coordinator: ReactionCoordinator,
    ):
        self.admin_api = admin_api
        self.store = store
        self.coordinator = coordinator

    async def delete(self, target_type: TargetType, target_id: int) -> None:
        """Delete a post or reply and forget this device's reaction to it.

        Deleting a post removes its replies too, so reactions to the replies
        held on the current page are forgotten as well.
        """
        target_type = TargetType(target_type)
        reply_ids = []
        if target_type == TargetType.POST:
            comment = self.store.find_comment(target_id)
            if comment is not None:
                reply_ids = [reply.id for reply in comment.replies]

        await asyncio.to_thread(self.admin_api.delete, target_type, target_id)

        self.coordinator.forget(target_type, target_id)
        for reply_id in reply_ids:
            self.coordinator.forget(TargetType.REPLY, reply_id)
        logger.debug(
            f"Forgot local reactions for {target_type.value} {target_id} "
            f"and {len(reply_ids)} replies"
        )
        await self.store.refresh()

    async def post(
        self, username: str, content: str, images: Optional[List[str]] = None
    ) -> None:
        """Publish an announcement under the admin label.

        Raises:
            ValidationError: If the draft is invalid (nothing is sent)
        """
        images = list(images or [])
        errors = validate_draft(username, content, len(images), MAX_ADMIN_CONTENT_LENGTH)
        if errors:
            raise ValidationError(errors)

        await asyncio.to_thread(self.admin_api.create_admin_post, username, content, images)
        await self.store.refresh()

    async def reply(
        self, target_id: int, target_type: TargetType, username: str, content: str
    ) -> None:
        """Answer a post or reply under the admin label."""
        errors = validate_draft(username, content, 0, MAX_ADMIN_CONTENT_LENGTH)
        if errors:
            raise ValidationError(errors)

        await asyncio.to_thread(
            self.admin_api.create_admin_reply, target_id, TargetType(target_type), username, content
        )
        await self.store.refresh()

    async def change_label(self, post_id: int, label: Label) -> Label:
        """Relabel a post and reload the list (the post may leave the current filter)."""
        confirmed = await asyncio.to_thread(self.admin_api.update_label, post_id, label)
        await self.store.refresh()
        return confirmed
