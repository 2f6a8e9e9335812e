"""Composing posts and replies: validation, image limits, submission."""

import asyncio
import base64
import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from ..api.base import EngagementAPI, TransportError
from ..models.post import MAX_IMAGES, Label, TargetType, composer_labels
from .errors import ValidationError
from .store import PostStore
from .thread import ThreadView, resolve_reply_target

logger = logging.getLogger(__name__)

MAX_USERNAME_LENGTH = 30
MAX_CONTENT_LENGTH = 150
MAX_ADMIN_CONTENT_LENGTH = 1000


def validate_draft(
    username: str,
    content: str,
    image_count: int = 0,
    max_content: int = MAX_CONTENT_LENGTH,
) -> List[str]:
    """Check a post or reply draft.

    Args:
        username: Author display name
        content: Body text
        image_count: Number of attached images
        max_content: Body length limit

    Returns:
        One message per problem; empty when the draft may be submitted
    """
    errors = []
    if not username.strip():
        errors.append("Name is required")
    elif len(username) > MAX_USERNAME_LENGTH:
        errors.append(
            f"Name must be at most {MAX_USERNAME_LENGTH} characters (currently {len(username)})"
        )

    if not content.strip():
        errors.append("Content is required")
    elif len(content) > max_content:
        errors.append(
            f"Content must be at most {max_content} characters (currently {len(content)})"
        )

    if image_count > MAX_IMAGES:
        errors.append(f"At most {MAX_IMAGES} images can be attached (currently {image_count})")
    return errors


def encode_image(path: Path) -> str:
    """Read an image file into a data URL payload for upload."""
    path = Path(path)
    mime_type, _ = mimetypes.guess_type(path.name)
    payload = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime_type or 'application/octet-stream'};base64,{payload}"


class ImageSelection:
    """Images picked for a draft, capped at four."""

    def __init__(self, limit: int = MAX_IMAGES):
        self.limit = limit
        self.images: List[str] = []
        self.warning: Optional[str] = None

    @property
    def free_slots(self) -> int:
        return max(0, self.limit - len(self.images))

    def add(self, images: Iterable[str]) -> Optional[str]:
        """Append as many images as there are free slots and drop the rest.

        Returns:
            A warning when some images were dropped, else None
        """
        chosen = list(images)
        accepted = chosen[:self.free_slots]
        dropped = len(chosen) - len(accepted)
        self.images.extend(accepted)

        self.warning = None
        if dropped:
            self.warning = (
                f"Up to {self.limit} images can be attached; "
                f"{len(accepted)} added, {dropped} dropped"
            )
            logger.warning(self.warning)
        return self.warning

    def remove(self, index: int) -> None:
        del self.images[index]
        self.warning = None

    def clear(self) -> None:
        self.images = []
        self.warning = None

    def __len__(self) -> int:
        return len(self.images)


class PostComposer:
    """Form state for a new top-level post."""

    def __init__(self, api: EngagementAPI, store: PostStore):
        self.api = api
        self.store = store
        self.username = ""
        self.content = ""
        self.label = Label.LOCAL_SIGHTING
        self.images = ImageSelection()
        self.is_submitting = False
        self.error: Optional[str] = None

    def choose_label(self, label: Label) -> None:
        label = Label(label)
        if label not in composer_labels():
            raise ValidationError([f"Label {label.value} cannot be chosen for a post"])
        self.label = label

    def validate(self) -> List[str]:
        return validate_draft(self.username, self.content, len(self.images))

    def reset(self) -> None:
        self.username = ""
        self.content = ""
        self.label = Label.LOCAL_SIGHTING
        self.images.clear()
        self.error = None

    async def submit(self) -> bool:
        """Send the post, then reload the current list.

        The new post is not inserted locally; it shows up once the re-fetch
        returns it. On failure the form keeps everything typed.

        Returns:
            True if the server accepted the post

        Raises:
            ValidationError: If the draft is invalid (nothing is sent)
        """
        if self.is_submitting:
            logger.debug("Post submission already in progress")
            return False

        errors = self.validate()
        if errors:
            raise ValidationError(errors)

        self.is_submitting = True
        self.error = None
        try:
            await asyncio.to_thread(
                self.api.create_post,
                self.username,
                self.content,
                self.label,
                list(self.images.images),
            )
        except TransportError as e:
            logger.error(f"Failed to create post: {e}")
            self.error = e.message
            return False
        finally:
            self.is_submitting = False

        self.reset()
        await self.store.refresh()
        return True


@dataclass
class ReplyDraft:
    """A reply ready to send. parent_username is set when answering a reply."""

    post_id: int
    target_type: TargetType
    target_id: int
    username: str
    content: str
    images: List[str] = field(default_factory=list)
    parent_username: Optional[str] = None


class ReplyComposer:
    """Form state for replying within one post's thread."""

    def __init__(self, api: EngagementAPI, store: PostStore, thread: ThreadView):
        self.api = api
        self.store = store
        self.thread = thread
        self.username = ""
        self.content = ""
        self.images = ImageSelection()
        self.is_submitting = False
        self.error: Optional[str] = None

    def build_draft(self, target_type: TargetType, target_id: int) -> ReplyDraft:
        """Validate the form against a target.

        Raises:
            ValidationError: If the form or the target is invalid
        """
        errors = validate_draft(self.username, self.content, len(self.images))
        if errors:
            raise ValidationError(errors)

        comment = self.thread.comment
        if comment is None:
            raise ValidationError([f"Post {self.thread.post_id} is not on the current page"])
        parent_username = resolve_reply_target(comment, target_type, target_id)

        return ReplyDraft(
            post_id=comment.id,
            target_type=TargetType(target_type),
            target_id=target_id,
            username=self.username,
            content=self.content,
            images=list(self.images.images),
            parent_username=parent_username,
        )

    async def submit(self, target_type: TargetType, target_id: int) -> bool:
        """Send a reply to the post or to one of its replies, then reload.

        Answers to a reply land in the same flat list as every other reply of
        the post. A direct reply to the post opens the reply list so the new
        reply is visible after the reload.

        Returns:
            True if the server accepted the reply

        Raises:
            ValidationError: If the form or target is invalid (nothing is sent)
        """
        if self.is_submitting:
            logger.debug("Reply submission already in progress")
            return False

        draft = self.build_draft(target_type, target_id)

        self.is_submitting = True
        self.error = None
        try:
            await asyncio.to_thread(
                self.api.create_reply,
                draft.target_id,
                draft.target_type,
                draft.username,
                draft.content,
                draft.images or None,
            )
        except TransportError as e:
            logger.error(f"Failed to create reply: {e}")
            self.error = e.message
            return False
        finally:
            self.is_submitting = False

        if draft.parent_username:
            logger.info(f"Reply on post {draft.post_id} answers {draft.parent_username}")

        self.username = ""
        self.content = ""
        self.images.clear()
        self.thread.cancel_reply()
        if draft.target_type == TargetType.POST:
            self.thread.expanded = True

        await self.store.refresh()
        return True
