"""How a post's replies are laid out: one flat list with textual attribution."""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from ..models.comment import Comment, ReplyView
from ..models.post import TargetType
from .errors import ValidationError
from .store import PostStore

JST = timezone(timedelta(hours=9), "JST")

_URL_RE = re.compile(r"(https?://\S+)")


def split_links(text: str) -> List[Tuple[str, bool]]:
    """Split body text into (segment, is_link) pairs.

    "see https://x.jp now" -> [("see ", False), ("https://x.jp", True), (" now", False)]
    """
    segments = []
    for part in _URL_RE.split(text):
        if part:
            segments.append((part, bool(_URL_RE.fullmatch(part))))
    return segments


def format_time(moment: datetime) -> str:
    """Board timestamp: HH:MM in Japan time."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(JST).strftime("%H:%M")


def resolve_reply_target(
    comment: Comment, target_type: TargetType, target_id: int
) -> Optional[str]:
    """Check a reply target belongs to this post and find who is being answered.

    Args:
        comment: Post the reply will be listed under
        target_type: POST to answer the post itself, REPLY to answer a reply
        target_id: Id of the post or reply being answered

    Returns:
        The answered reply's author (recorded as parent_username), or None for
        a direct reply to the post

    Raises:
        ValidationError: If the target is not this post or one of its replies
    """
    if TargetType(target_type) == TargetType.POST:
        if target_id != comment.id:
            raise ValidationError([f"Post {target_id} is not post {comment.id}"])
        return None

    reply = comment.find_reply(target_id)
    if reply is None:
        raise ValidationError([f"Reply {target_id} does not belong to post {comment.id}"])
    return reply.username


@dataclass(frozen=True)
class ReplyRow:
    """One displayed reply. Depth is 1 for answers to another reply, never more."""

    reply: ReplyView
    depth: int
    reply_to: Optional[str]


class ThreadView:
    """Display state for one post's reply list.

    Keyed by post id rather than holding a Comment, so the state survives the
    page being replaced by a re-fetch.
    """

    def __init__(self, store: PostStore, post_id: int):
        self.store = store
        self.post_id = post_id
        self.expanded = False
        self.replying_to: Optional[Tuple[TargetType, int]] = None

    @property
    def comment(self) -> Optional[Comment]:
        return self.store.find_comment(self.post_id)

    @property
    def reply_count(self) -> int:
        comment = self.comment
        return len(comment.replies) if comment else 0

    def toggle(self) -> bool:
        self.expanded = not self.expanded
        return self.expanded

    def start_reply(self, target_type: TargetType, target_id: int) -> None:
        """Open the reply form under the post or under one of its replies.

        Opening it again on the same target closes it.
        """
        comment = self.comment
        if comment is None:
            raise ValidationError([f"Post {self.post_id} is not on the current page"])
        resolve_reply_target(comment, target_type, target_id)

        target = (TargetType(target_type), target_id)
        self.replying_to = None if self.replying_to == target else target

    def cancel_reply(self) -> None:
        self.replying_to = None

    def rows(self) -> List[ReplyRow]:
        """Replies in server order, flat, with "reply to" cues; empty when collapsed."""
        comment = self.comment
        if comment is None or not self.expanded:
            return []
        return [
            ReplyRow(
                reply=reply,
                depth=1 if reply.parent_reply_id is not None else 0,
                reply_to=reply.reply_to,
            )
            for reply in comment.replies
        ]
