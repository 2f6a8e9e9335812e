"""Read-side view models: posts and replies enriched with local reaction state."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .post import Label, Polarity, Post, Reply


@dataclass
class ReplyView:
    """A reply as displayed: server counts plus this device's reaction."""

    id: int
    post_id: int
    username: str
    content: str
    created_at: datetime
    parent_reply_id: Optional[int] = None
    label: Optional[Label] = None
    image_urls: List[str] = field(default_factory=list)
    good_count: int = 0
    bad_count: int = 0
    parent_username: Optional[str] = None
    my_reaction: Optional[Polarity] = None

    @property
    def reply_to(self) -> Optional[str]:
        """Author this reply answers, only when it targets another reply.

        The server also fills ``parent_username`` with the post author for
        direct replies, which is not shown as an attribution.
        """
        if self.parent_reply_id is None:
            return None
        return self.parent_username

    @classmethod
    def from_reply(cls, reply: Reply, my_reaction: Optional[Polarity] = None) -> "ReplyView":
        return cls(
            id=reply.id,
            post_id=reply.post_id,
            username=reply.username,
            content=reply.content,
            created_at=reply.created_at,
            parent_reply_id=reply.parent_reply_id,
            label=reply.label,
            image_urls=list(reply.image_urls),
            good_count=reply.good_count,
            bad_count=reply.bad_count,
            parent_username=reply.parent_username,
            my_reaction=my_reaction,
        )


@dataclass
class Comment:
    """A post as displayed, with its replies as one flat list."""

    id: int
    username: str
    content: str
    label: Label
    created_at: datetime
    image_urls: List[str] = field(default_factory=list)
    good_count: int = 0
    bad_count: int = 0
    my_reaction: Optional[Polarity] = None
    replies: List[ReplyView] = field(default_factory=list)

    @classmethod
    def from_post(
        cls,
        post: Post,
        my_reaction: Optional[Polarity],
        replies: List[ReplyView],
    ) -> "Comment":
        return cls(
            id=post.id,
            username=post.username,
            content=post.content,
            label=post.label,
            created_at=post.created_at,
            image_urls=list(post.image_urls),
            good_count=post.good_count,
            bad_count=post.bad_count,
            my_reaction=my_reaction,
            replies=replies,
        )

    def find_reply(self, reply_id: int) -> Optional[ReplyView]:
        for reply in self.replies:
            if reply.id == reply_id:
                return reply
        return None
