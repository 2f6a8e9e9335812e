"""Wire models for the community board API."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from dateutil import parser
from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_IMAGES = 4


class Label(str, Enum):
    """Closed set of post labels, as stored by the board server."""

    LOCAL_SIGHTING = "現地情報"
    OTHER = "その他"
    ADMIN = "管理者"


def composer_labels() -> List[Label]:
    """Labels a public composer may pick. Admin is set by the privileged path only."""
    return [Label.LOCAL_SIGHTING, Label.OTHER]


class TargetType(str, Enum):
    """Kind of item a reply or reaction is addressed to."""

    POST = "post"
    REPLY = "reply"


class Polarity(str, Enum):
    """Sign of a reaction."""

    GOOD = "good"
    BAD = "bad"


class SortOrder(str, Enum):
    """List orderings understood by both the server and the list pipeline."""

    NEWEST = "newest"
    OLDEST = "oldest"
    GOOD = "good"
    BAD = "bad"


def parse_timestamp(value: Any) -> datetime:
    """Parse a server timestamp into an aware datetime.

    Args:
        value: RFC 3339 string (as emitted by the server) or datetime

    Returns:
        Timezone-aware datetime; naive values are taken as UTC

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        timestamp = value
    elif isinstance(value, str):
        try:
            timestamp = parser.isoparse(value)
        except (ValueError, TypeError):
            timestamp = parser.parse(value)
    else:
        raise ValueError(f"Unsupported timestamp value: {value!r}")

    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp


class Reply(BaseModel):
    """A reply to a post, or to another reply of the same post."""

    id: int
    post_id: int
    parent_reply_id: Optional[int] = None
    username: str
    content: str
    label: Optional[Label] = None
    image_urls: List[str] = Field(default_factory=list, max_length=MAX_IMAGES)
    created_at: datetime
    good_count: int = Field(0, ge=0)
    bad_count: int = Field(0, ge=0)
    parent_username: Optional[str] = None

    @field_validator("image_urls", mode="before")
    @classmethod
    def null_images_as_empty(cls, v):
        """The server sends null for items without images."""
        return v or []

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, v):
        return parse_timestamp(v)


class Post(BaseModel):
    """A top-level board post with its replies."""

    id: int
    username: str
    content: str
    label: Label
    image_urls: List[str] = Field(default_factory=list, max_length=MAX_IMAGES)
    created_at: datetime
    good_count: int = Field(0, ge=0)
    bad_count: int = Field(0, ge=0)
    replies: List[Reply] = Field(default_factory=list)

    @field_validator("image_urls", "replies", mode="before")
    @classmethod
    def null_list_as_empty(cls, v):
        return v or []

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, v):
        return parse_timestamp(v)


class PaginatedPosts(BaseModel):
    """One page of posts as returned by ``GET /api/posts``."""

    model_config = ConfigDict(populate_by_name=True)

    posts: List[Post] = Field(default_factory=list)
    total: int = Field(0, ge=0)
    page: int = Field(1, ge=1)
    limit: int = Field(30, ge=1)
    total_pages: int = Field(1, ge=0, alias="totalPages")

    @field_validator("posts", mode="before")
    @classmethod
    def null_posts_as_empty(cls, v):
        return v or []
