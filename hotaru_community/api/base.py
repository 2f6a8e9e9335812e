"""Base classes for the community board API."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models.post import Label, PaginatedPosts, Polarity, SortOrder, TargetType
from ..models.results import PAGE_SIZE


class TransportError(Exception):
    """Raised when a board API call does not succeed.

    Attributes:
        message: Human-readable failure, usually the server's error text
        status: HTTP status code, or None when no response was received
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"HTTP {self.status}: {self.message}"


class AuthExpiredError(TransportError):
    """Raised on a 401: the privileged session is gone.

    Not handled inside the board; the surrounding application owns the session.
    """

    pass


def target_path(target_type: TargetType, target_id: int, action: Optional[str] = None) -> str:
    """Build the post- or reply-scoped endpoint for a target.

    - (POST, 5, "replies") -> "/api/posts/5/replies"
    - (REPLY, 5, "reaction") -> "/api/replies/5/reaction"
    - (REPLY, 5) -> "/api/replies/5"
    """
    collection = "posts" if TargetType(target_type) == TargetType.POST else "replies"
    path = f"/api/{collection}/{target_id}"
    if action:
        path = f"{path}/{action}"
    return path


class EngagementAPI(ABC):
    """Operations the board needs from the server."""

    @abstractmethod
    def list_posts(
        self,
        label: Optional[Label] = None,
        page: int = 1,
        limit: int = PAGE_SIZE,
        search: Optional[str] = None,
        sort: SortOrder = SortOrder.NEWEST,
    ) -> PaginatedPosts:
        """Get one page of posts with their replies.

        Args:
            label: Only posts carrying this label (all labels when None)
            page: 1-based page number
            limit: Page size
            search: Free-text filter over names and bodies
            sort: Ordering applied by the server

        Returns:
            PaginatedPosts with posts, total, page, limit and total_pages

        Raises:
            TransportError: If the request fails
        """
        pass

    @abstractmethod
    def create_post(
        self, username: str, content: str, label: Label, images: List[str]
    ) -> None:
        """Create a top-level post.

        Raises:
            TransportError: If the request fails
        """
        pass

    @abstractmethod
    def create_reply(
        self,
        target_id: int,
        target_type: TargetType,
        username: str,
        content: str,
        images: Optional[List[str]] = None,
    ) -> None:
        """Reply to a post, or to a reply of a post.

        Raises:
            TransportError: If the request fails
        """
        pass

    @abstractmethod
    def create_reaction(
        self, target_id: int, target_type: TargetType, polarity: Polarity
    ) -> None:
        """Record a good/bad reaction on a post or reply.

        Raises:
            TransportError: If the request fails
        """
        pass
