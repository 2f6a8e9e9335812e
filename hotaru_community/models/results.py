"""Result and state models for board operations."""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Sequence, TypeVar

from .post import Label, SortOrder

PAGE_SIZE = 30

T = TypeVar("T")


class FetchStatus(str, Enum):
    """Lifecycle of the post list fetch."""

    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"


@dataclass(frozen=True)
class FetchState:
    """Current fetch status, with the failure message in the error state."""

    status: FetchStatus = FetchStatus.IDLE
    message: Optional[str] = None

    @classmethod
    def idle(cls) -> "FetchState":
        return cls(FetchStatus.IDLE)

    @classmethod
    def loading(cls) -> "FetchState":
        return cls(FetchStatus.LOADING)

    @classmethod
    def error(cls, message: str) -> "FetchState":
        return cls(FetchStatus.ERROR, message)

    @property
    def is_error(self) -> bool:
        return self.status == FetchStatus.ERROR


@dataclass(frozen=True)
class FetchParams:
    """Query sent to ``GET /api/posts``."""

    label: Optional[Label] = None
    page: int = 1
    limit: int = PAGE_SIZE
    search: Optional[str] = None
    sort: SortOrder = SortOrder.NEWEST

    def with_changes(self, **changes) -> "FetchParams":
        return replace(self, **changes)


@dataclass(frozen=True)
class PageWindow:
    """The visible slice of a result set: page, limit, total, total_pages."""

    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def compute(cls, total: int, page: int, limit: int = PAGE_SIZE) -> "PageWindow":
        """Build the window for ``total`` items, clamping ``page`` into range.

        Args:
            total: Number of items in the filtered result set
            page: Requested 1-based page
            limit: Page size

        Returns:
            PageWindow with ``1 <= page <= total_pages``
        """
        if limit < 1:
            raise ValueError(f"Page size must be positive, got {limit}")
        total = max(0, total)
        total_pages = max(1, math.ceil(total / limit))
        page = min(max(1, page), total_pages)
        return cls(page=page, limit=limit, total=total, total_pages=total_pages)

    @property
    def start(self) -> int:
        """Index of the first item on this page."""
        return (self.page - 1) * self.limit

    @property
    def end(self) -> int:
        """Index one past the last item on this page."""
        return min(self.start + self.limit, self.total)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    def slice(self, items: Sequence[T]) -> List[T]:
        """Cut this page out of a locally held result set."""
        return list(items[self.start:self.end])

    def describe(self) -> str:
        """Range summary in the board's own wording, e.g. ``31〜60件 / 全65件``."""
        if self.total == 0:
            return "0件"
        return f"{self.start + 1}〜{self.end}件 / 全{self.total}件"
