"""Search, sort and paging over the board list."""

import logging
from typing import List, Optional, Sequence

from ..models.comment import Comment
from ..models.post import Label, SortOrder
from ..models.results import PAGE_SIZE, FetchParams, PageWindow
from .store import PostStore

logger = logging.getLogger(__name__)


def search_comments(comments: Sequence[Comment], query: str) -> List[Comment]:
    """Keep posts where the query occurs in a name or body, the post's or any reply's.

    Matching is case-insensitive; a blank query keeps everything.
    """
    needle = query.strip().lower()
    if not needle:
        return list(comments)

    matches = []
    for comment in comments:
        texts = [comment.username, comment.content]
        for reply in comment.replies:
            texts.extend([reply.username, reply.content])
        if any(needle in (text or "").lower() for text in texts):
            matches.append(comment)
    return matches


def sort_comments(comments: Sequence[Comment], order: SortOrder) -> List[Comment]:
    """Order posts for display.

    newest/oldest sort by creation time; good/bad sort by that count,
    highest first, with newer posts first among equal counts.
    """
    order = SortOrder(order)
    if order == SortOrder.NEWEST:
        return sorted(comments, key=lambda c: c.created_at, reverse=True)
    if order == SortOrder.OLDEST:
        return sorted(comments, key=lambda c: c.created_at)
    if order == SortOrder.GOOD:
        return sorted(comments, key=lambda c: (c.good_count, c.created_at), reverse=True)
    return sorted(comments, key=lambda c: (c.bad_count, c.created_at), reverse=True)


class ListView:
    """Filter, search, sort and page state for the board list.

    Label and search are sent to the server; changing either, or the sort
    order, returns to page 1 and fetches again.
    """

    def __init__(self, store: PostStore, limit: int = PAGE_SIZE):
        self.store = store
        self.limit = limit
        self.label: Optional[Label] = None
        self.search = ""
        self.sort = SortOrder.NEWEST

    @property
    def page(self) -> int:
        """Current page, shared with the store so every re-fetch keeps them in step."""
        return self.store.params.page

    @page.setter
    def page(self, value: int) -> None:
        self.store.params = self.store.params.with_changes(page=max(1, value))

    @property
    def window(self) -> PageWindow:
        return PageWindow.compute(self.store.total, self.page, self.limit)

    def params(self) -> FetchParams:
        return FetchParams(
            label=self.label,
            page=self.page,
            limit=self.limit,
            search=self.search.strip() or None,
            sort=self.sort,
        )

    async def load(self) -> bool:
        """Fetch the current page; the store steps back if it no longer exists.

        Returns:
            True if the store now holds the requested (or clamped) page
        """
        params = self.params()
        logger.debug(
            f"Loading page {params.page} (label={params.label.value if params.label else 'all'}, "
            f"search={params.search!r}, sort={params.sort.value})"
        )
        return await self.store.refresh(params)

    async def set_label(self, label: Optional[Label]) -> bool:
        self.label = Label(label) if label else None
        self.page = 1
        return await self.load()

    async def set_search(self, text: str) -> bool:
        self.search = text
        self.page = 1
        return await self.load()

    async def set_sort(self, order: SortOrder) -> bool:
        self.sort = SortOrder(order)
        self.page = 1
        return await self.load()

    async def go_to_page(self, page: int) -> bool:
        self.page = max(1, page)
        return await self.load()

    async def next_page(self) -> bool:
        return await self.go_to_page(self.page + 1)

    async def previous_page(self) -> bool:
        return await self.go_to_page(self.page - 1)

    def visible(self) -> List[Comment]:
        """The held page with the search text and sort order applied."""
        return sort_comments(search_comments(self.store.comments, self.search), self.sort)
