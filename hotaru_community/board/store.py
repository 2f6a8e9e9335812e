"""Holds the current page of posts, merged with this device's reactions."""

import asyncio
import logging
from typing import List, Optional, Union

from ..api.base import AuthExpiredError, EngagementAPI, TransportError
from ..db.ledger import ReactionLedger
from ..models.comment import Comment, ReplyView
from ..models.post import PaginatedPosts, Polarity, Post, TargetType
from ..models.results import PAGE_SIZE, FetchParams, FetchState

logger = logging.getLogger(__name__)


class PostStore:
    """Owns the in-memory page of Comments and its fetch lifecycle."""

    def __init__(
        self,
        api: EngagementAPI,
        ledger: ReactionLedger,
        page_size: int = PAGE_SIZE,
    ) -> None:
        """Initialize the store.

        Args:
            api: Board API used for listing
            ledger: Local reaction ledger, read to derive my_reaction
            page_size: Posts per page
        """
        self.api = api
        self.ledger = ledger
        self.params = FetchParams(limit=page_size)
        self.comments: List[Comment] = []
        self.total = 0
        self.total_pages = 1
        self.page = 1
        self.state = FetchState.idle()

    async def refresh(self, params: Optional[FetchParams] = None) -> bool:
        """Fetch a page and replace the held page with it.

        The new page is fully merged before it is swapped in with a single
        assignment, so readers never see a partially built list. When fetches
        overlap, whichever completes last wins.

        If the requested page lies past the last page of the result (a delete
        or a new filter shrank the list), the last page is fetched instead
        and becomes the current page.

        Args:
            params: Query to fetch; the previous query is reused when None

        Returns:
            True if the page was replaced, False if the fetch failed

        Raises:
            AuthExpiredError: If the server rejected the privileged session
        """
        if params is not None:
            self.params = params
        requested = self.params
        self.state = FetchState.loading()

        try:
            result = await self._fetch(requested)
            last_page = max(1, result.total_pages)
            if requested.page > last_page:
                logger.info(
                    f"Page {requested.page} is past the last page ({last_page}), "
                    f"showing page {last_page}"
                )
                requested = requested.with_changes(page=last_page)
                self.params = requested
                result = await self._fetch(requested)
        except AuthExpiredError as e:
            self.state = FetchState.error(e.message)
            raise
        except TransportError as e:
            logger.error(f"Failed to fetch posts: {e}")
            self.state = FetchState.error(e.message)
            return False

        self._replace(result)
        self.state = FetchState.idle()
        logger.info(
            f"Loaded page {self.page}/{self.total_pages}: "
            f"{len(self.comments)} posts of {self.total}"
        )
        return True

    async def _fetch(self, params: FetchParams) -> PaginatedPosts:
        return await asyncio.to_thread(
            self.api.list_posts,
            label=params.label,
            page=params.page,
            limit=params.limit,
            search=params.search,
            sort=params.sort,
        )

    def _replace(self, result: PaginatedPosts) -> None:
        comments = [self._merge(post) for post in result.posts]
        self.comments = comments
        self.total = result.total
        self.total_pages = max(1, result.total_pages)
        self.page = result.page

    def _merge(self, post: Post) -> Comment:
        replies = [
            ReplyView.from_reply(reply, self.ledger.get(TargetType.REPLY, reply.id))
            for reply in post.replies
        ]
        return Comment.from_post(post, self.ledger.get(TargetType.POST, post.id), replies)

    def find_comment(self, post_id: int) -> Optional[Comment]:
        for comment in self.comments:
            if comment.id == post_id:
                return comment
        return None

    def find_reply(self, reply_id: int) -> Optional[ReplyView]:
        for comment in self.comments:
            reply = comment.find_reply(reply_id)
            if reply is not None:
                return reply
        return None

    def find_target(
        self, target_type: TargetType, target_id: int
    ) -> Optional[Union[Comment, ReplyView]]:
        if TargetType(target_type) == TargetType.POST:
            return self.find_comment(target_id)
        return self.find_reply(target_id)

    def patch_reaction(
        self,
        target_type: TargetType,
        target_id: int,
        polarity: Polarity,
        undo: bool = False,
    ) -> bool:
        """Apply, or take back, one optimistic reaction on the held page.

        Only the reaction coordinator calls this. ``undo`` reverses an earlier
        patch when the page could not be resynchronised from the server.

        Returns:
            True if the target is on the current page and was patched
        """
        target = self.find_target(target_type, target_id)
        if target is None:
            logger.debug(f"{TargetType(target_type).value} {target_id} not on current page")
            return False

        polarity = Polarity(polarity)
        if undo:
            if target.my_reaction != polarity:
                return False
            if polarity == Polarity.GOOD:
                target.good_count = max(0, target.good_count - 1)
            else:
                target.bad_count = max(0, target.bad_count - 1)
            target.my_reaction = None
            return True

        if polarity == Polarity.GOOD:
            target.good_count += 1
        else:
            target.bad_count += 1
        target.my_reaction = polarity
        return True
