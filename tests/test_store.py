"""Tests for the post store."""

import pytest

from hotaru_community.api.base import AuthExpiredError
from hotaru_community.board.store import PostStore
from hotaru_community.models.post import Label, Polarity, SortOrder, TargetType
from hotaru_community.models.results import FetchParams, FetchStatus


class TestRefresh:
    """Fetching and merging a page."""

    @pytest.mark.asyncio
    async def test_refresh_loads_newest_first(self, store, seeded_server):
        ok = await store.refresh()

        assert ok is True
        assert [c.id for c in store.comments] == [2, 1]
        assert store.total == 2
        assert store.total_pages == 1
        assert store.state.status == FetchStatus.IDLE
        assert seeded_server.list_calls[-1]["sort"] == SortOrder.NEWEST

    @pytest.mark.asyncio
    async def test_replies_are_merged_into_their_post(self, store):
        await store.refresh()

        mika = store.find_comment(1)
        assert [r.username for r in mika.replies] == ["Aki", "Ren"]
        assert mika.replies[0].reply_to is None
        assert mika.replies[1].reply_to == "Aki"
        assert store.find_comment(2).replies == []

    @pytest.mark.asyncio
    async def test_ledger_entries_become_my_reaction(self, store, ledger):
        """Posts and replies with the same id are looked up independently."""
        ledger.set(TargetType.POST, 1, Polarity.GOOD)
        ledger.set(TargetType.REPLY, 2, Polarity.BAD)

        await store.refresh()

        assert store.find_comment(1).my_reaction == Polarity.GOOD
        assert store.find_comment(2).my_reaction is None
        assert store.find_reply(1).my_reaction is None
        assert store.find_reply(2).my_reaction == Polarity.BAD

    @pytest.mark.asyncio
    async def test_params_are_remembered(self, store, seeded_server):
        """A refresh without params repeats the last query."""
        await store.refresh(FetchParams(label=Label.OTHER))
        await store.refresh()

        assert seeded_server.list_calls[-1]["label"] == Label.OTHER
        assert [c.username for c in store.comments] == ["Sora"]

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_page(self, store, seeded_server):
        """A failed fetch leaves the held page untouched and records the error."""
        await store.refresh()
        seeded_server.fail_list = True

        ok = await store.refresh()

        assert ok is False
        assert [c.id for c in store.comments] == [2, 1]
        assert store.state.is_error
        assert store.state.message == "投稿の取得に失敗しました"

    @pytest.mark.asyncio
    async def test_expired_session_is_raised(self, store, seeded_server, monkeypatch):
        def expired(**kwargs):
            raise AuthExpiredError("Unauthorized", status=401)

        monkeypatch.setattr(seeded_server, "list_posts", expired)

        with pytest.raises(AuthExpiredError):
            await store.refresh()

        assert store.state.is_error

    @pytest.mark.asyncio
    async def test_empty_board_has_one_page(self, fake_server, ledger):
        store = PostStore(fake_server, ledger)

        await store.refresh()

        assert store.comments == []
        assert store.total_pages == 1


class TestPageClamp:
    """A page that disappears between fetches."""

    @pytest.mark.asyncio
    async def test_page_past_the_end_fetches_last_page(self, fake_server, ledger):
        """31 posts on page 2; after one is deleted the store lands on page 1."""
        for n in range(31):
            fake_server.add_post(f"user{n}", f"post {n}")
        store = PostStore(fake_server, ledger)
        await store.refresh(FetchParams(page=2))
        assert len(store.comments) == 1

        del fake_server.posts[1]
        ok = await store.refresh()

        assert ok is True
        assert store.page == 1
        assert store.params.page == 1
        assert len(store.comments) == 30
        assert [call["page"] for call in fake_server.list_calls] == [2, 2, 1]

    @pytest.mark.asyncio
    async def test_failed_second_fetch_keeps_previous_page(self, fake_server, ledger, monkeypatch):
        for n in range(31):
            fake_server.add_post(f"user{n}", f"post {n}")
        store = PostStore(fake_server, ledger)
        await store.refresh(FetchParams(page=2))
        del fake_server.posts[1]

        original = fake_server.list_posts

        def fail_on_clamp(**kwargs):
            if kwargs["page"] == 1:
                fake_server.fail_list = True
            return original(**kwargs)

        monkeypatch.setattr(fake_server, "list_posts", fail_on_clamp)

        ok = await store.refresh()

        assert ok is False
        assert store.state.is_error
        assert len(store.comments) == 1


class TestPatchReaction:
    """Optimistic patches."""

    @pytest.mark.asyncio
    async def test_patch_post(self, store):
        await store.refresh()

        assert store.patch_reaction(TargetType.POST, 1, Polarity.GOOD) is True

        mika = store.find_comment(1)
        assert mika.good_count == 3
        assert mika.my_reaction == Polarity.GOOD

    @pytest.mark.asyncio
    async def test_patch_reply_leaves_same_id_post_alone(self, store):
        await store.refresh()

        store.patch_reaction(TargetType.REPLY, 1, Polarity.BAD)

        assert store.find_reply(1).bad_count == 1
        assert store.find_comment(1).bad_count == 0

    @pytest.mark.asyncio
    async def test_patch_missing_target(self, store):
        await store.refresh()

        assert store.patch_reaction(TargetType.POST, 404, Polarity.GOOD) is False

    @pytest.mark.asyncio
    async def test_undo_reverses_patch(self, store):
        await store.refresh()
        store.patch_reaction(TargetType.POST, 1, Polarity.GOOD)

        assert store.patch_reaction(TargetType.POST, 1, Polarity.GOOD, undo=True) is True

        mika = store.find_comment(1)
        assert mika.good_count == 2
        assert mika.my_reaction is None

    @pytest.mark.asyncio
    async def test_undo_without_matching_reaction_is_ignored(self, store):
        await store.refresh()

        assert store.patch_reaction(TargetType.POST, 1, Polarity.GOOD, undo=True) is False
        assert store.find_comment(1).good_count == 2
