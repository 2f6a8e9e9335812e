"""Shared test fixtures and utilities."""

import math
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from unittest.mock import MagicMock

import pytest
import requests

from hotaru_community.api.base import EngagementAPI, TransportError
from hotaru_community.board.reactions import ReactionCoordinator
from hotaru_community.board.store import PostStore
from hotaru_community.db.ledger import MemoryLedgerBackend, ReactionLedger
from hotaru_community.models.post import (
    Label,
    PaginatedPosts,
    Polarity,
    SortOrder,
    TargetType,
)


class FakeBoardServer(EngagementAPI):
    """In-memory board server speaking the same payloads as the real one.

    Posts and replies have separate id sequences, like the server's tables,
    so post 1 and reply 1 can coexist.
    """

    def __init__(self):
        """Initialize an empty board."""
        self.posts: dict = {}
        self.replies: dict = {}
        self._next_post_id = 1
        self._next_reply_id = 1
        self._clock = datetime(2025, 3, 20, 21, 0, 0, tzinfo=timezone.utc)

        self.list_calls: List[dict] = []
        self.post_calls: List[dict] = []
        self.reply_calls: List[dict] = []
        self.reaction_calls: List[tuple] = []

        self.fail_list = False
        self.fail_creates = False
        self.fail_reactions = False

    def _tick(self) -> str:
        self._clock += timedelta(minutes=1)
        return self._clock.strftime("%Y-%m-%dT%H:%M:%SZ")

    def add_post(
        self,
        username: str,
        content: str,
        label: Label = Label.LOCAL_SIGHTING,
        good: int = 0,
        bad: int = 0,
        created_at: Optional[str] = None,
        images: Optional[List[str]] = None,
    ) -> int:
        """Seed a post directly, bypassing the API."""
        post_id = self._next_post_id
        self._next_post_id += 1
        self.posts[post_id] = {
            "id": post_id,
            "username": username,
            "content": content,
            "label": Label(label).value,
            "image_urls": images,
            "created_at": created_at or self._tick(),
            "good_count": good,
            "bad_count": bad,
        }
        return post_id

    def add_reply(
        self,
        target_id: int,
        target_type: TargetType,
        username: str,
        content: str,
        label: Optional[str] = None,
    ) -> int:
        """Seed a reply directly. parent_username follows the server's rule."""
        if target_type == TargetType.POST:
            post_id = target_id
            parent_reply_id = None
            parent_username = self.posts[post_id]["username"]
        else:
            parent = self.replies[target_id]
            post_id = parent["post_id"]
            parent_reply_id = target_id
            parent_username = parent["username"]

        reply_id = self._next_reply_id
        self._next_reply_id += 1
        self.replies[reply_id] = {
            "id": reply_id,
            "post_id": post_id,
            "parent_reply_id": parent_reply_id,
            "username": username,
            "content": content,
            "label": label,
            "created_at": self._tick(),
            "good_count": 0,
            "bad_count": 0,
            "parent_username": parent_username,
        }
        return reply_id

    def _replies_for(self, post_id: int) -> List[dict]:
        replies = [r for r in self.replies.values() if r["post_id"] == post_id]
        return sorted(replies, key=lambda r: r["created_at"])

    def list_posts(
        self,
        label=None,
        page=1,
        limit=30,
        search=None,
        sort=SortOrder.NEWEST,
    ) -> PaginatedPosts:
        self.list_calls.append(
            {"label": label, "page": page, "limit": limit, "search": search, "sort": sort}
        )
        if self.fail_list:
            raise TransportError("投稿の取得に失敗しました", status=500)

        posts = [dict(p, replies=self._replies_for(p["id"])) for p in self.posts.values()]
        if label:
            posts = [p for p in posts if p["label"] == Label(label).value]
        if search:
            needle = search.lower()
            posts = [
                p for p in posts
                if any(
                    needle in text.lower()
                    for item in [p, *p["replies"]]
                    for text in (item["username"], item["content"])
                )
            ]

        sort = SortOrder(sort)
        if sort == SortOrder.OLDEST:
            posts.sort(key=lambda p: p["created_at"])
        elif sort == SortOrder.GOOD:
            posts.sort(key=lambda p: (p["good_count"], p["created_at"]), reverse=True)
        elif sort == SortOrder.BAD:
            posts.sort(key=lambda p: (p["bad_count"], p["created_at"]), reverse=True)
        else:
            posts.sort(key=lambda p: p["created_at"], reverse=True)

        total = len(posts)
        start = (page - 1) * limit
        return PaginatedPosts.model_validate(
            {
                "posts": posts[start:start + limit],
                "total": total,
                "page": page,
                "limit": limit,
                "totalPages": math.ceil(total / limit),
            }
        )

    def create_post(self, username, content, label, images) -> None:
        self.post_calls.append(
            {"username": username, "content": content, "label": label, "images": images}
        )
        if self.fail_creates:
            raise TransportError("投稿の作成に失敗しました", status=500)
        self.add_post(username, content, label=label, images=images or None)

    def create_reply(self, target_id, target_type, username, content, images=None) -> None:
        self.reply_calls.append(
            {
                "target_id": target_id,
                "target_type": target_type,
                "username": username,
                "content": content,
                "images": images,
            }
        )
        if self.fail_creates:
            raise TransportError("返信できませんでした", status=500)
        self.add_reply(target_id, TargetType(target_type), username, content)

    def create_reaction(self, target_id, target_type, polarity) -> None:
        self.reaction_calls.append((target_id, TargetType(target_type), Polarity(polarity)))
        if self.fail_reactions:
            raise TransportError("リアクションできませんでした", status=500)
        table = self.posts if TargetType(target_type) == TargetType.POST else self.replies
        field = "good_count" if Polarity(polarity) == Polarity.GOOD else "bad_count"
        table[target_id][field] += 1


@pytest.fixture
def fake_server():
    """Create an empty in-memory board server."""
    return FakeBoardServer()


@pytest.fixture
def seeded_server(fake_server):
    """Board with two posts; the first has a reply thread.

    Post 1 "Mika": replies 1 (Aki, to the post) and 2 (Ren, answering Aki).
    Post 2 "Sora": no replies.
    """
    first = fake_server.add_post("Mika", "滑川で身投げが始まりました", good=2, bad=0)
    fake_server.add_post("Sora", "今夜は波が高いです", label=Label.OTHER, good=0, bad=1)
    aki = fake_server.add_reply(first, TargetType.POST, "Aki", "何時ごろでしたか？")
    fake_server.add_reply(aki, TargetType.REPLY, "Ren", "23時過ぎです")
    return fake_server


@pytest.fixture
def ledger():
    """Create an in-memory reaction ledger."""
    return ReactionLedger(MemoryLedgerBackend())


@pytest.fixture
def store(seeded_server, ledger):
    """Create a store over the seeded board."""
    return PostStore(seeded_server, ledger)


@pytest.fixture
def coordinator(seeded_server, ledger, store):
    """Create a reaction coordinator over the seeded board."""
    return ReactionCoordinator(seeded_server, ledger, store)


@pytest.fixture
def make_response():
    """Factory for mock requests.Response objects.

    Usage: make_response(200, {"posts": []}) or make_response(500, text="boom")
    """

    def _make(status_code: int = 200, json_data=None, text: str = ""):
        response = MagicMock()
        response.status_code = status_code
        response.text = text
        response.json.return_value = json_data if json_data is not None else {}
        if status_code >= 400:
            response.raise_for_status.side_effect = requests.exceptions.HTTPError(
                f"{status_code} Error", response=response
            )
        else:
            response.raise_for_status.return_value = None
        return response

    return _make


def sample_post_payload(post_id: int = 1, **overrides) -> dict:
    """Helper to build one post as the server serialises it."""
    payload = {
        "id": post_id,
        "username": "Mika",
        "content": "滑川で身投げが始まりました",
        "image_urls": None,
        "label": "現地情報",
        "created_at": "2025-03-20T21:05:00Z",
        "good_count": 3,
        "bad_count": 1,
        "replies": [],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def post_payload():
    """Factory for server-shaped post dictionaries."""
    return sample_post_payload


@pytest.fixture
def clean_env(monkeypatch):
    """Remove HOTARU_* settings so each test starts from the defaults."""
    for name in (
        "HOTARU_API_URL",
        "HOTARU_LEDGER_PATH",
        "HOTARU_REQUEST_TIMEOUT",
        "HOTARU_ADMIN_TOKEN",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
