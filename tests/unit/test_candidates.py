from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from feedrank.domain.exceptions import RetrievalError
from feedrank.domain.models import ContentItem, FeedMode, Interaction, TargetType, TimeWindow, Visibility
from feedrank.infra.memory import (
    InMemoryContentStore,
    InMemoryInteractionLog,
    InMemorySocialGraph,
    InMemoryUserDirectory,
)
from feedrank.services.candidates import CandidateRetriever

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _post(post_id: str, author: str, *, hours_ago: float = 1.0, visibility=Visibility.PUBLIC, **fields) -> ContentItem:
    return ContentItem(
        id=post_id,
        author_id=author,
        created_at=NOW - timedelta(hours=hours_ago),
        visibility=visibility,
        **fields,
    )


def _graph() -> InMemorySocialGraph:
    graph = InMemorySocialGraph()
    graph.follow("me", "friend")
    graph.follow("me", "requested", accepted=False)
    return graph


def _retriever(posts, *, graph=None, likes=(), directory=None, **kwargs) -> CandidateRetriever:
    return CandidateRetriever(
        InMemoryContentStore.of(posts),
        graph or _graph(),
        InMemoryInteractionLog(list(likes)),
        directory=directory,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_personalized_pool_respects_circle_and_visibility():
    posts = [
        _post("own-public", "me"),
        _post("own-private", "me", visibility=Visibility.PRIVATE),
        _post("friend-connections", "friend", visibility=Visibility.CONNECTIONS),
        _post("friend-group-eng", "friend", visibility=Visibility.GROUP, group_tag="eng"),
        _post("friend-group-arts", "friend", visibility=Visibility.GROUP, group_tag="arts"),
        _post("friend-deleted", "friend", deleted_at=NOW),
        _post("pending-public", "requested"),
        _post("stranger-public", "stranger"),
    ]
    retriever = _retriever(posts)

    pool = await retriever.fetch_candidates(FeedMode.PERSONALIZED, "me", now=NOW, page_size=10, group_tag="eng")

    assert {item.id for item in pool.items} == {"own-public", "friend-connections", "friend-group-eng"}
    assert pool.circle == frozenset({"me", "friend"})


@pytest.mark.asyncio
async def test_personalized_pool_is_newest_first_and_overfetched():
    posts = [_post(f"p{i:02d}", "friend", hours_ago=i + 1) for i in range(20)]
    retriever = _retriever(posts)

    pool = await retriever.personalized("me", page=1, page_size=4, group_tag=None)

    assert [item.id for item in pool.items] == [f"p{i:02d}" for i in range(12)]


@pytest.mark.asyncio
async def test_pages_read_disjoint_candidate_windows():
    posts = [_post(f"p{i:02d}", "friend", hours_ago=i + 1) for i in range(20)]
    retriever = _retriever(posts)

    first = await retriever.personalized("me", page=1, page_size=2, group_tag=None)
    second = await retriever.personalized("me", page=2, page_size=2, group_tag=None)

    assert [item.id for item in second.items] == [f"p{i:02d}" for i in range(6, 12)]
    assert not {item.id for item in first.items} & {item.id for item in second.items}


@pytest.mark.asyncio
async def test_trending_pool_excludes_posts_outside_window():
    posts = [
        _post("fresh", "stranger", hours_ago=2),
        _post("old-but-viral", "stranger", hours_ago=25, like_count=10_000),
        _post("group-post", "stranger", hours_ago=3, visibility=Visibility.GROUP, group_tag="arts"),
        _post("connections-only", "stranger", hours_ago=3, visibility=Visibility.CONNECTIONS),
    ]
    retriever = _retriever(posts)

    day = await retriever.fetch_candidates(FeedMode.TRENDING, "me", now=NOW, page_size=10, time_window=TimeWindow.DAY)
    week = await retriever.fetch_candidates(FeedMode.TRENDING, "me", now=NOW, page_size=10, time_window=TimeWindow.WEEK)

    assert {item.id for item in day.items} == {"fresh", "group-post"}
    assert "old-but-viral" in {item.id for item in week.items}


@pytest.mark.asyncio
async def test_suggestion_pool_excludes_liked_circle_and_other_groups():
    posts = [
        _post("liked", "stranger", group_tag="eng", like_count=900),
        _post("friend-post", "friend", group_tag="eng"),
        _post("own-post", "me", group_tag="eng"),
        _post("arts-post", "stranger", group_tag="arts"),
        _post("no-group", "stranger"),
        _post("private", "stranger", group_tag="eng", visibility=Visibility.PRIVATE),
        _post("quiet", "stranger", group_tag="eng", like_count=1),
        _post("loud", "stranger", group_tag="eng", like_count=40),
    ]
    likes = [Interaction(user_id="me", target_id="liked", target_type=TargetType.CONTENT, created_at=NOW)]
    retriever = _retriever(posts, likes=likes, directory=InMemoryUserDirectory({"me": "eng"}))

    pool = await retriever.fetch_candidates(FeedMode.SUGGESTIONS, "me", now=NOW, page_size=5)

    assert [item.id for item in pool.items] == ["loud", "quiet"]
    assert pool.group_tag == "eng"
    assert pool.liked_ids == frozenset({"liked"})


@pytest.mark.asyncio
async def test_suggestion_pool_without_directory_spans_all_groups():
    posts = [_post("arts-post", "stranger", group_tag="arts"), _post("no-group", "stranger")]
    retriever = _retriever(posts)

    pool = await retriever.suggestions("me", limit=5)

    assert {item.id for item in pool.items} == {"arts-post", "no-group"}
    assert pool.group_tag is None


@pytest.mark.asyncio
async def test_suggestion_pool_size_is_twice_the_limit():
    posts = [_post(f"p{i}", "stranger", like_count=i) for i in range(10)]
    retriever = _retriever(posts)

    pool = await retriever.suggestions("me", limit=2)

    assert [item.id for item in pool.items] == ["p9", "p8", "p7", "p6"]


class _FailingGraph:
    async def list_accepted_connections(self, user_id: str) -> set[str]:
        raise ConnectionError("graph offline")


class _StalledLog:
    def __init__(self) -> None:
        self.cancelled = False

    async def list_interactions(self, user_id, target_type):
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return []


class _SlowContent:
    async def find_visible(self, query, sort, limit, offset=0):
        await asyncio.sleep(1)
        return []


@pytest.mark.asyncio
async def test_store_failure_surfaces_as_retrieval_error():
    retriever = _retriever([], graph=_FailingGraph())

    with pytest.raises(RetrievalError) as excinfo:
        await retriever.personalized("me", page=1, page_size=5, group_tag=None)

    assert excinfo.value.source == "social_graph"
    assert isinstance(excinfo.value.__cause__, ConnectionError)


@pytest.mark.asyncio
async def test_suggestion_reads_stop_when_one_of_them_fails():
    log = _StalledLog()
    retriever = CandidateRetriever(InMemoryContentStore.of([]), _FailingGraph(), log)

    with pytest.raises(RetrievalError) as excinfo:
        await retriever.suggestions("me", limit=3)

    assert excinfo.value.source == "social_graph"
    assert log.cancelled is True


@pytest.mark.asyncio
async def test_slow_store_times_out_as_retrieval_error():
    retriever = CandidateRetriever(_SlowContent(), _graph(), InMemoryInteractionLog(), timeout=0.01)

    with pytest.raises(RetrievalError) as excinfo:
        await retriever.trending("me", now=NOW, page=1, page_size=5, time_window=TimeWindow.DAY)

    assert excinfo.value.source == "content_store"


@pytest.mark.asyncio
async def test_rehydrate_drops_posts_deleted_after_selection():
    store = InMemoryContentStore.of([_post("kept", "friend"), _post("gone", "friend", deleted_at=NOW)])
    retriever = CandidateRetriever(store, _graph(), InMemoryInteractionLog())

    hydrated = await retriever.rehydrate(["kept", "gone"])

    assert set(hydrated) == {"kept"}
    assert await retriever.rehydrate([]) == {}


@pytest.mark.asyncio
async def test_interaction_log_lookup():
    log = InMemoryInteractionLog(
        [Interaction(user_id="me", target_id="c1", target_type=TargetType.COMMENT, created_at=NOW)]
    )
    assert await log.has_interaction("me", "c1", TargetType.COMMENT)
    assert not await log.has_interaction("me", "c1", TargetType.CONTENT)
