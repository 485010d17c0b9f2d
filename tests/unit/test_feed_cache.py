from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from feedrank.domain.models import ContentItem, FeedMode, RankingResult, Visibility
from feedrank.infra.cache import FeedCache
from feedrank.infra.memory import InMemoryContentStore, InMemoryInteractionLog, InMemorySocialGraph
from feedrank.services.feed import FeedRankingService
from feedrank.settings import settings

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _post(post_id: str, hours_ago: float = 1.0, **fields) -> ContentItem:
    return ContentItem(
        id=post_id, author_id="friend", created_at=NOW - timedelta(hours=hours_ago), tags={"ai"}, **fields
    )


def _service(content: InMemoryContentStore, cache: FeedCache | None) -> FeedRankingService:
    graph = InMemorySocialGraph()
    graph.follow("me", "friend")
    return FeedRankingService(content, graph, InMemoryInteractionLog(), cache=cache, clock=lambda: NOW)


@pytest.mark.asyncio
async def test_second_read_of_a_page_is_served_from_cache(fake_redis):
    content = InMemoryContentStore.of([_post("p1"), _post("p2", 3)])
    service = _service(content, FeedCache(ttl_seconds=60))

    first = await service.get_personalized_feed("me", page=1, page_size=5)
    calls_after_first = content.calls
    second = await service.get_personalized_feed("me", page=1, page_size=5)

    assert second == first
    assert content.calls == calls_after_first
    assert await fake_redis.exists("feed:personalized:-:me:1:5")
    assert 0 < await fake_redis.ttl("feed:personalized:-:me:1:5") <= 60


@pytest.mark.asyncio
async def test_cache_keys_separate_modes_and_windows(fake_redis):
    content = InMemoryContentStore.of([_post("p1")])
    service = _service(content, FeedCache())

    await service.get_trending_feed("me", page_size=5, time_window="24h")
    await service.get_trending_feed("me", page_size=5, time_window="7d")
    await service.get_suggestions("me", limit=3)

    keys = sorted(await fake_redis.keys("feed:*"))
    assert keys == ["feed:suggestions:me:1:3", "feed:trending:24h:me:1:5", "feed:trending:7d:me:1:5"]


@pytest.mark.asyncio
async def test_invalidate_user_drops_only_that_users_pages(fake_redis):
    cache = FeedCache()
    page = RankingResult(items=[_post("p1")], has_more=False, page=1, page_size=5, mode=FeedMode.PERSONALIZED)
    await cache.set(cache.key("personalized", "me", 1, 5), page)
    await cache.set(cache.key("trending:24h", "me", 2, 5), page)
    await cache.set(cache.key("personalized", "someone", 1, 5), page)

    removed = await cache.invalidate_user("me")

    assert removed == 2
    assert await fake_redis.keys("feed:*") == ["feed:personalized:someone:1:5"]


@pytest.mark.asyncio
async def test_corrupt_entries_are_treated_as_misses(fake_redis):
    cache = FeedCache()
    await fake_redis.set("feed:personalized:me:1:5", "{not json")

    assert await cache.get("feed:personalized:me:1:5") is None


class _DownRedis:
    async def get(self, key):
        raise RedisConnectionError("redis down")

    async def set(self, key, value, ex=None):
        raise RedisConnectionError("redis down")


@pytest.mark.asyncio
async def test_cache_outage_does_not_change_results():
    content = InMemoryContentStore.of([_post("p1"), _post("p2", 3), _post("p3", 9)])
    uncached = await _service(content, None).get_personalized_feed("me", page_size=2)

    degraded = await _service(content, FeedCache(redis=_DownRedis())).get_personalized_feed("me", page_size=2)  # type: ignore[arg-type]

    assert degraded == uncached
    assert [item.id for item in degraded.items] == ["p1", "p2"]


@pytest.mark.asyncio
async def test_personalized_pages_are_cached_per_group(fake_redis):
    content = InMemoryContentStore.of(
        [
            _post("eng", visibility=Visibility.GROUP, group_tag="eng"),
            _post("arts", visibility=Visibility.GROUP, group_tag="arts"),
        ]
    )
    uncached = await _service(content, None).get_personalized_feed("me", page_size=5, group_tag="arts")
    service = _service(content, FeedCache())

    eng = await service.get_personalized_feed("me", page_size=5, group_tag="eng")
    arts = await service.get_personalized_feed("me", page_size=5, group_tag="arts")

    assert [item.id for item in eng.items] == ["eng"]
    assert [item.id for item in arts.items] == [item.id for item in uncached.items] == ["arts"]
    assert await fake_redis.exists("feed:personalized:eng:me:1:5", "feed:personalized:arts:me:1:5") == 2


@pytest.mark.asyncio
async def test_concurrent_misses_build_once_and_release_the_lock(fake_redis):
    cache = FeedCache()
    builds = 0

    async def build() -> RankingResult:
        nonlocal builds
        builds += 1
        await asyncio.sleep(0.01)
        return RankingResult(items=[_post("p1")], has_more=False, page=1, page_size=5, mode=FeedMode.TRENDING)

    key = cache.key("trending:24h", "me", 1, 5)
    first, second = await asyncio.gather(cache.get_or_build(key, build), cache.get_or_build(key, build))

    assert first == second
    assert builds == 1
    assert len(cache._locks) == 0


@pytest.mark.asyncio
async def test_cache_is_built_from_settings_when_enabled(fake_redis):
    content = InMemoryContentStore.of([_post("p1")])
    settings.feed_cache_enabled = True
    graph = InMemorySocialGraph()
    graph.follow("me", "friend")
    enabled = FeedRankingService(content, graph, InMemoryInteractionLog(), clock=lambda: NOW)
    settings.feed_cache_enabled = False
    disabled = FeedRankingService(content, graph, InMemoryInteractionLog(), clock=lambda: NOW)

    await enabled.get_trending_feed("me", page_size=5)

    assert isinstance(enabled.cache, FeedCache)
    assert disabled.cache is None
    assert await fake_redis.exists("feed:trending:24h:me:1:5")
