import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis

from feedrank.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
    from feedrank.infra.redis import redis_client, set_redis_client

    original = redis_client.client
    client = FakeRedis(decode_responses=True)
    set_redis_client(client)
    try:
        yield client
    finally:
        set_redis_client(original)
        await client.flushall()


@pytest.fixture(autouse=True)
def force_test_settings():
    """Pin the knobs tests rely on regardless of the caller's environment."""
    originals = (
        settings.environment,
        settings.feed_cache_enabled,
        settings.feed_overfetch_factor,
        settings.suggestions_overfetch_factor,
        settings.default_page_size,
    )
    settings.environment = "dev"
    settings.feed_cache_enabled = False
    settings.feed_overfetch_factor = 3
    settings.suggestions_overfetch_factor = 2
    settings.default_page_size = 20
    try:
        yield
    finally:
        (
            settings.environment,
            settings.feed_cache_enabled,
            settings.feed_overfetch_factor,
            settings.suggestions_overfetch_factor,
            settings.default_page_size,
        ) = originals
