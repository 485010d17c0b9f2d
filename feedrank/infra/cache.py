"""Redis read-through cache for ranked feed pages."""

from __future__ import annotations

import asyncio
import json
import logging
import weakref
from typing import Awaitable, Callable, Optional

from redis.exceptions import RedisError

from feedrank.domain.models import RankingResult
from feedrank.infra.redis import RedisProxy, redis_client
from feedrank.obs import metrics as obs_metrics
from feedrank.settings import settings

logger = logging.getLogger(__name__)

ResultBuilder = Callable[[], Awaitable[RankingResult]]


class FeedCache:
	"""JSON page cache keyed by (mode, user, page, page size) with singleflight.

	Redis failures degrade to a cache miss; they never change what the ranking
	engine returns. Errors raised by the builder propagate untouched.
	"""

	def __init__(
		self,
		redis: RedisProxy | None = None,
		*,
		namespace: str = "feed:",
		ttl_seconds: Optional[int] = None,
	) -> None:
		self.redis = redis or redis_client
		self.namespace = namespace
		self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.feed_cache_ttl_seconds
		# Entries vanish once no caller holds the lock.
		self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

	def key(self, mode: str, user_id: str, page: int, page_size: int) -> str:
		return f"{self.namespace}{mode}:{user_id}:{page}:{page_size}"

	def _lock(self, key: str) -> asyncio.Lock:
		lock = self._locks.get(key)
		if lock is None:
			lock = asyncio.Lock()
			self._locks[key] = lock
		return lock

	async def get(self, key: str) -> RankingResult | None:
		try:
			raw = await self.redis.get(key)
		except (RedisError, OSError):
			obs_metrics.mark_cache("error")
			logger.warning("feed cache read failed", extra={"cache_key": key}, exc_info=True)
			return None
		if not raw:
			return None
		if isinstance(raw, bytes):
			raw = raw.decode("utf-8")
		try:
			return RankingResult.model_validate(json.loads(raw))
		except ValueError:
			obs_metrics.mark_cache("corrupt")
			logger.warning("discarding unreadable feed cache entry", extra={"cache_key": key})
			return None

	async def set(self, key: str, value: RankingResult) -> None:
		try:
			await self.redis.set(key, value.model_dump_json(), ex=self.ttl_seconds)
		except (RedisError, OSError):
			obs_metrics.mark_cache("error")
			logger.warning("feed cache write failed", extra={"cache_key": key}, exc_info=True)

	async def get_or_build(self, key: str, builder: ResultBuilder) -> RankingResult:
		cached = await self.get(key)
		if cached is not None:
			obs_metrics.mark_cache("hit")
			return cached
		async with self._lock(key):
			cached = await self.get(key)
			if cached is not None:
				obs_metrics.mark_cache("hit")
				return cached
			obs_metrics.mark_cache("miss")
			value = await builder()
			await self.set(key, value)
			return value

	async def invalidate_user(self, user_id: str) -> int:
		"""Drop every cached page for ``user_id`` across all modes."""

		removed = 0
		try:
			async for key in self.redis.scan_iter(match=f"{self.namespace}*:{user_id}:*"):
				removed += int(await self.redis.delete(key))
		except (RedisError, OSError):
			obs_metrics.mark_cache("error")
			logger.warning("feed cache invalidation failed", extra={"target_user": user_id}, exc_info=True)
		return removed


__all__ = ["FeedCache"]
