"""Ranking orchestrator for personalized, trending and suggestion feeds."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from time import perf_counter
from typing import Any, Awaitable, Callable, Optional, Union

from feedrank.domain.exceptions import InvalidRequestError
from feedrank.domain.models import (
	ContentItem,
	FeedMode,
	RankingRequest,
	RankingResult,
	ScoredCandidate,
	TimeWindow,
)
from feedrank.domain.ports import ContentStore, InteractionLog, SocialGraphStore, UserDirectory
from feedrank.infra.cache import FeedCache
from feedrank.obs import logging as obs_logging
from feedrank.obs import metrics as obs_metrics
from feedrank.ranking.scoring import (
	ScoringContext,
	newest_first,
	rank_candidates,
	score_personalized,
	score_suggestion,
	score_trending,
)
from feedrank.services.candidates import CandidatePool, CandidateRetriever
from feedrank.services.preferences import PreferenceInference
from feedrank.services.store_calls import gather_stores
from feedrank.settings import settings

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Scorer = Callable[..., ScoredCandidate]

_UNSET = object()


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


def parse_time_window(value: Union[str, TimeWindow, None]) -> TimeWindow:
	if value is None:
		return TimeWindow.DAY
	try:
		return TimeWindow(value)
	except ValueError as exc:
		raise InvalidRequestError(f"unknown time window: {value!r}") from exc


def parse_mode(value: Union[str, FeedMode]) -> FeedMode:
	try:
		return FeedMode(value)
	except ValueError as exc:
		raise InvalidRequestError(f"unknown feed mode: {value!r}") from exc


def validate_paging(page: int, page_size: int) -> None:
	if isinstance(page, bool) or not isinstance(page, int) or page < 1:
		raise InvalidRequestError("page must be an integer >= 1")
	if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
		raise InvalidRequestError("page_size must be an integer >= 1")


class FeedRankingService:
	"""Builds ranked feed pages from injected stores.

	Holds no per-request state: every call re-reads the social graph, the like
	history and the candidate pool. The optional ``cache`` only short-circuits
	repeated reads of an identical page; when none is passed one is built if
	``settings.feed_cache_enabled`` is on.
	"""

	def __init__(
		self,
		content: ContentStore,
		graph: SocialGraphStore,
		interactions: InteractionLog,
		*,
		directory: UserDirectory | None = None,
		cache: Any = _UNSET,
		clock: Clock | None = None,
		feed_overfetch_factor: Optional[int] = None,
		suggestions_overfetch_factor: Optional[int] = None,
		timeout: Any = _UNSET,
	) -> None:
		store_timeout: Optional[float] = settings.retrieval_timeout_seconds if timeout is _UNSET else timeout
		self.retriever = CandidateRetriever(
			content,
			graph,
			interactions,
			directory=directory,
			feed_overfetch_factor=feed_overfetch_factor,
			suggestions_overfetch_factor=suggestions_overfetch_factor,
			timeout=store_timeout,
		)
		self.preferences = PreferenceInference(content, interactions, timeout=store_timeout)
		if cache is _UNSET:
			cache = FeedCache() if settings.feed_cache_enabled else None
		self.cache: Optional[FeedCache] = cache
		self.clock = clock or _utcnow

	# -- public operations -------------------------------------------------

	async def get_personalized_feed(
		self,
		user_id: str,
		page: int = 1,
		page_size: Optional[int] = None,
		group_tag: Optional[str] = None,
	) -> RankingResult:
		size = settings.default_page_size if page_size is None else page_size
		validate_paging(page, size)
		return await self._cached(
			f"{FeedMode.PERSONALIZED.value}:{group_tag or '-'}",
			user_id,
			page,
			size,
			lambda: self._personalized(user_id, page, size, group_tag),
		)

	async def get_trending_feed(
		self,
		user_id: str,
		page: int = 1,
		page_size: Optional[int] = None,
		time_window: Union[str, TimeWindow, None] = TimeWindow.DAY,
	) -> RankingResult:
		size = settings.default_page_size if page_size is None else page_size
		validate_paging(page, size)
		window = parse_time_window(time_window)
		return await self._cached(
			f"{FeedMode.TRENDING.value}:{window.value}",
			user_id,
			page,
			size,
			lambda: self._trending(user_id, page, size, window),
		)

	async def get_suggestions(self, user_id: str, limit: Optional[int] = None) -> list[ContentItem]:
		size = settings.default_suggestions_limit if limit is None else limit
		validate_paging(1, size)
		result = await self._cached(
			FeedMode.SUGGESTIONS.value,
			user_id,
			1,
			size,
			lambda: self._suggestions(user_id, 1, size),
		)
		return result.items

	async def rank(self, request: RankingRequest) -> RankingResult:
		mode = parse_mode(request.mode)
		if mode is FeedMode.PERSONALIZED:
			return await self.get_personalized_feed(
				request.user_id, request.page, request.page_size, request.group_tag
			)
		if mode is FeedMode.TRENDING:
			return await self.get_trending_feed(
				request.user_id, request.page, request.page_size, request.time_window
			)
		validate_paging(request.page, request.page_size)
		return await self._cached(
			FeedMode.SUGGESTIONS.value,
			request.user_id,
			request.page,
			request.page_size,
			lambda: self._suggestions(request.user_id, request.page, request.page_size),
		)

	# -- pipeline ----------------------------------------------------------

	async def _cached(
		self,
		mode_key: str,
		user_id: str,
		page: int,
		page_size: int,
		builder: Callable[[], Awaitable[RankingResult]],
	) -> RankingResult:
		tokens = obs_logging.bind_context(user_id=user_id, mode=mode_key)
		try:
			if self.cache is None:
				return await builder()
			return await self.cache.get_or_build(self.cache.key(mode_key, user_id, page, page_size), builder)
		finally:
			obs_logging.reset_context(tokens)

	async def _personalized(self, user_id: str, page: int, page_size: int, group_tag: Optional[str]) -> RankingResult:
		now = self.clock()
		pool, signals = await gather_stores(
			self.retriever.fetch_candidates(
				FeedMode.PERSONALIZED, user_id, now=now, page=page, page_size=page_size, group_tag=group_tag
			),
			self.preferences.load(user_id),
		)
		ctx = ScoringContext(
			user_id=user_id,
			now=now,
			circle=pool.circle,
			group_tag=group_tag,
			liked_ids=signals.liked_ids,
			preferences=signals.profile,
		)
		return await self._select(pool, ctx, score_personalized, page, page_size, newest_first_output=True)

	async def _trending(self, user_id: str, page: int, page_size: int, window: TimeWindow) -> RankingResult:
		now = self.clock()
		pool = await self.retriever.fetch_candidates(
			FeedMode.TRENDING, user_id, now=now, page=page, page_size=page_size, time_window=window
		)
		ctx = ScoringContext(user_id=user_id, now=now, circle=pool.circle)
		return await self._select(pool, ctx, score_trending, page, page_size, newest_first_output=True)

	async def _suggestions(self, user_id: str, page: int, limit: int) -> RankingResult:
		now = self.clock()
		pool = await self.retriever.fetch_candidates(FeedMode.SUGGESTIONS, user_id, now=now, page=page, page_size=limit)
		ctx = ScoringContext(
			user_id=user_id,
			now=now,
			circle=pool.circle,
			group_tag=pool.group_tag,
			liked_ids=pool.liked_ids,
		)
		# Suggestions are a best-match list: keep score order.
		return await self._select(pool, ctx, score_suggestion, page, limit, newest_first_output=False)

	async def _select(
		self,
		pool: CandidatePool,
		ctx: ScoringContext,
		scorer: Scorer,
		page: int,
		page_size: int,
		*,
		newest_first_output: bool,
	) -> RankingResult:
		start = perf_counter()
		ranked = rank_candidates(scorer(item, ctx) for item in pool.items)
		winners = ranked[:page_size]
		elapsed_ms = (perf_counter() - start) * 1000.0
		obs_metrics.observe_rank(
			pool.mode.value,
			candidates=len(pool),
			elapsed_ms=elapsed_ms,
			top_scores=[candidate.score for candidate in winners],
		)

		hydrated = await self.retriever.rehydrate([candidate.item_id for candidate in winners])
		if newest_first_output:
			items = newest_first(hydrated.values())
		else:
			items = [hydrated[c.item_id] for c in winners if c.item_id in hydrated]

		if len(items) < len(winners):
			logger.info("posts vanished before rehydration", extra={"missing": len(winners) - len(items)})
		logger.info(
			"ranked feed page",
			extra={"pool_size": len(pool), "returned": len(items), "page": page, "rank_ms": round(elapsed_ms, 2)},
		)
		return RankingResult(
			items=items,
			has_more=len(pool) > page_size,
			page=page,
			page_size=page_size,
			mode=pool.mode,
		)


__all__ = [
	"FeedRankingService",
	"parse_mode",
	"parse_time_window",
	"validate_paging",
]
