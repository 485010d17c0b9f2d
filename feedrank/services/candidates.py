"""Candidate retrieval: one over-sized pool of posts per feed mode."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence

from feedrank.domain.models import ContentItem, FeedMode, TargetType, TimeWindow, Visibility
from feedrank.domain.ports import ContentStore, InteractionLog, SocialGraphStore, UserDirectory
from feedrank.domain.query import MOST_ENGAGED_FIRST, NEWEST_FIRST, CandidateQuery
from feedrank.services.store_calls import call_store, gather_stores
from feedrank.settings import settings

logger = logging.getLogger(__name__)

_SHARED_VISIBILITIES = frozenset({Visibility.PUBLIC, Visibility.GROUP})


@dataclass(frozen=True, slots=True)
class CandidatePool:
	"""Posts handed to a scorer plus the viewer facts gathered while fetching them."""

	mode: FeedMode
	items: list[ContentItem]
	circle: frozenset[str]  # viewer plus accepted connections
	group_tag: Optional[str] = None
	liked_ids: frozenset[str] = frozenset()

	def __len__(self) -> int:
		return len(self.items)


def pool_offset(page: int, pool_limit: int) -> int:
	"""Pages read disjoint windows of the source order."""

	return (page - 1) * pool_limit


class CandidateRetriever:
	"""Thin adapter that turns a feed mode into content-store queries."""

	def __init__(
		self,
		content: ContentStore,
		graph: SocialGraphStore,
		interactions: InteractionLog,
		*,
		directory: UserDirectory | None = None,
		feed_overfetch_factor: Optional[int] = None,
		suggestions_overfetch_factor: Optional[int] = None,
		timeout: Optional[float] = None,
	) -> None:
		self.content = content
		self.graph = graph
		self.interactions = interactions
		self.directory = directory
		self.feed_overfetch_factor = feed_overfetch_factor or settings.feed_overfetch_factor
		self.suggestions_overfetch_factor = suggestions_overfetch_factor or settings.suggestions_overfetch_factor
		self.timeout = timeout

	async def fetch_candidates(
		self,
		mode: FeedMode,
		user_id: str,
		*,
		now: datetime,
		page: int = 1,
		page_size: int = 20,
		group_tag: Optional[str] = None,
		time_window: TimeWindow = TimeWindow.DAY,
	) -> CandidatePool:
		if mode is FeedMode.PERSONALIZED:
			return await self.personalized(user_id, page=page, page_size=page_size, group_tag=group_tag)
		if mode is FeedMode.TRENDING:
			return await self.trending(user_id, now=now, page=page, page_size=page_size, time_window=time_window)
		return await self.suggestions(user_id, limit=page_size, page=page)

	async def accepted_circle(self, user_id: str) -> frozenset[str]:
		connections = await call_store(
			"social_graph",
			self.graph.list_accepted_connections(user_id),
			timeout=self.timeout,
		)
		return frozenset(connections) | {user_id}

	async def liked_ids(self, user_id: str) -> frozenset[str]:
		likes = await call_store(
			"interaction_log",
			self.interactions.list_interactions(user_id, TargetType.CONTENT),
			timeout=self.timeout,
		)
		return frozenset(entry.target_id for entry in likes)

	async def viewer_group(self, user_id: str) -> Optional[str]:
		if self.directory is None:
			return None
		return await call_store("user_directory", self.directory.get_group_tag(user_id), timeout=self.timeout)

	async def _find(self, query: CandidateQuery, sort, limit: int, offset: int = 0) -> list[ContentItem]:
		return await call_store(
			"content_store",
			self.content.find_visible(query, sort, limit, offset),
			timeout=self.timeout,
		)

	async def personalized(
		self,
		user_id: str,
		*,
		page: int,
		page_size: int,
		group_tag: Optional[str],
	) -> CandidatePool:
		circle = await self.accepted_circle(user_id)
		query = CandidateQuery(
			author_ids=circle,
			viewer_circle=circle,
			viewer_group_tag=group_tag,
		)
		limit = page_size * self.feed_overfetch_factor
		items = await self._find(query, NEWEST_FIRST, limit, pool_offset(page, limit))
		logger.debug("personalized pool", extra={"pool_size": len(items), "circle_size": len(circle)})
		return CandidatePool(FeedMode.PERSONALIZED, items, circle, group_tag)

	async def trending(
		self,
		user_id: str,
		*,
		now: datetime,
		page: int,
		page_size: int,
		time_window: TimeWindow,
	) -> CandidatePool:
		query = CandidateQuery(
			visibilities=_SHARED_VISIBILITIES,
			created_after=now - timedelta(hours=time_window.hours),
		)
		limit = page_size * self.feed_overfetch_factor
		items = await self._find(query, NEWEST_FIRST, limit, pool_offset(page, limit))
		logger.debug("trending pool", extra={"pool_size": len(items), "window": time_window.value})
		return CandidatePool(FeedMode.TRENDING, items, frozenset({user_id}))

	async def suggestions(self, user_id: str, *, limit: int, page: int = 1) -> CandidatePool:
		circle, liked, group_tag = await gather_stores(
			self.accepted_circle(user_id),
			self.liked_ids(user_id),
			self.viewer_group(user_id),
		)
		query = CandidateQuery(
			exclude_ids=liked,
			exclude_author_ids=circle,
			visibilities=_SHARED_VISIBILITIES,
			group_tag=group_tag,
		)
		pool_limit = limit * self.suggestions_overfetch_factor
		items = await self._find(query, MOST_ENGAGED_FIRST, pool_limit, pool_offset(page, pool_limit))
		logger.debug("suggestion pool", extra={"pool_size": len(items), "liked": len(liked)})
		return CandidatePool(FeedMode.SUGGESTIONS, items, circle, group_tag, liked)

	async def rehydrate(self, ids: Sequence[str]) -> dict[str, ContentItem]:
		"""Re-read the selected posts; posts deleted in the meantime drop out."""

		if not ids:
			return {}
		wanted = frozenset(ids)
		items = await self._find(CandidateQuery(ids=wanted), NEWEST_FIRST, len(wanted))
		return {item.id: item for item in items}


__all__ = ["CandidatePool", "CandidateRetriever", "pool_offset"]
