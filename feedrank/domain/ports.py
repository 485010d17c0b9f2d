"""Capability interfaces the ranking engine requires from backing stores."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from feedrank.domain.models import ContentItem, Interaction, TargetType
from feedrank.domain.query import CandidateQuery, SortKey


class ContentStore(Protocol):
	async def find_visible(
		self,
		query: CandidateQuery,
		sort: Sequence[SortKey],
		limit: int,
		offset: int = 0,
	) -> list[ContentItem]:
		...


class SocialGraphStore(Protocol):
	async def list_accepted_connections(self, user_id: str) -> set[str]:
		...


class InteractionLog(Protocol):
	async def list_interactions(self, user_id: str, target_type: TargetType) -> list[Interaction]:
		...

	async def has_interaction(self, user_id: str, target_id: str, target_type: TargetType) -> bool:
		...


class UserDirectory(Protocol):
	async def get_group_tag(self, user_id: str) -> Optional[str]:
		...


__all__ = ["ContentStore", "InteractionLog", "SocialGraphStore", "UserDirectory"]
