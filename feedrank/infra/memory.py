"""In-memory store adapters for local runs and tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from feedrank.domain.models import (
	Connection,
	ConnectionStatus,
	ContentItem,
	Interaction,
	TargetType,
)
from feedrank.domain.query import CandidateQuery, SortKey, sort_items


@dataclass
class InMemoryContentStore:
	items: dict[str, ContentItem] = field(default_factory=dict)
	calls: int = 0

	@classmethod
	def of(cls, items: Iterable[ContentItem]) -> "InMemoryContentStore":
		return cls(items={item.id: item for item in items})

	def add(self, item: ContentItem) -> None:
		self.items[item.id] = item

	async def find_visible(
		self,
		query: CandidateQuery,
		sort: Sequence[SortKey],
		limit: int,
		offset: int = 0,
	) -> list[ContentItem]:
		self.calls += 1
		# id order gives equal sort keys a stable position between runs
		matched = [self.items[key] for key in sorted(self.items) if query.matches(self.items[key])]
		ordered = sort_items(matched, sort)
		return ordered[offset : offset + limit]


@dataclass
class InMemorySocialGraph:
	connections: list[Connection] = field(default_factory=list)
	calls: int = 0

	def follow(self, follower_id: str, following_id: str, *, accepted: bool = True) -> None:
		status = ConnectionStatus.ACCEPTED if accepted else ConnectionStatus.PENDING
		self.connections.append(Connection(follower_id=follower_id, following_id=following_id, status=status))

	async def list_accepted_connections(self, user_id: str) -> set[str]:
		self.calls += 1
		return {
			conn.following_id
			for conn in self.connections
			if conn.follower_id == user_id and conn.status is ConnectionStatus.ACCEPTED
		}


@dataclass
class InMemoryInteractionLog:
	interactions: list[Interaction] = field(default_factory=list)
	calls: int = 0

	def record(self, interaction: Interaction) -> None:
		self.interactions.append(interaction)

	async def list_interactions(self, user_id: str, target_type: TargetType) -> list[Interaction]:
		self.calls += 1
		return [
			entry
			for entry in self.interactions
			if entry.user_id == user_id and entry.target_type is target_type
		]

	async def has_interaction(self, user_id: str, target_id: str, target_type: TargetType) -> bool:
		self.calls += 1
		return any(
			entry.user_id == user_id and entry.target_id == target_id and entry.target_type is target_type
			for entry in self.interactions
		)


@dataclass
class InMemoryUserDirectory:
	group_tags: dict[str, str] = field(default_factory=dict)

	async def get_group_tag(self, user_id: str) -> Optional[str]:
		return self.group_tags.get(user_id)


__all__ = [
	"InMemoryContentStore",
	"InMemoryInteractionLog",
	"InMemorySocialGraph",
	"InMemoryUserDirectory",
]
