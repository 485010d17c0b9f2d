"""Store-agnostic candidate predicates and sort orders."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from feedrank.domain.models import ContentItem, Visibility, as_utc

SORTABLE_FIELDS = frozenset({"created_at", "like_count", "comment_count", "share_count", "view_count", "id"})


@dataclass(frozen=True, slots=True)
class SortKey:
	field: str
	descending: bool = True

	def __post_init__(self) -> None:
		if self.field not in SORTABLE_FIELDS:
			raise ValueError(f"unsortable field: {self.field}")


NEWEST_FIRST: tuple[SortKey, ...] = (SortKey("created_at"),)
MOST_ENGAGED_FIRST: tuple[SortKey, ...] = (
	SortKey("like_count"),
	SortKey("comment_count"),
	SortKey("created_at"),
)


@dataclass(frozen=True, slots=True)
class CandidateQuery:
	"""Conjunction of filters a content store applies before ranking.

	Stores backed by a database translate the fields into their own query
	language; in-memory stores call :meth:`matches`. ``viewer_circle`` switches
	on the per-viewer visibility rule: public items, connections-only items
	whose author is in the circle, and group-only items of the viewer's group.
	"""

	ids: Optional[frozenset[str]] = None
	exclude_ids: frozenset[str] = frozenset()
	author_ids: Optional[frozenset[str]] = None
	exclude_author_ids: frozenset[str] = frozenset()
	visibilities: Optional[frozenset[Visibility]] = None
	group_tag: Optional[str] = None
	viewer_circle: Optional[frozenset[str]] = None
	viewer_group_tag: Optional[str] = None
	created_after: Optional[datetime] = None
	include_deleted: bool = False

	def visible_to_viewer(self, item: ContentItem) -> bool:
		if item.visibility is Visibility.PUBLIC:
			return True
		if item.visibility is Visibility.CONNECTIONS:
			return self.viewer_circle is not None and item.author_id in self.viewer_circle
		if item.visibility is Visibility.GROUP:
			return self.viewer_group_tag is not None and item.group_tag == self.viewer_group_tag
		return False

	def matches(self, item: ContentItem) -> bool:
		if item.deleted_at is not None and not self.include_deleted:
			return False
		if self.ids is not None and item.id not in self.ids:
			return False
		if item.id in self.exclude_ids:
			return False
		if self.author_ids is not None and item.author_id not in self.author_ids:
			return False
		if item.author_id in self.exclude_author_ids:
			return False
		if self.visibilities is not None and item.visibility not in self.visibilities:
			return False
		if self.group_tag is not None and item.group_tag != self.group_tag:
			return False
		if self.created_after is not None and item.created_at < as_utc(self.created_after):
			return False
		if self.viewer_circle is not None and not self.visible_to_viewer(item):
			return False
		return True


def sort_items(items: Sequence[ContentItem], sort: Sequence[SortKey]) -> list[ContentItem]:
	"""Order items by ``sort`` using successive stable sorts, last key first."""

	ordered = list(items)
	for key in reversed(tuple(sort)):
		ordered.sort(key=lambda item, f=key.field: getattr(item, f), reverse=key.descending)
	return ordered


__all__ = ["CandidateQuery", "MOST_ENGAGED_FIRST", "NEWEST_FIRST", "SortKey", "sort_items"]
