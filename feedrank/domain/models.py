"""Domain models consumed and produced by the ranking engine."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Visibility(str, Enum):
	PUBLIC = "public"
	CONNECTIONS = "connections"
	GROUP = "group"
	PRIVATE = "private"


class MediaType(str, Enum):
	IMAGE = "image"
	VIDEO = "video"
	CAROUSEL = "carousel"
	TEXT = "text"


class ConnectionStatus(str, Enum):
	PENDING = "pending"
	ACCEPTED = "accepted"


class TargetType(str, Enum):
	CONTENT = "content"
	COMMENT = "comment"


class FeedMode(str, Enum):
	PERSONALIZED = "personalized"
	TRENDING = "trending"
	SUGGESTIONS = "suggestions"


class TimeWindow(str, Enum):
	DAY = "24h"
	WEEK = "7d"
	MONTH = "30d"

	@property
	def hours(self) -> int:
		return _WINDOW_HOURS[self]


_WINDOW_HOURS = {TimeWindow.DAY: 24, TimeWindow.WEEK: 24 * 7, TimeWindow.MONTH: 24 * 30}

DEFAULT_MEDIA_PREFERENCES: tuple[MediaType, ...] = (MediaType.IMAGE, MediaType.VIDEO, MediaType.CAROUSEL)


def as_utc(value: datetime) -> datetime:
	"""Naive timestamps are read as UTC."""

	return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class ContentItem(BaseModel):
	"""A post as seen by the ranking engine. Counters are read-only."""

	id: str
	author_id: str
	created_at: datetime
	visibility: Visibility = Visibility.PUBLIC
	group_tag: Optional[str] = None
	media_type: MediaType = MediaType.TEXT
	tags: frozenset[str] = frozenset()
	like_count: int = Field(default=0, ge=0)
	comment_count: int = Field(default=0, ge=0)
	share_count: int = Field(default=0, ge=0)
	view_count: int = Field(default=0, ge=0)
	deleted_at: Optional[datetime] = None

	model_config = ConfigDict(frozen=True, from_attributes=True)

	@field_validator("like_count", "comment_count", "share_count", "view_count", mode="before")
	def _missing_counter_is_zero(cls, value):  # type: ignore[override]
		return 0 if value is None else value

	@field_validator("tags", mode="before")
	def _missing_tags_are_empty(cls, value):  # type: ignore[override]
		if value is None:
			return frozenset()
		if isinstance(value, str):
			return frozenset({value})
		return frozenset(str(tag) for tag in value if tag)

	@field_validator("created_at", "deleted_at", mode="after")
	def _timestamps_are_aware(cls, value):  # type: ignore[override]
		return None if value is None else as_utc(value)


class Connection(BaseModel):
	follower_id: str
	following_id: str
	status: ConnectionStatus = ConnectionStatus.PENDING

	model_config = ConfigDict(from_attributes=True)


class Interaction(BaseModel):
	"""A like recorded by ``user_id`` against a post or a comment."""

	user_id: str
	target_id: str
	target_type: TargetType = TargetType.CONTENT
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)


class PreferenceProfile(BaseModel):
	"""Favoured tags and media types derived from a user's like history."""

	preferred_tags: list[str] = Field(default_factory=list)
	preferred_media_types: list[MediaType] = Field(default_factory=lambda: list(DEFAULT_MEDIA_PREFERENCES))

	@classmethod
	def neutral(cls) -> "PreferenceProfile":
		return cls()


class ScoredCandidate(BaseModel):
	"""Score of one candidate within a single ranking call."""

	item: ContentItem
	score: float
	reasons: list[str] = Field(default_factory=list)
	factors: dict[str, float] = Field(default_factory=dict)

	@property
	def item_id(self) -> str:
		return self.item.id


class RankingRequest(BaseModel):
	"""Raw request as received from the HTTP layer.

	``mode`` and ``time_window`` stay plain strings here; the ranking service
	validates them and reports bad values as ``InvalidRequestError``.
	"""

	user_id: str
	mode: str
	page: int = 1
	page_size: int = 20
	group_tag: Optional[str] = None
	time_window: Optional[str] = None


class RankingResult(BaseModel):
	items: list[ContentItem] = Field(default_factory=list)
	has_more: bool = False
	page: int = 1
	page_size: int = 0
	mode: Optional[FeedMode] = None


__all__ = [
	"Connection",
	"ConnectionStatus",
	"ContentItem",
	"DEFAULT_MEDIA_PREFERENCES",
	"FeedMode",
	"Interaction",
	"MediaType",
	"PreferenceProfile",
	"RankingRequest",
	"RankingResult",
	"ScoredCandidate",
	"TargetType",
	"TimeWindow",
	"Visibility",
	"as_utc",
]
