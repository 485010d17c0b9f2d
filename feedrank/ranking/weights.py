"""Weight tables for the three feed scorers.

Every constant here is part of the scoring contract; changing one changes
which posts make the cut.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ScoreFactor(str, Enum):
	RECENCY = "recency"
	ENGAGEMENT = "engagement"
	PROXIMITY = "proximity"
	GROUP_MATCH = "group_match"
	PRIOR_ENGAGEMENT = "prior_engagement"
	TAG_AFFINITY = "tag_affinity"
	MEDIA_AFFINITY = "media_affinity"
	ACTIVE_HOURS = "active_hours"
	VELOCITY = "velocity"
	RECENCY_TIER = "recency_tier"
	ENGAGEMENT_RATE = "engagement_rate"
	FRESHNESS = "freshness"


@dataclass(frozen=True, slots=True)
class PersonalizedWeights:
	recency_base: float = 100.0
	recency_decay_per_hour: float = 2.0
	recency_weight: float = 0.3
	like: float = 2.0
	comment: float = 3.0
	share: float = 5.0
	engagement_cap: float = 200.0
	engagement_weight: float = 0.25
	proximity: float = 50.0
	group_match: float = 30.0
	prior_engagement: float = 100.0
	tag_affinity: float = 20.0
	media_affinity: float = 25.0
	active_hours: float = 10.0
	active_hours_start: int = 8
	active_hours_end: int = 22  # inclusive
	# reason tags only
	recent_hours: float = 24.0
	high_engagement: float = 50.0


@dataclass(frozen=True, slots=True)
class TrendingWeights:
	velocity_comment: float = 2.0
	velocity_weight: float = 50.0
	like: float = 1.0
	comment: float = 3.0
	share: float = 5.0
	total_weight: float = 2.0
	hot_hours: float = 6.0
	hot_bonus: float = 100.0
	warm_hours: float = 24.0
	warm_bonus: float = 50.0
	rate_weight: float = 200.0


@dataclass(frozen=True, slots=True)
class SuggestionWeights:
	group_match: float = 50.0
	comment: float = 2.0
	engagement_cap: float = 100.0
	fresh_hours: float = 48.0
	freshness: float = 30.0


PERSONALIZED = PersonalizedWeights()
TRENDING = TrendingWeights()
SUGGESTIONS = SuggestionWeights()

MAX_PREFERRED_TAGS = 10
MAX_PREFERRED_MEDIA_TYPES = 3


__all__ = [
	"MAX_PREFERRED_MEDIA_TYPES",
	"MAX_PREFERRED_TAGS",
	"PERSONALIZED",
	"PersonalizedWeights",
	"SUGGESTIONS",
	"ScoreFactor",
	"SuggestionWeights",
	"TRENDING",
	"TrendingWeights",
]
