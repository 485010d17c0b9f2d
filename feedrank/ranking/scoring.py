"""Pure scoring functions for personalized, trending and suggestion feeds."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from feedrank.domain.models import ContentItem, PreferenceProfile, ScoredCandidate, as_utc
from feedrank.ranking.weights import (
	PERSONALIZED,
	SUGGESTIONS,
	TRENDING,
	PersonalizedWeights,
	ScoreFactor,
	SuggestionWeights,
	TrendingWeights,
)


@dataclass(frozen=True, slots=True)
class ScoringContext:
	"""Everything a scorer knows about the viewer for one ranking call."""

	user_id: str
	now: datetime
	circle: frozenset[str] = frozenset()  # viewer plus accepted connections
	group_tag: Optional[str] = None
	liked_ids: frozenset[str] = frozenset()
	preferences: PreferenceProfile = field(default_factory=PreferenceProfile.neutral)


def hours_since(created_at: datetime, now: datetime) -> float:
	"""Age in hours, clamped at zero for posts stamped in the future."""

	delta = as_utc(now) - as_utc(created_at)
	return max(0.0, delta.total_seconds() / 3600.0)


def _candidate(item: ContentItem, factors: dict[ScoreFactor, float], reasons: list[str]) -> ScoredCandidate:
	return ScoredCandidate(
		item=item,
		score=float(sum(factors.values())),
		reasons=reasons,
		factors={factor.value: value for factor, value in factors.items()},
	)


def score_personalized(
	item: ContentItem,
	ctx: ScoringContext,
	weights: PersonalizedWeights = PERSONALIZED,
) -> ScoredCandidate:
	factors: dict[ScoreFactor, float] = {}
	reasons: list[str] = []

	hours = hours_since(item.created_at, ctx.now)
	recency = max(0.0, weights.recency_base - hours * weights.recency_decay_per_hour)
	factors[ScoreFactor.RECENCY] = recency * weights.recency_weight
	if hours < weights.recent_hours:
		reasons.append("Recent")

	engagement = (
		item.like_count * weights.like
		+ item.comment_count * weights.comment
		+ item.share_count * weights.share
	)
	factors[ScoreFactor.ENGAGEMENT] = min(engagement, weights.engagement_cap) * weights.engagement_weight
	if engagement > weights.high_engagement:
		reasons.append("High engagement")

	if item.author_id == ctx.user_id or item.author_id in ctx.circle:
		factors[ScoreFactor.PROXIMITY] = weights.proximity
		reasons.append("From connection")

	if ctx.group_tag is not None and item.group_tag == ctx.group_tag:
		factors[ScoreFactor.GROUP_MATCH] = weights.group_match
		reasons.append("Same group")

	if item.id in ctx.liked_ids:
		# Liked posts resurface on purpose.
		factors[ScoreFactor.PRIOR_ENGAGEMENT] = weights.prior_engagement
		reasons.append("You liked this")

	preferred_tags = ctx.preferences.preferred_tags
	matching = [tag for tag in preferred_tags if tag in item.tags]
	if matching:
		factors[ScoreFactor.TAG_AFFINITY] = len(matching) * weights.tag_affinity
		reasons.append(f"Tags: {', '.join(matching)}")

	if item.media_type in ctx.preferences.preferred_media_types:
		factors[ScoreFactor.MEDIA_AFFINITY] = weights.media_affinity
		reasons.append("Preferred media type")

	# Hour in the post's own timezone, not the viewer's.
	if weights.active_hours_start <= item.created_at.hour <= weights.active_hours_end:
		factors[ScoreFactor.ACTIVE_HOURS] = weights.active_hours

	return _candidate(item, factors, reasons)


def score_trending(
	item: ContentItem,
	ctx: ScoringContext,
	weights: TrendingWeights = TRENDING,
) -> ScoredCandidate:
	factors: dict[ScoreFactor, float] = {}

	hours = hours_since(item.created_at, ctx.now)
	velocity = (item.like_count + item.comment_count * weights.velocity_comment) / max(1.0, hours)
	factors[ScoreFactor.VELOCITY] = velocity * weights.velocity_weight

	total = item.like_count * weights.like + item.comment_count * weights.comment + item.share_count * weights.share
	factors[ScoreFactor.ENGAGEMENT] = total * weights.total_weight

	if hours < weights.hot_hours:
		factors[ScoreFactor.RECENCY_TIER] = weights.hot_bonus
	elif hours < weights.warm_hours:
		factors[ScoreFactor.RECENCY_TIER] = weights.warm_bonus

	rate = total / max(1, item.view_count)
	factors[ScoreFactor.ENGAGEMENT_RATE] = rate * weights.rate_weight

	return _candidate(item, factors, ["Trending"])


def score_suggestion(
	item: ContentItem,
	ctx: ScoringContext,
	weights: SuggestionWeights = SUGGESTIONS,
) -> ScoredCandidate:
	factors: dict[ScoreFactor, float] = {}

	if ctx.group_tag is not None and item.group_tag == ctx.group_tag:
		factors[ScoreFactor.GROUP_MATCH] = weights.group_match

	engagement = item.like_count + item.comment_count * weights.comment
	factors[ScoreFactor.ENGAGEMENT] = min(engagement, weights.engagement_cap)

	if hours_since(item.created_at, ctx.now) < weights.fresh_hours:
		factors[ScoreFactor.FRESHNESS] = weights.freshness

	return _candidate(item, factors, ["Suggested for you"])


def _rank_key(candidate: ScoredCandidate) -> tuple[float, float, str]:
	return (-candidate.score, -as_utc(candidate.item.created_at).timestamp(), candidate.item.id)


def rank_candidates(candidates: Iterable[ScoredCandidate]) -> list[ScoredCandidate]:
	"""Order by score desc; equal scores fall back to newest first, then id asc."""

	return sorted(candidates, key=_rank_key)


def newest_first(items: Iterable[ContentItem]) -> list[ContentItem]:
	return sorted(items, key=lambda item: (-as_utc(item.created_at).timestamp(), item.id))


__all__ = [
	"ScoringContext",
	"hours_since",
	"newest_first",
	"rank_candidates",
	"score_personalized",
	"score_suggestion",
	"score_trending",
]
