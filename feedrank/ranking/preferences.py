"""Preference profile derivation from liked posts."""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from feedrank.domain.models import ContentItem, MediaType, PreferenceProfile
from feedrank.ranking.weights import MAX_PREFERRED_MEDIA_TYPES, MAX_PREFERRED_TAGS


def _top(counts: Counter, limit: int, *, key=str) -> list:
	ordered = sorted(counts.items(), key=lambda entry: (-entry[1], key(entry[0])))
	return [value for value, _count in ordered[:limit]]


def build_profile(liked_items: Iterable[ContentItem]) -> PreferenceProfile:
	"""Tally tags and media types over liked posts.

	Ties are broken alphabetically so the profile does not depend on the
	order the store returned the posts in.
	"""

	tag_counts: Counter[str] = Counter()
	media_counts: Counter[MediaType] = Counter()
	for item in liked_items:
		tag_counts.update(item.tags)
		media_counts[item.media_type] += 1

	if not media_counts:
		return PreferenceProfile.neutral()

	return PreferenceProfile(
		preferred_tags=_top(tag_counts, MAX_PREFERRED_TAGS),
		preferred_media_types=_top(media_counts, MAX_PREFERRED_MEDIA_TYPES, key=lambda media: media.value),
	)


__all__ = ["build_profile"]
