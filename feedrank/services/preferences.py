"""Preference inference backed by the interaction log and content store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from feedrank.domain.models import PreferenceProfile, TargetType
from feedrank.domain.ports import ContentStore, InteractionLog
from feedrank.domain.query import NEWEST_FIRST, CandidateQuery
from feedrank.ranking.preferences import build_profile
from feedrank.services.store_calls import call_store


@dataclass(frozen=True, slots=True)
class ViewerSignals:
	profile: PreferenceProfile
	liked_ids: frozenset[str]


class PreferenceInference:
	"""Derives a viewer's preference profile on every call; nothing is cached."""

	def __init__(
		self,
		content: ContentStore,
		interactions: InteractionLog,
		*,
		timeout: Optional[float] = None,
	) -> None:
		self.content = content
		self.interactions = interactions
		self.timeout = timeout

	async def load(self, user_id: str) -> ViewerSignals:
		"""Read the like history once and derive both the profile and the liked set."""

		likes = await call_store(
			"interaction_log",
			self.interactions.list_interactions(user_id, TargetType.CONTENT),
			timeout=self.timeout,
		)
		liked_ids = frozenset(entry.target_id for entry in likes)
		if not liked_ids:
			return ViewerSignals(PreferenceProfile.neutral(), liked_ids)

		# Deleted posts still say something about taste.
		query = CandidateQuery(ids=liked_ids, include_deleted=True)
		liked_items = await call_store(
			"content_store",
			self.content.find_visible(query, NEWEST_FIRST, len(liked_ids)),
			timeout=self.timeout,
		)
		return ViewerSignals(build_profile(liked_items), liked_ids)

	async def infer_preferences(self, user_id: str) -> PreferenceProfile:
		signals = await self.load(user_id)
		return signals.profile


__all__ = ["PreferenceInference", "ViewerSignals"]
