"""Content ranking engine for campus feeds."""

from feedrank.domain.exceptions import InvalidRequestError, RankingError, RetrievalError
from feedrank.domain.models import ContentItem, FeedMode, RankingRequest, RankingResult, TimeWindow
from feedrank.services.feed import FeedRankingService

__all__ = [
	"ContentItem",
	"FeedMode",
	"FeedRankingService",
	"InvalidRequestError",
	"RankingError",
	"RankingRequest",
	"RankingResult",
	"RetrievalError",
	"TimeWindow",
]
