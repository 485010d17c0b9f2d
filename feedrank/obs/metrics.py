"""Central registry for Prometheus metrics emitted by the ranking engine."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

FEED_RANK_CANDIDATES = Counter(
	"feed_rank_candidates_total",
	"Candidates considered",
	["mode"],
)

FEED_RANK_DURATION = Histogram(
	"feed_rank_duration_ms",
	"Feed rank duration",
	["mode"],
	buckets=[5, 10, 20, 40, 80, 160, 320, 640],
)

FEED_RANK_SCORE_AVG = Gauge(
	"feed_rank_score_avg",
	"Average score of the selected page",
	["mode"],
)

FEED_RETRIEVAL_ERRORS = Counter(
	"feed_retrieval_errors_total",
	"Backing store calls that failed or timed out",
	["source"],
)

FEED_CACHE_EVENTS = Counter(
	"feed_cache_events_total",
	"Feed cache lookups by outcome",
	["event"],
)


def observe_rank(mode: str, *, candidates: int, elapsed_ms: float, top_scores: list[float]) -> None:
	FEED_RANK_CANDIDATES.labels(mode=mode).inc(candidates)
	FEED_RANK_DURATION.labels(mode=mode).observe(elapsed_ms)
	if top_scores:
		FEED_RANK_SCORE_AVG.labels(mode=mode).set(sum(top_scores) / len(top_scores))


def mark_retrieval_error(source: str) -> None:
	FEED_RETRIEVAL_ERRORS.labels(source=source).inc()


def mark_cache(event: str) -> None:
	FEED_CACHE_EVENTS.labels(event=event).inc()
