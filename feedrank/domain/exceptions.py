"""Custom exceptions raised by the ranking engine."""

from __future__ import annotations

from fastapi import status


class RankingError(Exception):
	"""Base class for ranking errors.

	``status_code`` and ``detail`` let the HTTP layer translate errors without
	knowing about individual subclasses.
	"""

	status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
	detail: str = "ranking_error"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class InvalidRequestError(RankingError):
	"""Raised for malformed ranking requests before any store is touched."""

	status_code = 422
	detail = "invalid_request"


class RetrievalError(RankingError):
	"""Raised when a backing store call fails or times out."""

	status_code = status.HTTP_503_SERVICE_UNAVAILABLE
	detail = "retrieval_failed"

	def __init__(self, detail: str | None = None, *, source: str | None = None) -> None:
		super().__init__(detail)
		self.source = source


__all__ = ["InvalidRequestError", "RankingError", "RetrievalError"]
