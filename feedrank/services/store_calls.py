"""Timeout and error translation around backing-store calls."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Optional, TypeVar

from feedrank.domain.exceptions import RetrievalError
from feedrank.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_store(source: str, awaitable: Awaitable[T], *, timeout: Optional[float]) -> T:
	"""Await a store call, turning failures and timeouts into ``RetrievalError``.

	No retries happen here. Cancellation is not caught so the caller's
	cancellation reaches the store.
	"""

	try:
		if timeout is None:
			return await awaitable
		return await asyncio.wait_for(awaitable, timeout=timeout)
	except RetrievalError:
		obs_metrics.mark_retrieval_error(source)
		raise
	except asyncio.TimeoutError as exc:
		obs_metrics.mark_retrieval_error(source)
		logger.warning("store call timed out", extra={"source": source, "timeout_s": timeout})
		raise RetrievalError(f"{source} timed out after {timeout}s", source=source) from exc
	except Exception as exc:
		obs_metrics.mark_retrieval_error(source)
		logger.warning("store call failed", extra={"source": source}, exc_info=True)
		raise RetrievalError(f"{source} failed: {exc}", source=source) from exc


async def gather_stores(*calls: Awaitable[Any]) -> list[Any]:
	"""Run store calls concurrently; the first failure cancels and reaps the rest."""

	tasks = [asyncio.ensure_future(call) for call in calls]
	try:
		done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
	except asyncio.CancelledError:
		for task in tasks:
			task.cancel()
		await asyncio.gather(*tasks, return_exceptions=True)
		raise
	failed = [task for task in tasks if task in done and task.exception() is not None]
	if failed:
		for task in pending:
			task.cancel()
		await asyncio.gather(*pending, return_exceptions=True)
		raise failed[0].exception()  # type: ignore[misc]
	return [task.result() for task in tasks]


__all__ = ["call_store", "gather_stores"]
