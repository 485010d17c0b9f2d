"""Observability helpers (structured logging and Prometheus metrics)."""

from feedrank.obs import logging, metrics  # noqa: F401

__all__ = ["logging", "metrics"]
