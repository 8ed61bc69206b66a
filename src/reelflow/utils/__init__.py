"""Shared utilities."""

from reelflow.utils.async_utils import run_async, with_deadline
from reelflow.utils.time import ensure_utc, parse_iso, utcnow

__all__ = ["ensure_utc", "parse_iso", "run_async", "utcnow", "with_deadline"]
