"""Exponential backoff for transient Gemini failures."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from .config import get_config

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSIENT_MARKERS: tuple[str, ...] = (
    "429",
    "quota",
    "resource_exhausted",
    "timeout",
    "500",
    "503",
    "service unavailable",
)


def _is_retryable(exc: Exception) -> bool:
    """Check if an exception message matches known transient patterns."""
    msg = str(exc).lower()
    return any(marker in msg for marker in _TRANSIENT_MARKERS)


async def with_retry(coro_factory: Callable[[], Awaitable[T]]) -> T:
    """Await ``coro_factory()`` until it succeeds or fails permanently.

    Non-transient errors and the final attempt's error propagate unchanged.
    The delay doubles per attempt, with up to one second of jitter, capped
    at ``retry_max_delay``.
    """
    cfg = get_config()
    attempts = cfg.retry_max_attempts

    for attempt in range(1, attempts + 1):
        try:
            return await coro_factory()
        except Exception as exc:
            if attempt == attempts or not _is_retryable(exc):
                raise
            delay = min(cfg.retry_base_delay * 2 ** (attempt - 1) + random.random(), cfg.retry_max_delay)
            logger.warning("Retry %d/%d after %.1fs: %s", attempt, attempts, delay, exc)
            await asyncio.sleep(delay)
    raise RuntimeError("retry loop exited without a result")
