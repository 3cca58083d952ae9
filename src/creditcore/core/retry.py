"""Bounded retry with exponential backoff for transient store failures."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from creditcore.core.errors import StorageUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

BACKOFF_JITTER_MAX = 0.2


def calculate_backoff(attempt: int, base_seconds: float) -> float:
    """Calculate backoff time with exponential factor and jitter.

    Args:
        attempt: Current attempt number (1-based)
        base_seconds: Delay before the first retry

    Returns:
        Backoff time in seconds
    """
    exponential = base_seconds * (2 ** (attempt - 1))
    jitter = random.uniform(0, BACKOFF_JITTER_MAX * base_seconds)
    return exponential + jitter


async def retry_unavailable(
    fn: Callable[[], Awaitable[T]],
    max_retries: int,
    base_seconds: float,
    label: str,
) -> T:
    """Await fn, retrying only on StorageUnavailable.

    StorageUnavailable is raised by stores strictly before any write, so a
    retry can never double-apply a change. Everything else propagates on the
    first failure.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await fn()
        except StorageUnavailable as e:
            if attempt > max_retries:
                logger.error("%s: store unavailable after %d attempts: %s", label, attempt, e)
                raise
            delay = calculate_backoff(attempt, base_seconds)
            logger.warning(
                "%s: store unavailable (attempt %d/%d), retrying in %.3fs: %s",
                label,
                attempt,
                max_retries + 1,
                delay,
                e,
            )
            await asyncio.sleep(delay)
