"""Retry helper for transient browser failures."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

BACKOFF_BASE_S = 1.0


@dataclass
class RetryResult(Generic[T]):
    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    attempts: int = 0


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    name: str = "Operation",
) -> RetryResult[T]:
    """Run ``operation`` up to ``max_retries`` times with linear backoff.

    Waits ``1s * attempt`` between attempts. Never raises; the final error is
    reported as ``"<name> failed after N attempts: <message>"``.
    """
    attempts = max(1, max_retries)
    last_error: Any = None
    for attempt in range(1, attempts + 1):
        try:
            value = await operation()
            return RetryResult(success=True, value=value, attempts=attempt)
        except Exception as e:
            last_error = e
            logger.warning("%s attempt %d/%d failed: %s", name, attempt, attempts, e)
            if attempt < attempts:
                await asyncio.sleep(BACKOFF_BASE_S * attempt)

    return RetryResult(
        success=False,
        error=f"{name} failed after {attempts} attempts: {last_error}",
        attempts=attempts,
    )
