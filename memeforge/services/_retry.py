"""Bounded exponential backoff for transport-level failures."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from memeforge._log import get_logger
from memeforge.errors import NetworkFailure

logger = get_logger("services.retry")

_T = TypeVar("_T")


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 2
    base_delay: float = 0.2  # seconds
    max_delay: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number *attempt* (0-based)."""
        return min(self.base_delay * (2**attempt), self.max_delay)


NO_RETRY = RetryPolicy(max_retries=0)


async def call_with_retries(
    fn: Callable[[], Awaitable[_T]],
    policy: RetryPolicy,
    *,
    label: str,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> _T:
    """Await *fn* with retry-on-:class:`NetworkFailure` logic.

    Retries up to ``policy.max_retries`` times with doubling, capped delays.
    Any other exception, including ``ServiceFailure``, propagates at once.
    When the budget is spent the last ``NetworkFailure`` is re-raised.
    """
    attempts = 1 + policy.max_retries
    last_error: NetworkFailure | None = None
    for attempt in range(attempts):
        try:
            return await fn()
        except NetworkFailure as e:
            last_error = e
            if attempt < attempts - 1:
                delay = policy.delay_for(attempt)
                logger.info(
                    "%s: %s (attempt %d/%d), retrying in %.2fs",
                    label,
                    e,
                    attempt + 1,
                    attempts,
                    delay,
                )
                await sleep(delay)
    logger.warning("%s failed after %d attempt(s): %s", label, attempts, last_error)
    raise last_error  # type: ignore[misc]
