"""Retry policy for detector and resolver calls.

The pipeline never calls a collaborator directly: every call goes
through :meth:`RetryPolicy.call`, which bounds each attempt with a
timeout and sleeps ``base_delay * backoff ** (attempt - 1)`` seconds
between attempts.  After the last attempt the final exception
propagates unchanged; the caller turns it into an item failure.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from jobcatalog.config import IngestionConfig

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt count and exponential backoff schedule.

    ``max_attempts`` counts the first call, so ``max_attempts=1`` means
    no retry at all.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    backoff: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            msg = f"max_attempts must be >= 1, got {self.max_attempts}"
            raise ValueError(msg)
        if self.base_delay < 0 or self.backoff < 1:
            msg = "base_delay must be >= 0 and backoff >= 1"
            raise ValueError(msg)

    @classmethod
    def from_config(cls, config: IngestionConfig) -> RetryPolicy:
        return cls(max_attempts=config.max_retries, base_delay=config.retry_delay)

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number *attempt* (1-based)."""
        return self.base_delay * (self.backoff ** (attempt - 1))

    async def call(
        self,
        fn: Callable[[], Awaitable[_T]],
        *,
        timeout: float | None = None,
        operation: str = "call",
    ) -> _T:
        """Await ``fn()`` until it succeeds or attempts run out.

        *fn* must build a fresh awaitable on each call.  A timed-out
        attempt raises :class:`TimeoutError` and is retried like any
        other failure.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                if timeout is None:
                    return await fn()
                return await asyncio.wait_for(fn(), timeout=timeout)
            except Exception as exc:
                if attempt == self.max_attempts:
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    "%s attempt %d/%d failed, retrying in %.1fs: %s",
                    operation,
                    attempt,
                    self.max_attempts,
                    delay,
                    str(exc) or type(exc).__name__,
                )
                await asyncio.sleep(delay)

        # Unreachable: the loop either returns or re-raises
        msg = "retry loop exited without a result"
        raise AssertionError(msg)
