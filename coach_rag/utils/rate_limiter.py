"""Minimum-interval rate limiting for outbound provider calls.

Embedding providers publish a requests-per-minute ceiling (Gemini
``embedding-001``: 1500/min).  Rather than counting requests inside a
sliding window, the limiter spaces calls out evenly: each call waits until
at least ``60 / requests_per_minute`` seconds have passed since the
previous one.  1500/min therefore means a ~40 ms floor between calls.

Callers that arrive too early are delayed with ``asyncio.sleep`` -- they
are never rejected or dropped.

The "last request" timestamp lives on the limiter instance, so two
pipelines with separate clients get independent budgets, while several
coroutines sharing one client are serialized by an ``asyncio.Lock``.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

import structlog

logger = structlog.get_logger(logger_name=__name__)


class MinIntervalRateLimiter:
    """Spaces successive calls at least ``min_interval`` seconds apart.

    Parameters
    ----------
    requests_per_minute:
        The provider's ceiling.  Must be positive.
    clock:
        Monotonic clock returning seconds; injectable for tests.
    sleep:
        Coroutine function used to suspend; injectable for tests.
    """

    def __init__(
        self,
        requests_per_minute: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be positive")
        self._min_interval = 60.0 / requests_per_minute
        self._clock = clock
        self._sleep = sleep
        self._last_request_time: float | None = None
        self._lock = asyncio.Lock()

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def last_request_time(self) -> float | None:
        return self._last_request_time

    async def acquire(self) -> float:
        """Wait until the next call is allowed, then record it.

        Returns
        -------
        float
            Seconds spent waiting (``0.0`` when no delay was needed).
        """
        async with self._lock:
            waited = 0.0
            now = self._clock()
            if self._last_request_time is not None:
                elapsed = now - self._last_request_time
                if elapsed < self._min_interval:
                    waited = self._min_interval - elapsed
                    logger.debug("rate_limit_wait", wait_s=round(waited, 4))
                    await self._sleep(waited)
            self._last_request_time = self._clock()
            return waited
