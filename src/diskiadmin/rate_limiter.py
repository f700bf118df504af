"""Adaptive rate limiter with jitter for API-Football request pacing.

API-Football enforces per-minute and per-day request quotas and answers
429 once the minute quota is spent. The limiter spaces requests with a
randomized delay, backs off when the API pushes back and recovers
gradually on success. Time already spent between requests counts toward
the delay.

Fully async -- uses asyncio.sleep and asyncio.Lock so concurrent callers
are serialized without blocking the event loop.
"""

import asyncio
import logging
import random
import time

from diskiadmin.config import AdminConfig

logger = logging.getLogger(__name__)


class RateLimiter:
    """Manages delays between API requests with jitter and adaptive backoff.

    The delay between requests is randomized within
    [current_delay, current_delay * 1.5]. On 429 responses call backoff()
    to increase the delay; on successes call recover() to decrease it.
    """

    def __init__(self, config: AdminConfig | None = None):
        if config is None:
            config = AdminConfig()

        self._min_delay = config.min_delay
        self._backoff_factor = config.backoff_factor
        self._recovery_factor = config.recovery_factor
        self._max_backoff = config.max_backoff
        self._current_delay = config.min_delay
        self._last_request_time: float = 0.0
        self._lock = asyncio.Lock()

    @property
    def current_delay(self) -> float:
        """Current base delay value in seconds."""
        return self._current_delay

    async def wait(self) -> float:
        """Sleep for a jittered delay, accounting for elapsed time.

        Returns:
            The jittered delay value (before elapsed-time adjustment).
        """
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_request_time

            jittered_delay = random.uniform(
                self._current_delay, self._current_delay * 1.5
            )
            remaining = max(0.0, jittered_delay - elapsed)

            if remaining > 0:
                await asyncio.sleep(remaining)

            self._last_request_time = time.monotonic()
            return jittered_delay

    def backoff(self) -> None:
        """Increase delay after the API signalled a quota problem."""
        self._current_delay = min(
            max(self._current_delay, self._min_delay, 0.1) * self._backoff_factor,
            self._max_backoff,
        )
        logger.warning(
            "Rate limiter backoff: delay now %.1fs", self._current_delay
        )

    def recover(self) -> None:
        """Gradually decrease delay after a successful request."""
        self._current_delay = max(
            self._current_delay * self._recovery_factor,
            self._min_delay,
        )
