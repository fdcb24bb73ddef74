"""
Interval Rate Limiter.

This module enforces a minimum idle gap between the end of one page analysis
and the start of the next, so that only one request at a time, at a steady
pace, reaches the audited site.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

from site_audit.constants import DEFAULT_RATE_LIMIT_SECONDS

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Configuration for rate limiter."""
    # Minimum idle time between one analysis ending and the next starting (seconds)
    min_interval: float = DEFAULT_RATE_LIMIT_SECONDS


@dataclass
class RateLimiterMetrics:
    """Current rate limiter statistics."""
    min_interval: float
    total_requests: int
    total_waits: int
    total_wait_time: float
    last_finished_at: Optional[float]


class IntervalRateLimiter:
    """
    Fixed-interval rate limiter.

    ``mark()`` records that a request has finished. ``wait()`` suspends until
    at least ``min_interval`` seconds have passed since the last mark, so a
    slow page still gets the full pause after it. If nothing has been marked
    yet, as after a process restart, ``wait()`` waits the full interval.
    """

    def __init__(self, config: RateLimitConfig | None = None):
        """
        Initialize rate limiter.

        Args:
            config: Rate limit configuration
        """
        self.config = config or RateLimitConfig()

        self._last_finished_at: float | None = None
        self._lock = asyncio.Lock()

        # Statistics
        self._total_requests = 0
        self._total_waits = 0
        self._total_wait_time = 0.0

    def mark(self) -> None:
        """Record that a request has just finished."""
        self._last_finished_at = time.monotonic()
        self._total_requests += 1

    async def wait(self) -> float:
        """
        Wait out the remainder of the interval since the last finished request.

        Returns:
            Actual time waited (seconds)
        """
        async with self._lock:
            if self._last_finished_at is not None:
                elapsed = time.monotonic() - self._last_finished_at
                wait_time = max(0.0, self.config.min_interval - elapsed)
            else:
                wait_time = self.config.min_interval

            if wait_time > 0:
                logger.debug(f"Rate limiter: waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)
                self._total_waits += 1
                self._total_wait_time += wait_time

            return wait_time

    def get_metrics(self) -> RateLimiterMetrics:
        """
        Get current limiter statistics.

        Returns:
            RateLimiterMetrics snapshot
        """
        return RateLimiterMetrics(
            min_interval=self.config.min_interval,
            total_requests=self._total_requests,
            total_waits=self._total_waits,
            total_wait_time=self._total_wait_time,
            last_finished_at=self._last_finished_at,
        )

    def reset(self) -> None:
        """Reset rate limiter to initial state."""
        self._last_finished_at = None
        self._total_requests = 0
        self._total_waits = 0
        self._total_wait_time = 0.0

    @property
    def min_interval(self) -> float:
        """Minimum idle time between two requests."""
        return self.config.min_interval
