"""
Infrastructure Package.

Provides request pacing for polite single-flight crawling.
"""

from .rate_limiter import (
    IntervalRateLimiter,
    RateLimitConfig,
    RateLimiterMetrics,
)

__all__ = [
    "IntervalRateLimiter",
    "RateLimitConfig",
    "RateLimiterMetrics",
]
