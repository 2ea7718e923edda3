"""
Rate limiting implementations for controlling API request rates.

Provides a thread-safe minimum-interval gate so that outbound geocode
calls stay under the provider's request-rate policy.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from .base import RateLimiter

logger = logging.getLogger(__name__)


class Clock:
    """Monotonic time source. Swap for a fake in tests."""

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


SYSTEM_CLOCK = Clock()


class MinIntervalRateLimiter(RateLimiter):
    """
    Rate gate with a fixed minimum spacing between acquisitions.

    Each acquire() waits until `min_interval_s` has elapsed since the
    previous acquire() returned, then records the new instant. The
    read-wait-write sequence runs under one lock, so concurrent callers
    queue up rather than under-wait together.
    """

    def __init__(self, min_interval_s: float, clock: Optional[Clock] = None):
        """
        Initialize rate gate.

        Args:
            min_interval_s: Minimum seconds between two acquisitions
            clock: Time source (defaults to the system monotonic clock)
        """
        if min_interval_s <= 0:
            raise ValueError("min_interval_s must be > 0")

        self.min_interval_s = float(min_interval_s)
        self.clock = clock or SYSTEM_CLOCK
        self.last_request_at: Optional[float] = None
        self.lock = threading.Lock()

    def acquire(self) -> None:
        with self.lock:
            if self.last_request_at is not None:
                delay_needed = self.last_request_at + self.min_interval_s - self.clock.monotonic()
                if delay_needed > 0:
                    logger.debug(f"Rate limiter sleeping {delay_needed:.3f}s")
                    self.clock.sleep(delay_needed)
            self.last_request_at = self.clock.monotonic()

    def mark(self) -> None:
        with self.lock:
            self.last_request_at = self.clock.monotonic()

    def raise_floor(self, min_interval_s: float) -> None:
        """Widen the interval; never narrows it."""
        with self.lock:
            if min_interval_s > self.min_interval_s:
                self.min_interval_s = float(min_interval_s)


class NoOpRateLimiter(RateLimiter):
    """
    Rate limiter that does nothing (for testing/development).
    """

    def acquire(self) -> None:
        """Do nothing."""
        pass


_shared_limiter: Optional[MinIntervalRateLimiter] = None
_shared_lock = threading.Lock()


def shared_rate_limiter(min_interval_s: float) -> MinIntervalRateLimiter:
    """
    Return the process-wide rate limiter, creating it on first use.

    Every geocode client built without an explicit limiter shares this one
    token. A later caller asking for a longer interval widens it; a shorter
    request keeps the existing floor.
    """
    global _shared_limiter
    with _shared_lock:
        if _shared_limiter is None:
            _shared_limiter = MinIntervalRateLimiter(min_interval_s)
            logger.info(f"Created shared rate limiter: {min_interval_s}s between requests")
        else:
            _shared_limiter.raise_floor(min_interval_s)
        return _shared_limiter


def reset_shared_rate_limiter() -> None:
    """Drop the process-wide limiter (used by tests)."""
    global _shared_limiter
    with _shared_lock:
        _shared_limiter = None
