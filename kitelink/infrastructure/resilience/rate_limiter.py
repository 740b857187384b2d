"""Per-category rate limiter.

Enforces a minimum spacing between consecutive requests of the same
rate limit category (Quote 1/s, Historical 3/s, Orders 10/s, Standard 10/s).
Categories are gated independently, each behind its own lock, so a
saturated category never delays another.

A caller reserves its send slot under a `threading.Lock` and then sleeps
until that slot without holding any lock. The limiter can therefore be
shared by tasks on different event loops and by different threads.

Note: the per-category request count is informational. Enforcement only
compares against the time since the last request; this is not a sliding
window or token bucket.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

from kitelink.domain.models.endpoints import Endpoint, KiteEndpoint, RateLimitCategory, resolve

logger = logging.getLogger(__name__)

EndpointLike = Union[KiteEndpoint, Endpoint, RateLimitCategory]


def _category_of(target: EndpointLike) -> RateLimitCategory:
    if isinstance(target, RateLimitCategory):
        return target
    if isinstance(target, KiteEndpoint):
        return resolve(target).category
    return target.category


@dataclass
class CategoryLimiterState:
    """Mutable timing state for one category.

    Timestamps come from the limiter's monotonic clock. The last timestamp
    may lie in the future when a caller has reserved a slot it is still
    sleeping towards.
    """
    category: RateLimitCategory
    last_request_timestamp: Optional[float] = None
    request_count_this_interval: int = 0

    @property
    def min_delay(self) -> float:
        return self.category.min_delay

    def delay_until_next_request(self, now: float) -> float:
        if self.last_request_timestamp is None:
            return 0.0
        elapsed = now - self.last_request_timestamp
        if elapsed >= self.min_delay:
            return 0.0
        return self.min_delay - elapsed

    def reserve(self, now: float) -> float:
        """Claims the earliest free slot at or after `now` and returns it."""
        slot = now + self.delay_until_next_request(now)
        self.last_request_timestamp = slot
        self.request_count_this_interval += 1
        return slot


@dataclass(frozen=True)
class CategoryStats:
    """Snapshot of one category's limiter state."""
    request_count: int
    requests_per_second: int
    last_request: Optional[float]
    next_available: Optional[float]
    # Clock reading when the snapshot was taken, same clock as the timestamps.
    taken_at: float = 0.0

    def is_at_limit(self) -> bool:
        return self.next_available is not None and self.next_available > self.taken_at

    def remaining_capacity(self) -> int:
        return max(0, self.requests_per_second - self.request_count)


@dataclass(frozen=True)
class RateLimiterStats:
    """Snapshot of every category's limiter state."""
    enabled: bool
    categories: Dict[RateLimitCategory, CategoryStats]


class RateLimiter:
    """Category-aware gate in front of every wire call."""

    def __init__(self, enabled: bool = True, clock: Callable[[], float] = time.monotonic):
        """Initializes state for every category up front.

        Args:
            enabled: When False, every operation is a no-op reporting "available now".
            clock: Monotonic clock in seconds (injectable for tests).
        """
        self._enabled = enabled
        self._clock = clock
        self._states: Dict[RateLimitCategory, CategoryLimiterState] = {
            category: CategoryLimiterState(category) for category in RateLimitCategory
        }
        self._locks: Dict[RateLimitCategory, threading.Lock] = {
            category: threading.Lock() for category in RateLimitCategory
        }
        logger.info(
            "RateLimiter initialized (enabled=%s): %s",
            enabled,
            ", ".join(f"{c.value}={c.requests_per_second}/s" for c in RateLimitCategory),
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled
        logger.info("Rate limiting %s.", "enabled" if enabled else "disabled")

    def can_request_immediately(self, target: EndpointLike) -> bool:
        """True if no request is recorded for the category or min_delay has elapsed."""
        return self.delay_until_next_request(target) == 0.0

    def delay_until_next_request(self, target: EndpointLike) -> float:
        """Seconds until the category is available again; 0.0 when available now."""
        if not self._enabled:
            return 0.0
        category = _category_of(target)
        with self._locks[category]:
            return self._states[category].delay_until_next_request(self._clock())

    async def wait_for_request(self, target: EndpointLike) -> float:
        """Reserves the next slot in the category, then suspends until it.

        Reservation is atomic under the category lock, so concurrent callers
        in one category (from any task, loop or thread) get slots at least
        min_delay apart, in reservation order. The sleep happens outside the
        lock and other categories are never blocked.

        Returns:
            The number of seconds slept (0.0 if no wait was needed).
        """
        if not self._enabled:
            return 0.0

        category = _category_of(target)
        with self._locks[category]:
            now = self._clock()
            delay = self._states[category].reserve(now) - now
        if delay > 0:
            logger.debug("Rate limiting: waiting %.3fs for %s category", delay, category.value)
            await asyncio.sleep(delay)
        return delay

    def get_stats(self) -> RateLimiterStats:
        """Per-category snapshot for observability."""
        now = self._clock()
        categories = {}
        for category, state in self._states.items():
            with self._locks[category]:
                last = state.last_request_timestamp
                count = state.request_count_this_interval
            categories[category] = CategoryStats(
                request_count=count,
                requests_per_second=category.requests_per_second,
                last_request=last,
                next_available=(last + state.min_delay) if last is not None else None,
                taken_at=now,
            )
        return RateLimiterStats(enabled=self._enabled, categories=categories)
