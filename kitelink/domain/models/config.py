"""Immutable configuration value objects for one client instance."""

from dataclasses import dataclass, field
from typing import Optional

DEFAULT_BASE_URL = "https://api.kite.trade"
DEFAULT_LOGIN_URL = "https://kite.trade/connect/login"
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class RetryPolicy:
    """Retry/backoff settings. Delays are in seconds.

    max_retries=0 means exactly one attempt.
    """
    max_retries: int = 3
    base_delay: float = 0.2
    max_delay: float = 5.0
    exponential_backoff: bool = True
    # Retry non-GET endpoints on 5xx/network failures too (only 429 otherwise).
    retry_non_idempotent: bool = False

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0.")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0.")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay.")

    def backoff_delay(self, attempt: int) -> float:
        """Delay before the retry that follows `attempt` (0-based)."""
        if not self.exponential_backoff:
            return self.base_delay
        return min(self.base_delay * (2 ** attempt), self.max_delay)


@dataclass(frozen=True)
class CacheConfig:
    """Response cache settings. ttl is in seconds."""
    ttl: float = 60 * 60.0
    max_entries: int = 1000

    def __post_init__(self):
        if self.ttl <= 0:
            raise ValueError("Cache ttl must be positive.")
        if self.max_entries <= 0:
            raise ValueError("Cache max_entries must be positive.")


@dataclass(frozen=True)
class KiteConnectConfig:
    """Client-wide settings. Response caching is off unless `cache` is given."""
    enable_rate_limiting: bool = True
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    cache: Optional[CacheConfig] = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    base_url: str = DEFAULT_BASE_URL
