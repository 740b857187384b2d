"""Domain Events related to API calls and resilience.

Emitted by the dispatch pipeline when calls are deferred, retried, served
from cache, fail or succeed.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class ApiCallInitiated(DomainEvent):
    """Event triggered when a wire attempt is about to be made."""
    operation: str
    method: str
    path: str
    attempt_number: int = 1
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when a call returns a 2xx response."""
    operation: str
    status_code: int
    latency_ms: float
    attempts: int = 1
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when a call fails definitively (after retries)."""
    operation: str
    error_type: str
    error_message: str
    status_code: Optional[int] = None
    attempts: int = 1
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallDeferred(DomainEvent):
    """Event triggered when a call waits on its category's rate limit."""
    operation: str
    category: str
    wait_time_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed attempt."""
    operation: str
    attempt_number: int
    delay_seconds: float
    error_type: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class ResponseServedFromCache(DomainEvent):
    """Event triggered when a cacheable read is answered without a wire call."""
    operation: str
    cache_key: str
    timestamp: float = field(default_factory=time.time)
