"""In-memory TTL cache for expensive, slow-changing responses.

Expiry is lazy: an entry older than the TTL is reported as absent on read
but is not deleted. There is no background sweep. Entries are only ever
replaced wholesale by `set`, or evicted oldest-first once the cache holds
more than `max_entries` keys.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional

from kitelink.domain.interfaces.cache import CacheService
from kitelink.domain.models.common import CacheKey
from kitelink.domain.models.config import CacheConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """Internal representation of a cache entry with its fetch time."""
    value: Any
    fetched_at: float


class ResponseCache(CacheService):
    """TTL cache guarded by a single lock per instance.

    Constructed with `config=None` the cache is disabled: `get` always misses
    and `set` does nothing.
    """

    def __init__(self, config: Optional[CacheConfig] = None, clock: Callable[[], float] = time.monotonic):
        self._config = config
        self._clock = clock
        self._entries: "OrderedDict[CacheKey, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        if config is None:
            logger.info("ResponseCache disabled.")
        else:
            logger.info(f"ResponseCache initialized: ttl={config.ttl}s, max_entries={config.max_entries}")

    @property
    def enabled(self) -> bool:
        return self._config is not None

    @property
    def ttl(self) -> Optional[float]:
        return self._config.ttl if self._config else None

    def _is_fresh(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.fetched_at < self._config.ttl

    async def get(self, key: CacheKey) -> Optional[Any]:
        if self._config is None:
            return None
        with self._lock:
            entry = self._entries.get(key)
            now = self._clock()
        if entry is None:
            logger.debug(f"Cache miss for key: {key}")
            return None
        if not self._is_fresh(entry, now):
            logger.debug(f"Cache entry expired for key: {key} (age {now - entry.fetched_at:.1f}s)")
            return None
        logger.debug(f"Cache hit for key: {key}")
        return entry.value

    async def set(self, key: CacheKey, value: Any) -> None:
        if self._config is None:
            return
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(value=value, fetched_at=self._clock())
            while len(self._entries) > self._config.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Cache full, evicted oldest key: {evicted}")
        logger.debug(f"Stored item in cache: key={key}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
