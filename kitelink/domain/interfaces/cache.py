"""Interface for response caching.

Defines the contract for storing and retrieving slow-changing payloads
(e.g. the instrument master list) with a TTL.
"""

import abc
from typing import Any, Optional

from ..models.common import CacheKey


class CacheService(abc.ABC):
    """Abstract Base Class for cache operations."""

    @abc.abstractmethod
    async def get(self, key: CacheKey) -> Optional[Any]:
        """Retrieves an item from the cache asynchronously.

        Args:
            key: The cache key to retrieve.

        Returns:
            The cached item if present and younger than the TTL, otherwise None.
        """
        pass

    @abc.abstractmethod
    async def set(self, key: CacheKey, value: Any) -> None:
        """Stores an item, replacing any previous entry and its timestamp.

        Args:
            key: The cache key to store the item under.
            value: The item to store.
        """
        pass

    @property
    @abc.abstractmethod
    def enabled(self) -> bool:
        """False when every get is a miss and every set is dropped."""
        pass
