from abc import ABC, abstractmethod
from typing import Any, Optional


class BaseCacheBackend(ABC):
    """
    Base class for lookup caches.

    Implementations must be safe under concurrent access from several
    asyncio tasks.
    """

    @abstractmethod
    async def get(self, key: Any) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key (tuples are joined with ':')

        Returns:
            Cached value or None if not found
        """
        pass

    @abstractmethod
    async def set(self, key: Any, value: Any):
        """Store a value, evicting an older entry if the cache is full"""
        pass

    @abstractmethod
    async def clear(self):
        """Clear all entries from cache"""
        pass
