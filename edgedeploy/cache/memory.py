import asyncio
from typing import Any, Optional

from cachetools import LRUCache

from .base import BaseCacheBackend


class InMemoryCacheBackend(BaseCacheBackend):
    """
    Bounded LRU cache guarded by an asyncio.Lock.

    Entries never expire, so a process run keeps what it has looked up until
    the least recently used ones are pushed out by max_size.
    """

    def __init__(self, max_size: int = 1024):
        self.max_size = max_size
        self.lock = asyncio.Lock()
        self._cache: LRUCache = LRUCache(maxsize=max_size)

    def _make_key(self, key: Any) -> str:
        if isinstance(key, tuple):
            return ':'.join(str(k) for k in key)
        return str(key)

    def __len__(self) -> int:
        return len(self._cache)

    async def get(self, key: Any) -> Optional[Any]:
        async with self.lock:
            return self._cache.get(self._make_key(key))

    async def set(self, key: Any, value: Any):
        async with self.lock:
            self._cache[self._make_key(key)] = value

    async def clear(self):
        async with self.lock:
            self._cache.clear()
