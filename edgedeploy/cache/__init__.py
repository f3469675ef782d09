from .base import BaseCacheBackend
from .memory import InMemoryCacheBackend
from .name_resolver import NameResolver

__all__ = [
    'BaseCacheBackend',
    'InMemoryCacheBackend',
    'NameResolver',
]
