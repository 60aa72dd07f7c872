"""Store adapters for the taggable cache library (async only)."""

from taggable.adapters.base import AsyncStore
from taggable.adapters.memory import AsyncMemoryStore
from taggable.adapters.redis import AsyncRedisStore

__all__ = [
    "AsyncMemoryStore",
    "AsyncRedisStore",
    "AsyncStore",
]
