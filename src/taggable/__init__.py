"""taggable - Tag-based invalidation for Redis caches."""

# Adapters (async only)
from taggable.adapters import (
    AsyncMemoryStore,
    AsyncRedisStore,
    AsyncStore,
)

# Core API
from taggable.cache import Cache
from taggable.client import Taggable, create_taggable
from taggable.debouncer import Command, Debouncer

# Duration parsing
from taggable.duration import parse_duration, to_seconds
from taggable.errors import LockError, TaggableError
from taggable.lock import DistributedLock, LockBackend, LockHandle
from taggable.reference_index import ReferenceIndex
from taggable.tag_set import TagSet
from taggable.tagged_cache import TaggedCache

# Core types
from taggable.types import (
    Continuation,
    Duration,
    LockConfig,
    ScanPage,
)

__version__ = "0.1.0"

__all__ = [
    "AsyncMemoryStore",
    "AsyncRedisStore",
    "AsyncStore",
    "Cache",
    "Command",
    "Continuation",
    "Debouncer",
    "DistributedLock",
    "Duration",
    "LockBackend",
    "LockConfig",
    "LockError",
    "LockHandle",
    "ReferenceIndex",
    "ScanPage",
    "TagSet",
    "Taggable",
    "TaggableError",
    "TaggedCache",
    "create_taggable",
    "parse_duration",
    "to_seconds",
]
