"""Async tagging client."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from taggable.adapters.base import AsyncStore
from taggable.adapters.redis import AsyncRedisStore
from taggable.cache import Cache
from taggable.debouncer import Debouncer
from taggable.lock import DistributedLock, LockBackend
from taggable.reference_index import ReferenceIndex
from taggable.tag_set import TagSet
from taggable.tagged_cache import TaggedCache
from taggable.types import Duration, LockConfig


class Taggable:
    """Plain cache operations plus tagged views over one store.

    One instance owns one debouncer and one lock backend, shared by every
    view it hands out. Untagged operations delegate to a :class:`Cache`.
    """

    def __init__(
        self,
        store: AsyncStore,
        *,
        lock: LockBackend | None = None,
        lock_config: LockConfig | None = None,
        scan_count: int | None = None,
    ) -> None:
        if lock is not None and lock_config is not None:
            raise ValueError("Pass either lock or lock_config, not both")
        if scan_count is not None and scan_count <= 0:
            raise ValueError("scan_count must be positive")
        self._store = store
        self._debouncer = Debouncer(store)
        self._cache = Cache(store, self._debouncer)
        self._lock = lock or DistributedLock(store, lock_config)
        self._index = ReferenceIndex(
            store, debouncer=self._debouncer, scan_count=scan_count
        )

    @property
    def store(self) -> AsyncStore:
        return self._store

    @property
    def cache(self) -> Cache:
        return self._cache

    @property
    def debouncer(self) -> Debouncer:
        return self._debouncer

    @property
    def lock(self) -> LockBackend:
        return self._lock

    def tags(self, names: list[str], *, ttl: Duration | None = None) -> TaggedCache:
        """A fresh tagged view; its namespace is resolved on first use."""
        tag_set = TagSet(
            self._store,
            names,
            debouncer=self._debouncer,
            lock=self._lock,
            ttl=ttl,
        )
        return TaggedCache(self._cache, tag_set, self._index)

    # -------------------------------------------------------------------------
    # Untagged operations
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        return await self._cache.get(key)

    async def get_multiple(self, keys: list[str]) -> dict[str, Any | None]:
        return await self._cache.get_multiple(keys)

    async def set(
        self,
        key: str,
        value: Any,
        *,
        ex: int | None = None,
        px: int | None = None,
    ) -> None:
        await self._cache.set(key, value, ex=ex, px=px)

    async def setex(self, key: str, ttl_seconds: int, value: Any) -> None:
        await self._cache.setex(key, ttl_seconds, value)

    async def psetex(self, key: str, ttl_millis: int, value: Any) -> None:
        await self._cache.psetex(key, ttl_millis, value)

    async def set_multiple(
        self, values: Mapping[str, Any], ttl: int | None = None
    ) -> None:
        await self._cache.set_multiple(values, ttl)

    async def add(self, key: str, value: Any, ttl: int | None = None) -> bool:
        return await self._cache.add(key, value, ttl)

    async def delete(self, key: str) -> None:
        await self._cache.delete(key)

    async def delete_multiple(self, keys: list[str]) -> None:
        await self._cache.delete_multiple(keys)

    async def increment(self, key: str, value: int = 1) -> int:
        return await self._cache.increment(key, value)

    async def decrement(self, key: str, value: int = 1) -> int:
        return await self._cache.decrement(key, value)

    async def expire(self, key: str, seconds: int) -> bool:
        return await self._cache.expire(key, seconds)

    async def ttl(self, key: str) -> int:
        return await self._cache.ttl(key)

    async def clear(self) -> None:
        """Remove every key from the store's database."""
        await self._cache.clear()

    async def aclose(self) -> None:
        """Disconnect from the store."""
        await self._store.aclose()


def create_taggable(
    client: Any,
    *,
    key_prefix: str = "",
    lock_ttl: Duration = "5s",
    lock_retry_count: int = 10,
    lock_retry_delay: Duration = "200ms",
    lock_retry_jitter: Duration = "200ms",
    scan_count: int | None = None,
) -> Taggable:
    """Create a tagging client over Redis.

    Args:
        client: A ``redis.asyncio`` client, or a Redis URL
        key_prefix: Prefix applied to every key
        lock_ttl: Expiry of tag-version locks
        lock_retry_count: Extra lock attempts before giving up
        lock_retry_delay: Fixed wait between lock attempts
        lock_retry_jitter: Upper bound of random extra wait per attempt
        scan_count: SSCAN COUNT hint for reference-set pages

    Returns:
        Taggable instance with plain operations and ``tags()``
    """
    if isinstance(client, str):
        store = AsyncRedisStore.from_url(client, key_prefix=key_prefix)
    else:
        store = AsyncRedisStore(client, key_prefix=key_prefix)
    lock_config = LockConfig(
        ttl=lock_ttl,
        retry_count=lock_retry_count,
        retry_delay=lock_retry_delay,
        retry_jitter=lock_retry_jitter,
    )
    return Taggable(store, lock_config=lock_config, scan_count=scan_count)


__all__ = ["Taggable", "create_taggable"]
