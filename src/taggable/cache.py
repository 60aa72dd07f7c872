"""Plain (untagged) cache operations over a store."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from taggable.adapters.base import AsyncStore
from taggable.debouncer import Command, Debouncer


class Cache:
    """Key/value pass-through to the store."""

    def __init__(self, store: AsyncStore, debouncer: Debouncer) -> None:
        self._store = store
        self._debouncer = debouncer

    @property
    def store(self) -> AsyncStore:
        return self._store

    async def get(self, key: str) -> Any | None:
        """Retrieve an item from the cache by key."""
        return await self._debouncer.debounce(Command.GET, key)

    async def get_multiple(self, keys: list[str]) -> dict[str, Any | None]:
        """Retrieve several items; missing ones map to None."""
        values = await asyncio.gather(*(self.get(k) for k in keys))
        return dict(zip(keys, values))

    async def set(
        self,
        key: str,
        value: Any,
        *,
        ex: int | None = None,
        px: int | None = None,
    ) -> None:
        """Store an item, optionally expiring after ex seconds or px milliseconds."""
        await self._store.set(key, value, ex=ex, px=px)

    async def setex(self, key: str, ttl_seconds: int, value: Any) -> None:
        await self.set(key, value, ex=ttl_seconds)

    async def psetex(self, key: str, ttl_millis: int, value: Any) -> None:
        await self.set(key, value, px=ttl_millis)

    async def set_multiple(
        self, values: Mapping[str, Any], ttl: int | None = None
    ) -> None:
        """Store several items, each expiring after ttl seconds if given."""
        px = ttl * 1000 if ttl else None
        await asyncio.gather(
            *(self._store.set(k, v, px=px) for k, v in values.items())
        )

    async def add(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store an item only if the key does not exist yet."""
        px = ttl * 1000 if ttl else None
        return await self._store.set(key, value, px=px, nx=True)

    async def delete(self, key: str) -> None:
        await self._store.delete(key)

    async def delete_multiple(self, keys: list[str]) -> None:
        await asyncio.gather(*(self._store.delete(k) for k in keys))

    async def increment(self, key: str, value: int = 1) -> int:
        return await self._store.incrby(key, value)

    async def decrement(self, key: str, value: int = 1) -> int:
        return await self._store.decrby(key, value)

    async def expire(self, key: str, seconds: int) -> bool:
        return await self._store.expire(key, seconds)

    async def ttl(self, key: str) -> int:
        return await self._debouncer.debounce(Command.TTL, key)

    async def clear(self) -> None:
        """Remove every key from the store's database."""
        await self._store.flushdb()
