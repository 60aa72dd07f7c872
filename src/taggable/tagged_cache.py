"""Tagged view over a cache."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from taggable.cache import Cache
from taggable.reference_index import ReferenceIndex
from taggable.tag_set import NAMESPACE_SEPARATOR, TagSet

R = TypeVar("R")


class TaggedCache:
    """Cache operations scoped to a set of tags.

    Writes register the entry under every tag's current version; reads and
    deletes select the entries carrying *all* of the view's tags.
    """

    def __init__(self, cache: Cache, tags: TagSet, index: ReferenceIndex) -> None:
        self._cache = cache
        self._tags = tags
        self._index = index

    @property
    def tags(self) -> TagSet:
        return self._tags

    async def _register(self, key: str) -> None:
        namespace = await self._tags.get_namespace()
        await self._index.push_keys(namespace, key)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def set(
        self,
        key: str,
        value: Any,
        *,
        ex: int | None = None,
        px: int | None = None,
    ) -> None:
        """Store an item and reference it from every tag of the view."""
        await asyncio.gather(
            self._register(key),
            self._cache.set(key, value, ex=ex, px=px),
        )

    async def setex(self, key: str, ttl_seconds: int, value: Any) -> None:
        await self.set(key, value, ex=ttl_seconds)

    async def psetex(self, key: str, ttl_millis: int, value: Any) -> None:
        await self.set(key, value, px=ttl_millis)

    async def set_multiple(
        self, values: Mapping[str, Any], ttl: int | None = None
    ) -> None:
        await asyncio.gather(
            *(self._register(k) for k in values),
            self._cache.set_multiple(values, ttl),
        )

    async def add(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store an item if absent; only a successful write is referenced."""
        added = await self._cache.add(key, value, ttl)
        if added:
            await self._register(key)
        return added

    async def increment(self, key: str, value: int = 1) -> int:
        _, result = await asyncio.gather(
            self._register(key), self._cache.increment(key, value)
        )
        return result

    async def decrement(self, key: str, value: int = 1) -> int:
        _, result = await asyncio.gather(
            self._register(key), self._cache.decrement(key, value)
        )
        return result

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        return await self._cache.get(key)

    async def get_multiple(self, keys: list[str]) -> dict[str, Any | None]:
        return await self._cache.get_multiple(keys)

    async def keys(self) -> list[str]:
        """Keys of the entries carrying every tag of the view."""
        tag_ids = await self._tags.tag_ids()
        return await self._index.intersection(tag_ids)

    async def list(self) -> list[Any | None]:
        """Values of the entries carrying every tag of the view.

        An entry that expired after being referenced shows up as None.
        """
        keys = await self.keys()
        if not keys:
            return []
        return list(await asyncio.gather(*(self._cache.get(k) for k in keys)))

    # -------------------------------------------------------------------------
    # Deletes and bulk operations
    # -------------------------------------------------------------------------

    async def delete(self, key: str) -> None:
        await self._cache.delete(key)

    async def delete_with_tags(self) -> None:
        """Delete the entries carrying every tag of the view."""
        tag_ids = await self._tags.tag_ids()
        keys = await self._index.intersection(tag_ids)
        if not keys:
            return
        await asyncio.gather(
            self._index.forget(tag_ids, keys),
            self._index.delete_values(keys),
        )

    async def batch_delete_with_tags(self) -> None:
        """Delete every entry referenced by any tag of the view, page by page."""
        tag_ids = await self._tags.tag_ids()
        await asyncio.gather(
            *(self._index.batch_delete(self._index.reference_key(t)) for t in tag_ids)
        )

    async def bulk(
        self,
        operation: Callable[[str], Awaitable[R]],
        concurrency: int | None = None,
    ) -> list[R]:
        """Apply operation to each key carrying every tag of the view.

        At most ``concurrency`` operations run at once; None means unbounded.
        """
        if concurrency is not None and concurrency <= 0:
            raise ValueError("concurrency must be positive")
        keys = await self.keys()
        if concurrency is None:
            return list(await asyncio.gather(*(operation(k) for k in keys)))

        semaphore = asyncio.Semaphore(concurrency)

        async def run(key: str) -> R:
            async with semaphore:
                return await operation(key)

        return list(await asyncio.gather(*(run(k) for k in keys)))

    async def invalidate_with_tags(self, concurrency: int | None = None) -> None:
        """Expire the entries carrying every tag of the view instead of deleting them."""
        await self.bulk(lambda key: self._cache.expire(key, 0), concurrency)

    async def flush(self) -> None:
        """Delete everything under the view's tags and rotate their versions."""
        namespace = await self._tags.get_namespace()
        tag_ids = namespace.split(NAMESPACE_SEPARATOR)
        await asyncio.gather(
            *(self._index.batch_delete(self._index.reference_key(t)) for t in tag_ids)
        )
        await self._index.delete_references(tag_ids)
        await self._tags.reset()

    async def sweep(self) -> int:
        """Drop references to entries that no longer exist. Returns how many."""
        tag_ids = await self._tags.tag_ids()
        removed = await asyncio.gather(
            *(self._index.sweep(self._index.reference_key(t)) for t in tag_ids)
        )
        return sum(removed)
