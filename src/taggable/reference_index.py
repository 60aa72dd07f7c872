"""Reference index: which cache keys belong to which tag versions.

Each tag version owns a set at ``tags/<version-id>`` whose members are the
fully-qualified (store-prefixed) keys of the entries written under it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from taggable.adapters.base import AsyncStore
from taggable.debouncer import Command, Debouncer
from taggable.tag_set import NAMESPACE_SEPARATOR
from taggable.types import Continuation, ScanPage

logger = logging.getLogger(__name__)

REFERENCE_PREFIX = "tags/"
DELETE_CHUNK_SIZE = 1000
DELETE_CONCURRENCY = 100


def _unique(items: Iterable[str]) -> list[str]:
    """Drop duplicates, keeping first-seen order."""
    return list(dict.fromkeys(items))


def intersect(member_lists: list[list[str]]) -> list[str]:
    """Members present in every list, ordered as in the first one."""
    if not member_lists:
        return []
    first, *rest = member_lists
    others = [set(members) for members in rest]
    return [m for m in _unique(first) if all(m in other for other in others)]


class ReferenceIndex:
    """Reference-set bookkeeping for one store."""

    def __init__(
        self,
        store: AsyncStore,
        *,
        debouncer: Debouncer,
        scan_count: int | None = None,
    ) -> None:
        self._store = store
        self._debouncer = debouncer
        self._scan_count = scan_count

    def reference_key(self, segment: str) -> str:
        return f"{REFERENCE_PREFIX}{segment}"

    def reference_keys(self, namespace: str) -> list[str]:
        return [self.reference_key(s) for s in namespace.split(NAMESPACE_SEPARATOR)]

    def full_key(self, key: str) -> str:
        """Key as the store reports it, prefix included."""
        return f"{self._store.key_prefix}{key}"

    def logical_key(self, full_key: str) -> str:
        """Strip the store prefix from a reference-set member."""
        prefix = self._store.key_prefix
        if prefix and full_key.startswith(prefix):
            return full_key[len(prefix) :]
        return full_key

    async def push_keys(self, namespace: str, key: str) -> None:
        """Register key in the reference set of every tag version in namespace."""
        full_key = self.full_key(key)
        await asyncio.gather(
            *(self._store.sadd(ref, full_key) for ref in self.reference_keys(namespace))
        )

    async def get_member_page(self, set_key: str, cursor: int = 0) -> ScanPage:
        """Fetch one page of a reference set."""
        next_cursor, members = await self._debouncer.debounce(
            Command.SSCAN, set_key, cursor, self._scan_count
        )
        return ScanPage(int(next_cursor), list(members))

    async def get_all_members(self, set_key: str) -> list[str]:
        """Page through a whole reference set."""
        members: list[str] = []
        cursor = 0
        while True:
            page = await self.get_member_page(set_key, cursor)
            members.extend(page.members)
            cursor = page.cursor
            if cursor == 0:
                return _unique(members)

    async def intersection(self, tag_ids: list[str]) -> list[str]:
        """Logical keys referenced by every one of the given tag versions."""
        member_lists = await asyncio.gather(
            *(self.get_all_members(self.reference_key(t)) for t in tag_ids)
        )
        return [self.logical_key(m) for m in intersect(list(member_lists))]

    async def delete_values(self, keys: list[str]) -> None:
        """Delete entries by logical key, in bounded concurrent chunks."""
        keys = _unique(keys)
        if not keys:
            return
        semaphore = asyncio.Semaphore(DELETE_CONCURRENCY)

        async def delete_chunk(chunk: list[str]) -> None:
            async with semaphore:
                await self._store.delete(*chunk)

        await asyncio.gather(
            *(
                delete_chunk(keys[i : i + DELETE_CHUNK_SIZE])
                for i in range(0, len(keys), DELETE_CHUNK_SIZE)
            )
        )

    async def forget(self, tag_ids: list[str], keys: list[str]) -> None:
        """Remove keys from the reference sets of the given tag versions."""
        if not keys:
            return
        members = [self.full_key(k) for k in keys]
        await asyncio.gather(
            *(self._store.srem(self.reference_key(t), *members) for t in tag_ids)
        )

    def batch_delete_tag_members(self, set_key: str, cursor: int = 0) -> Continuation:
        """Trampoline step: delete one page of a reference set and its entries.

        The returned continuation resolves to the next step, or None once the
        scan cursor comes back as 0.
        """

        async def step() -> Continuation | None:
            page = await self.get_member_page(set_key, cursor)
            members = _unique(page.members)
            if members:
                await asyncio.gather(
                    self._store.srem(set_key, *members),
                    self.delete_values([self.logical_key(m) for m in members]),
                )
            logger.debug(
                "references.page_deleted set=%s size=%d next=%d",
                set_key,
                len(members),
                page.cursor,
            )
            if page.cursor == 0:
                return None
            return self.batch_delete_tag_members(set_key, page.cursor)

        return step

    async def batch_delete(self, set_key: str) -> None:
        """Drain a reference set page by page without growing the stack."""
        step: Continuation | None = self.batch_delete_tag_members(set_key)
        while step is not None:
            step = await step()

    async def delete_references(self, tag_ids: list[str]) -> None:
        await self._store.delete(*(self.reference_key(t) for t in tag_ids))

    async def sweep(self, set_key: str) -> int:
        """Remove members whose entry no longer exists. Returns how many."""
        members = await self.get_all_members(set_key)
        ttls = await asyncio.gather(
            *(self._debouncer.debounce(Command.TTL, self.logical_key(m)) for m in members)
        )
        stale = [m for m, ttl in zip(members, ttls) if ttl == -2]
        if stale:
            await self._store.srem(set_key, *stale)
        logger.debug("references.swept set=%s removed=%d", set_key, len(stale))
        return len(stale)
