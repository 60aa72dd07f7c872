"""In-memory store adapter (async only)."""

import asyncio
import itertools
import math
import time
from collections.abc import Mapping
from typing import Any


class _MemberSet:
    """Set members tagged with their insertion sequence.

    Scanning by sequence keeps cursors valid while members are removed
    mid-scan, the same guarantee SSCAN gives for members present throughout.
    """

    __slots__ = ("members",)

    def __init__(self) -> None:
        self.members: dict[str, int] = {}


class AsyncMemoryStore:
    """Async process-local store with Redis-like command semantics."""

    def __init__(self, *, key_prefix: str = "", page_size: int = 10) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self._key_prefix = key_prefix
        self._page_size = page_size
        self._data: dict[str, Any] = {}
        self._expires: dict[str, float] = {}
        self._sequence = itertools.count(1)
        self._lock = asyncio.Lock()

    @property
    def key_prefix(self) -> str:
        """Prefix prepended to every key."""
        return self._key_prefix

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def _alive(self, full_key: str) -> bool:
        """Drop the key if its deadline passed; report whether it exists."""
        deadline = self._expires.get(full_key)
        if deadline is not None and deadline <= time.monotonic():
            self._data.pop(full_key, None)
            del self._expires[full_key]
        return full_key in self._data

    def _member_set(self, full_key: str, *, create: bool) -> _MemberSet | None:
        if self._alive(full_key):
            value = self._data[full_key]
            if not isinstance(value, _MemberSet):
                raise TypeError(f"{full_key!r} does not hold a set")
            return value
        if not create:
            return None
        value = _MemberSet()
        self._data[full_key] = value
        return value

    def _write(self, full_key: str, value: Any, deadline: float | None) -> None:
        self._data[full_key] = value
        if deadline is None:
            self._expires.pop(full_key, None)
        else:
            self._expires[full_key] = deadline

    async def get(self, key: str) -> Any | None:
        """Get the value stored at a key."""
        full_key = self._key(key)
        async with self._lock:
            if not self._alive(full_key):
                return None
            value = self._data[full_key]
            if isinstance(value, _MemberSet):
                raise TypeError(f"{full_key!r} holds a set")
            return value

    async def set(
        self,
        key: str,
        value: Any,
        *,
        ex: int | None = None,
        px: int | None = None,
        nx: bool = False,
    ) -> bool:
        """Store a value, optionally with an expiry or only if absent."""
        full_key = self._key(key)
        deadline = None
        if ex is not None:
            deadline = time.monotonic() + ex
        elif px is not None:
            deadline = time.monotonic() + px / 1000
        async with self._lock:
            if nx and self._alive(full_key):
                return False
            self._write(full_key, value, deadline)
            return True

    async def mset(self, mapping: Mapping[str, Any]) -> None:
        """Store several values in one write."""
        async with self._lock:
            for key, value in mapping.items():
                self._write(self._key(key), value, None)

    async def incrby(self, key: str, amount: int) -> int:
        """Increment a numeric value."""
        full_key = self._key(key)
        async with self._lock:
            current = int(self._data[full_key]) if self._alive(full_key) else 0
            current += amount
            self._data[full_key] = current
            return current

    async def decrby(self, key: str, amount: int) -> int:
        """Decrement a numeric value."""
        return await self.incrby(key, -amount)

    async def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""
        removed = 0
        async with self._lock:
            for key in keys:
                full_key = self._key(key)
                if self._alive(full_key):
                    del self._data[full_key]
                    self._expires.pop(full_key, None)
                    removed += 1
        return removed

    async def sadd(self, key: str, *members: str) -> int:
        """Add members to a set."""
        async with self._lock:
            member_set = self._member_set(self._key(key), create=True)
            assert member_set is not None
            added = 0
            for member in members:
                if member not in member_set.members:
                    member_set.members[member] = next(self._sequence)
                    added += 1
            return added

    async def srem(self, key: str, *members: str) -> int:
        """Remove members from a set."""
        full_key = self._key(key)
        async with self._lock:
            member_set = self._member_set(full_key, create=False)
            if member_set is None:
                return 0
            removed = 0
            for member in members:
                if member_set.members.pop(member, None) is not None:
                    removed += 1
            # Redis drops empty sets
            if not member_set.members:
                del self._data[full_key]
                self._expires.pop(full_key, None)
            return removed

    async def sscan(
        self, key: str, cursor: int = 0, count: int | None = None
    ) -> tuple[int, list[str]]:
        """Scan one page of a set; a returned cursor of 0 ends the scan."""
        limit = count or self._page_size
        async with self._lock:
            member_set = self._member_set(self._key(key), create=False)
            if member_set is None:
                return 0, []
            remaining = sorted(
                (seq, member)
                for member, seq in member_set.members.items()
                if seq >= cursor
            )
        page = remaining[:limit]
        if len(remaining) <= limit:
            return 0, [member for _, member in page]
        return remaining[limit][0], [member for _, member in page]

    async def expire(self, key: str, seconds: int) -> bool:
        """Expire a key after a number of seconds."""
        return await self.pexpire(key, seconds * 1000)

    async def pexpire(self, key: str, millis: int) -> bool:
        """Expire a key after a number of milliseconds."""
        full_key = self._key(key)
        async with self._lock:
            if not self._alive(full_key):
                return False
            if millis <= 0:
                del self._data[full_key]
                self._expires.pop(full_key, None)
            else:
                self._expires[full_key] = time.monotonic() + millis / 1000
            return True

    async def ttl(self, key: str) -> int:
        """Remaining TTL in seconds (-1 without expiry, -2 when absent)."""
        full_key = self._key(key)
        async with self._lock:
            if not self._alive(full_key):
                return -2
            deadline = self._expires.get(full_key)
            if deadline is None:
                return -1
            return math.ceil(deadline - time.monotonic())

    async def compare_and_delete(self, key: str, expected: str) -> bool:
        """Delete a key only while it holds the expected value."""
        full_key = self._key(key)
        async with self._lock:
            if not self._alive(full_key) or self._data[full_key] != expected:
                return False
            del self._data[full_key]
            self._expires.pop(full_key, None)
            return True

    async def flushdb(self) -> None:
        """Remove every key of the current database."""
        async with self._lock:
            self._data.clear()
            self._expires.clear()

    async def aclose(self) -> None:
        """Disconnect from the store (no-op for memory)."""
        pass
