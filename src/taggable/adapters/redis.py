"""Redis store adapter."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import redis.asyncio as redis

# Deletes the lock key only while it still holds our token.
_COMPARE_AND_DELETE = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("DEL", KEYS[1])
else
    return 0
end
"""


def _decode(member: bytes | str) -> str:
    if isinstance(member, bytes):
        return member.decode("utf-8")
    return member


class AsyncRedisStore:
    """Async store over a ``redis.asyncio.Redis`` client.

    Works with any client exposing the redis-py async command API, including
    ``redis.asyncio.RedisCluster`` as long as multi-key writes stay in one slot.
    """

    def __init__(
        self,
        client: Any,  # redis.asyncio.Redis
        *,
        key_prefix: str = "",
    ) -> None:
        self._client = client
        self._key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, *, key_prefix: str = "", **kwargs: Any) -> AsyncRedisStore:
        """Create a store with a pooled client for the given Redis URL."""
        client = redis.from_url(url, **kwargs)  # type: ignore[no-untyped-call]
        return cls(client, key_prefix=key_prefix)

    @property
    def client(self) -> Any:
        """The wrapped redis client."""
        return self._client

    @property
    def key_prefix(self) -> str:
        """Prefix prepended to every key."""
        return self._key_prefix

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    async def get(self, key: str) -> Any | None:
        """Get the value stored at a key."""
        return await self._client.get(self._key(key))

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
        result = await self._client.set(self._key(key), value, ex=ex, px=px, nx=nx)
        return bool(result)

    async def mset(self, mapping: Mapping[str, Any]) -> None:
        """Store several values in one write."""
        await self._client.mset({self._key(k): v for k, v in mapping.items()})

    async def incrby(self, key: str, amount: int) -> int:
        """Increment a numeric value."""
        return int(await self._client.incrby(self._key(key), amount))

    async def decrby(self, key: str, amount: int) -> int:
        """Decrement a numeric value."""
        return int(await self._client.decrby(self._key(key), amount))

    async def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""
        if not keys:
            return 0
        return int(await self._client.delete(*(self._key(k) for k in keys)))

    async def sadd(self, key: str, *members: str) -> int:
        """Add members to a set."""
        return int(await self._client.sadd(self._key(key), *members))

    async def srem(self, key: str, *members: str) -> int:
        """Remove members from a set."""
        if not members:
            return 0
        return int(await self._client.srem(self._key(key), *members))

    async def sscan(
        self, key: str, cursor: int = 0, count: int | None = None
    ) -> tuple[int, list[str]]:
        """Scan one page of a set; a returned cursor of 0 ends the scan."""
        next_cursor, members = await self._client.sscan(
            self._key(key), cursor=cursor, count=count
        )
        return int(next_cursor), [_decode(m) for m in members]

    async def expire(self, key: str, seconds: int) -> bool:
        """Expire a key after a number of seconds."""
        return bool(await self._client.expire(self._key(key), seconds))

    async def pexpire(self, key: str, millis: int) -> bool:
        """Expire a key after a number of milliseconds."""
        return bool(await self._client.pexpire(self._key(key), millis))

    async def ttl(self, key: str) -> int:
        """Remaining TTL in seconds (-1 without expiry, -2 when absent)."""
        return int(await self._client.ttl(self._key(key)))

    async def compare_and_delete(self, key: str, expected: str) -> bool:
        """Delete a key only while it holds the expected value."""
        result = await self._client.eval(_COMPARE_AND_DELETE, 1, self._key(key), expected)
        return bool(result)

    async def flushdb(self) -> None:
        """Remove every key of the current database."""
        await self._client.flushdb()

    async def aclose(self) -> None:
        """Close the Redis connection."""
        await self._client.aclose()
