"""Base protocol for the key-value store behind a tagged cache."""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class AsyncStore(Protocol):
    """Async store interface.

    Key arguments are logical keys; the store applies ``key_prefix`` itself.
    Set members are stored verbatim.
    """

    @property
    def key_prefix(self) -> str:
        """Prefix prepended to every key written to the backend."""
        ...

    async def get(self, key: str) -> Any | None:
        """Get the value stored at key."""
        ...

    async def set(
        self,
        key: str,
        value: Any,
        *,
        ex: int | None = None,
        px: int | None = None,
        nx: bool = False,
    ) -> bool:
        """Set a value, optionally expiring it. Returns whether it was written."""
        ...

    async def mset(self, mapping: Mapping[str, Any]) -> None:
        """Set several keys in one write."""
        ...

    async def incrby(self, key: str, amount: int) -> int:
        """Increment a numeric value."""
        ...

    async def decrby(self, key: str, amount: int) -> int:
        """Decrement a numeric value."""
        ...

    async def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""
        ...

    async def sadd(self, key: str, *members: str) -> int:
        """Add members to a set."""
        ...

    async def srem(self, key: str, *members: str) -> int:
        """Remove members from a set."""
        ...

    async def sscan(
        self, key: str, cursor: int = 0, count: int | None = None
    ) -> tuple[int, list[str]]:
        """Scan one page of a set. A returned cursor of 0 ends the scan."""
        ...

    async def expire(self, key: str, seconds: int) -> bool:
        """Expire a key after a number of seconds (<= 0 expires now)."""
        ...

    async def pexpire(self, key: str, millis: int) -> bool:
        """Expire a key after a number of milliseconds."""
        ...

    async def ttl(self, key: str) -> int:
        """Remaining TTL in seconds: -1 without expiry, -2 when absent."""
        ...

    async def compare_and_delete(self, key: str, expected: str) -> bool:
        """Delete key only if it currently holds expected."""
        ...

    async def flushdb(self) -> None:
        """Remove every key of the current database."""
        ...

    async def aclose(self) -> None:
        """Disconnect from the backend."""
        ...
