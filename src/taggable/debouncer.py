"""Request coalescing for idempotent store reads."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from taggable.adapters.base import AsyncStore


class Command(str, Enum):
    """Store commands that are safe to share between concurrent callers."""

    GET = "get"
    SSCAN = "sscan"
    TTL = "ttl"


_DISPATCH: dict[Command, Callable[..., Awaitable[Any]]] = {
    Command.GET: lambda store, key: store.get(key),
    Command.SSCAN: lambda store, key, cursor, count=None: store.sscan(
        key, cursor, count
    ),
    Command.TTL: lambda store, key: store.ttl(key),
}


class Debouncer:
    """Shares one in-flight store call between identical concurrent requests.

    Only read-style commands listed in :class:`Command` can be debounced.
    An identical call made after the shared one settles starts afresh.
    """

    def __init__(self, store: AsyncStore) -> None:
        self._store = store
        self._in_flight: dict[str, asyncio.Task[Any]] = {}

    @staticmethod
    def _make_key(command: Command, args: tuple[Any, ...]) -> str:
        return f"{command.value}::{json.dumps(args, default=str)}"

    @property
    def in_flight(self) -> int:
        """Number of calls currently outstanding."""
        return len(self._in_flight)

    async def debounce(self, command: Command, *args: Any) -> Any:
        """Run command against the store, or join the identical in-flight call."""
        key = self._make_key(command, args)
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run(key, command, args))
            self._in_flight[key] = task
        return await asyncio.shield(task)

    async def _run(self, key: str, command: Command, args: tuple[Any, ...]) -> Any:
        try:
            return await _DISPATCH[command](self._store, *args)
        finally:
            # Leave the map before the task settles; later callers start afresh.
            if self._in_flight.get(key) is asyncio.current_task():
                del self._in_flight[key]

    def clear(self) -> None:
        """Forget every in-flight call (outstanding calls still complete)."""
        self._in_flight.clear()
