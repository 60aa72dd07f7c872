"""Distributed lock guarding tag-version creation."""

from __future__ import annotations

import asyncio
import logging
import random
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from taggable.adapters.base import AsyncStore
from taggable.duration import parse_duration, to_seconds
from taggable.errors import LockError
from taggable.types import Duration, LockConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LockHandle:
    """Proof of ownership for an acquired lock."""

    resource: str
    token: str


@runtime_checkable
class LockBackend(Protocol):
    """Anything that can acquire and release named locks."""

    async def acquire(self, resource: str, ttl: Duration | None = None) -> LockHandle:
        """Acquire the lock or raise LockError."""
        ...

    async def release(self, handle: LockHandle) -> None:
        """Release the lock; never raises."""
        ...


class DistributedLock:
    """Single-instance lock using ``SET NX PX`` and a compare-and-delete release.

    Acquisition retries a fixed number of times with a fixed delay plus
    random jitter, then fails with :class:`LockError`.
    """

    def __init__(self, store: AsyncStore, config: LockConfig | None = None) -> None:
        self._store = store
        self._config = config or LockConfig()

    @property
    def config(self) -> LockConfig:
        return self._config

    def _retry_delay(self) -> float:
        """Seconds to wait before the next attempt."""
        jitter = random.randint(0, self._config.retry_jitter_ms)
        return to_seconds(self._config.retry_delay_ms + jitter)

    async def acquire(self, resource: str, ttl: Duration | None = None) -> LockHandle:
        ttl_ms = parse_duration(ttl) if ttl is not None else self._config.ttl_ms
        token = uuid.uuid4().hex
        attempts = self._config.retry_count + 1
        for attempt in range(1, attempts + 1):
            if await self._store.set(resource, token, px=ttl_ms, nx=True):
                logger.debug("lock.acquired resource=%s attempt=%d", resource, attempt)
                return LockHandle(resource=resource, token=token)
            if attempt < attempts:
                delay = self._retry_delay()
                logger.debug(
                    "lock.contended resource=%s attempt=%d delay=%.3fs",
                    resource,
                    attempt,
                    delay,
                )
                await asyncio.sleep(delay)
        raise LockError(resource, attempts)

    async def release(self, handle: LockHandle) -> None:
        try:
            await self._store.compare_and_delete(handle.resource, handle.token)
        except Exception as exc:
            # Expiry reclaims the lock anyway.
            logger.debug("lock.release_failed resource=%s exc=%r", handle.resource, exc)
        else:
            logger.debug("lock.released resource=%s", handle.resource)


@asynccontextmanager
async def hold(
    lock: LockBackend, resource: str, ttl: Duration | None = None
) -> AsyncIterator[LockHandle]:
    """Hold a lock for the duration of the block, releasing it on any exit."""
    handle = await lock.acquire(resource, ttl)
    try:
        yield handle
    finally:
        await lock.release(handle)


__all__ = ["DistributedLock", "LockBackend", "LockHandle", "hold"]
