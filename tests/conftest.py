"""Shared pytest fixtures."""

import inspect

import pytest

from taggable import AsyncMemoryStore, LockConfig, Taggable


class CountingStore(AsyncMemoryStore):
    """Memory store that records scan and delete traffic."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.sscan_calls: list[tuple[str, int]] = []
        self.sscan_depths: list[int] = []
        self.delete_calls: list[tuple[str, ...]] = []

    async def sscan(self, key, cursor=0, count=None):
        self.sscan_calls.append((key, cursor))
        self.sscan_depths.append(len(inspect.stack(0)))
        return await super().sscan(key, cursor, count)

    async def delete(self, *keys):
        self.delete_calls.append(keys)
        return await super().delete(*keys)


@pytest.fixture
def fast_lock_config() -> LockConfig:
    """Lock settings that keep contended tests quick."""
    return LockConfig(ttl="1s", retry_count=50, retry_delay="5ms", retry_jitter="5ms")


@pytest.fixture
def store() -> CountingStore:
    """Create a fresh memory store with small scan pages for each test."""
    return CountingStore(page_size=3)


@pytest.fixture
def taggable(store: CountingStore, fast_lock_config: LockConfig) -> Taggable:
    """Create a tagging client over the memory store."""
    return Taggable(store, lock_config=fast_lock_config)
