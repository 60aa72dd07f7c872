"""Tests for the distributed lock."""

import asyncio

import pytest

from taggable import (
    AsyncMemoryStore,
    DistributedLock,
    LockConfig,
    LockError,
    LockHandle,
)
from taggable.lock import LockBackend, hold


@pytest.fixture
def lock_store() -> AsyncMemoryStore:
    return AsyncMemoryStore()


def make_lock(store, **overrides) -> DistributedLock:
    config = {"ttl": "1s", "retry_count": 3, "retry_delay": 0, "retry_jitter": 0}
    config.update(overrides)
    return DistributedLock(store, LockConfig(**config))


class TestDistributedLock:
    """Tests for acquire/release."""

    async def test_acquire_writes_token(self, lock_store: AsyncMemoryStore) -> None:
        lock = make_lock(lock_store)
        handle = await lock.acquire("res")
        assert await lock_store.get("res") == handle.token
        assert 0 < await lock_store.ttl("res") <= 1

    async def test_release_frees_resource(self, lock_store: AsyncMemoryStore) -> None:
        lock = make_lock(lock_store)
        handle = await lock.acquire("res")
        await lock.release(handle)
        assert await lock_store.get("res") is None
        # Idempotent
        await lock.release(handle)

    async def test_contention_exhausts_retries(
        self, lock_store: AsyncMemoryStore
    ) -> None:
        lock = make_lock(lock_store, retry_count=2)
        await lock.acquire("res")

        with pytest.raises(LockError) as excinfo:
            await lock.acquire("res")

        assert excinfo.value.resource == "res"
        assert excinfo.value.attempts == 3

    async def test_retry_succeeds_once_released(
        self, lock_store: AsyncMemoryStore
    ) -> None:
        lock = make_lock(lock_store, retry_count=20, retry_delay="5ms")
        first = await lock.acquire("res")

        async def release_later() -> None:
            await asyncio.sleep(0.02)
            await lock.release(first)

        releaser = asyncio.create_task(release_later())
        second = await lock.acquire("res")
        await releaser

        assert second.token != first.token
        assert await lock_store.get("res") == second.token

    async def test_release_ignores_foreign_token(
        self, lock_store: AsyncMemoryStore
    ) -> None:
        lock = make_lock(lock_store)
        handle = await lock.acquire("res")
        await lock.release(LockHandle(resource="res", token="someone-else"))
        assert await lock_store.get("res") == handle.token

    async def test_release_swallows_store_errors(
        self, lock_store: AsyncMemoryStore
    ) -> None:
        class BrokenStore(AsyncMemoryStore):
            async def compare_and_delete(self, key, expected):
                raise ConnectionError("gone")

        lock = make_lock(BrokenStore())
        handle = await lock.acquire("res")
        await lock.release(handle)

    async def test_hold_releases_on_error(self, lock_store: AsyncMemoryStore) -> None:
        lock = make_lock(lock_store)
        with pytest.raises(RuntimeError):
            async with hold(lock, "res"):
                assert await lock_store.get("res") is not None
                raise RuntimeError("boom")
        assert await lock_store.get("res") is None

    def test_satisfies_backend_protocol(self, lock_store: AsyncMemoryStore) -> None:
        assert isinstance(make_lock(lock_store), LockBackend)


class TestLockConfig:
    """Tests for lock configuration."""

    def test_defaults(self) -> None:
        config = LockConfig()
        assert config.ttl_ms == 5000
        assert config.retry_count == 10
        assert config.retry_delay_ms == 200
        assert config.retry_jitter_ms == 200

    def test_rejects_negative_retry_count(self) -> None:
        with pytest.raises(ValueError, match="retry_count"):
            LockConfig(retry_count=-1)

    def test_rejects_zero_ttl(self) -> None:
        with pytest.raises(ValueError, match="ttl"):
            LockConfig(ttl=0)


class TestRetryJitter:
    """Each retry waits the fixed delay plus a random jitter."""

    async def test_sleeps_delay_plus_jitter(
        self, lock_store: AsyncMemoryStore, monkeypatch
    ) -> None:
        jitters = iter([7, 0, 30])
        bounds: list[tuple[int, int]] = []
        sleeps: list[float] = []

        def fake_randint(low: int, high: int) -> int:
            bounds.append((low, high))
            return next(jitters)

        async def fake_sleep(delay: float) -> None:
            sleeps.append(delay)

        monkeypatch.setattr("taggable.lock.random.randint", fake_randint)
        monkeypatch.setattr("taggable.lock.asyncio.sleep", fake_sleep)
        lock = make_lock(
            lock_store, retry_count=3, retry_delay="100ms", retry_jitter="30ms"
        )
        await lock_store.set("res", "held-elsewhere")

        with pytest.raises(LockError):
            await lock.acquire("res")

        assert sleeps == [0.107, 0.1, 0.13]
        assert bounds == [(0, 30)] * 3

    async def test_real_jitter_stays_in_range(
        self, lock_store: AsyncMemoryStore, monkeypatch
    ) -> None:
        sleeps: list[float] = []

        async def fake_sleep(delay: float) -> None:
            sleeps.append(delay)

        monkeypatch.setattr("taggable.lock.asyncio.sleep", fake_sleep)
        lock = make_lock(
            lock_store, retry_count=20, retry_delay="50ms", retry_jitter="20ms"
        )
        await lock_store.set("res", "held-elsewhere")

        with pytest.raises(LockError):
            await lock.acquire("res")

        assert len(sleeps) == 20
        assert all(0.05 <= delay <= 0.07 for delay in sleeps)
