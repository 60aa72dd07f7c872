"""Tests for request coalescing."""

import asyncio

import pytest

from taggable import AsyncMemoryStore, Command, Debouncer


class SlowStore(AsyncMemoryStore):
    """Memory store whose reads block until released."""

    def __init__(self) -> None:
        super().__init__()
        self.get_calls = 0
        self.release = asyncio.Event()
        self.fail_with: Exception | None = None

    async def get(self, key):
        self.get_calls += 1
        await self.release.wait()
        if self.fail_with is not None:
            raise self.fail_with
        return await super().get(key)


@pytest.fixture
def slow_store() -> SlowStore:
    return SlowStore()


@pytest.fixture
def debouncer(slow_store: SlowStore) -> Debouncer:
    return Debouncer(slow_store)


class TestDebounce:
    """Concurrent identical reads share one store call."""

    async def test_concurrent_calls_share_one_request(
        self, slow_store: SlowStore, debouncer: Debouncer
    ) -> None:
        await slow_store.set("k", "v")
        tasks = [
            asyncio.create_task(debouncer.debounce(Command.GET, "k")) for _ in range(5)
        ]
        await asyncio.sleep(0)
        assert debouncer.in_flight == 1

        slow_store.release.set()
        results = await asyncio.gather(*tasks)

        assert results == ["v"] * 5
        assert slow_store.get_calls == 1
        assert debouncer.in_flight == 0

    async def test_different_args_are_separate(
        self, slow_store: SlowStore, debouncer: Debouncer
    ) -> None:
        tasks = [
            asyncio.create_task(debouncer.debounce(Command.GET, key))
            for key in ("a", "b")
        ]
        await asyncio.sleep(0)
        assert debouncer.in_flight == 2
        slow_store.release.set()
        assert await asyncio.gather(*tasks) == [None, None]
        assert slow_store.get_calls == 2

    async def test_call_after_settlement_starts_fresh(
        self, slow_store: SlowStore, debouncer: Debouncer
    ) -> None:
        slow_store.release.set()
        await debouncer.debounce(Command.GET, "k")
        await debouncer.debounce(Command.GET, "k")
        assert slow_store.get_calls == 2

    async def test_failure_reaches_every_waiter(
        self, slow_store: SlowStore, debouncer: Debouncer
    ) -> None:
        error = ConnectionError("store down")
        slow_store.fail_with = error
        tasks = [
            asyncio.create_task(debouncer.debounce(Command.GET, "k")) for _ in range(3)
        ]
        await asyncio.sleep(0)
        slow_store.release.set()

        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert results == [error, error, error]
        assert slow_store.get_calls == 1
        assert debouncer.in_flight == 0

    async def test_cancelled_waiter_does_not_cancel_shared_call(
        self, slow_store: SlowStore, debouncer: Debouncer
    ) -> None:
        await slow_store.set("k", "v")
        first = asyncio.create_task(debouncer.debounce(Command.GET, "k"))
        second = asyncio.create_task(debouncer.debounce(Command.GET, "k"))
        await asyncio.sleep(0)
        first.cancel()
        slow_store.release.set()

        assert await second == "v"
        with pytest.raises(asyncio.CancelledError):
            await first

    async def test_sscan_is_debounced(self) -> None:
        store = AsyncMemoryStore(page_size=2)
        await store.sadd("s", "a", "b", "c")
        debouncer = Debouncer(store)

        cursor, members = await debouncer.debounce(Command.SSCAN, "s", 0, None)

        assert members == ["a", "b"]
        assert cursor != 0

    async def test_clear_forgets_in_flight(
        self, slow_store: SlowStore, debouncer: Debouncer
    ) -> None:
        task = asyncio.create_task(debouncer.debounce(Command.GET, "k"))
        await asyncio.sleep(0)
        debouncer.clear()
        assert debouncer.in_flight == 0
        slow_store.release.set()
        assert await task is None


class TestSettlement:
    """A call issued after the shared one finished reads the store again."""

    async def test_read_after_own_write_sees_new_value(self) -> None:
        store = AsyncMemoryStore()
        debouncer = Debouncer(store)
        await store.set("k", "old")

        async def reader():
            return await debouncer.debounce(Command.GET, "k")

        async def writer():
            await asyncio.sleep(0)
            await store.set("k", "new")
            return await debouncer.debounce(Command.GET, "k")

        first, second = await asyncio.gather(reader(), writer())

        assert first == "old"
        assert second == "new"

    async def test_slot_cleared_before_result_is_delivered(self) -> None:
        seen: list[int] = []

        class Observed(AsyncMemoryStore):
            async def get(self, key):
                return "v"

        debouncer = Debouncer(Observed())
        task = asyncio.ensure_future(debouncer.debounce(Command.GET, "k"))
        task.add_done_callback(lambda _: seen.append(debouncer.in_flight))
        assert await task == "v"
        assert seen == [0]
