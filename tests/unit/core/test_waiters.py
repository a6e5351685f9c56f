"""Tests for the waiter registry."""

import asyncio

import pytest

from herald.waiters import WaiterRegistry


def _future() -> asyncio.Future[int]:
    return asyncio.get_running_loop().create_future()


class TestWaiterRegistry:
    """Tests for WaiterRegistry bulk resolution."""

    async def test_add_registers_future(self) -> None:
        registry: WaiterRegistry[int] = WaiterRegistry()
        future = _future()

        registry.add(future)

        assert len(registry) == 1
        assert future in registry

    async def test_resolve_all_sets_value_on_every_waiter(self) -> None:
        """Every pending waiter gets the value and the registry empties."""
        registry: WaiterRegistry[int] = WaiterRegistry()
        futures = [_future() for _ in range(3)]
        for future in futures:
            registry.add(future)

        resolved = registry.resolve_all(7)

        assert resolved == 3
        assert [f.result() for f in futures] == [7, 7, 7]
        assert len(registry) == 0

    async def test_waiters_resolved_once(self) -> None:
        """A second bulk resolution finds nothing to resolve."""
        registry: WaiterRegistry[int] = WaiterRegistry()
        future = _future()
        registry.add(future)

        assert registry.resolve_all(1) == 1
        assert registry.resolve_all(2) == 0
        assert registry.fail_all(RuntimeError("late")) == 0
        assert registry.cancel_all() == 0
        assert future.result() == 1

    async def test_resolution_follows_insertion_order(self) -> None:
        registry: WaiterRegistry[int] = WaiterRegistry()
        order: list[int] = []
        futures = [_future() for _ in range(4)]
        for index, future in enumerate(futures):
            registry.add(future)
            future.add_done_callback(lambda _, i=index: order.append(i))

        registry.resolve_all(0)
        await asyncio.sleep(0)

        assert order == [0, 1, 2, 3]

    async def test_caller_cancellation_is_forgotten(self) -> None:
        """A waiter cancelled by its caller leaves the registry."""
        registry: WaiterRegistry[int] = WaiterRegistry()
        kept = _future()
        dropped = _future()
        registry.add(kept)
        registry.add(dropped)

        dropped.cancel()
        await asyncio.sleep(0)

        assert len(registry) == 1
        assert registry.resolve_all(5) == 1
        assert kept.result() == 5

    async def test_fail_all_sets_exception(self) -> None:
        registry: WaiterRegistry[int] = WaiterRegistry()
        future = _future()
        registry.add(future)
        error = RuntimeError("watch failed")

        assert registry.fail_all(error) == 1

        with pytest.raises(RuntimeError, match="watch failed"):
            await future

    async def test_cancel_all_cancels(self) -> None:
        registry: WaiterRegistry[int] = WaiterRegistry()
        futures = [_future(), _future()]
        for future in futures:
            registry.add(future)

        assert registry.cancel_all() == 2
        assert all(f.cancelled() for f in futures)
        assert len(registry) == 0
