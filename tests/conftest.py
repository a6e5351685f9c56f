"""Global pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import pytest

from herald.group import Membership


@pytest.fixture
def settle() -> Callable[[], Awaitable[None]]:
    """Return a coroutine that lets the event loop run pending callbacks and tasks."""

    async def _settle(rounds: int = 20) -> None:
        for _ in range(rounds):
            await asyncio.sleep(0)

    return _settle


@pytest.fixture
def m3() -> Membership:
    return Membership(3, b"node-a")


@pytest.fixture
def m5() -> Membership:
    return Membership(5, b"node-b")


@pytest.fixture
def m7() -> Membership:
    return Membership(7, b"node-c")
