"""Registry of callers waiting for the next leadership change.

Each waiter is an asyncio future owned by exactly one caller. Bulk
operations drain the registry before touching any future, so a waiter
is resolved at most once no matter what its done-callbacks do.
"""

from __future__ import annotations

import asyncio
from typing import Generic, TypeVar

T = TypeVar("T")


class WaiterRegistry(Generic[T]):
    """Ordered set of pending futures resolved together."""

    def __init__(self) -> None:
        # dict keeps insertion order and gives O(1) removal
        self._waiters: dict[asyncio.Future[T], None] = {}

    def __len__(self) -> int:
        return len(self._waiters)

    def __contains__(self, future: object) -> bool:
        return future in self._waiters

    def add(self, future: asyncio.Future[T]) -> None:
        """Register a pending future.

        A future the caller cancels (or resolves) on its own is forgotten.
        """
        self._waiters[future] = None
        future.add_done_callback(self._discard)

    def _discard(self, future: asyncio.Future[T]) -> None:
        self._waiters.pop(future, None)

    def _drain(self) -> list[asyncio.Future[T]]:
        waiters = list(self._waiters)
        self._waiters.clear()
        return [future for future in waiters if not future.done()]

    def resolve_all(self, value: T) -> int:
        """Set ``value`` on every pending future. Returns how many were resolved."""
        waiters = self._drain()
        for future in waiters:
            future.set_result(value)
        return len(waiters)

    def fail_all(self, error: BaseException) -> int:
        """Fail every pending future with ``error``."""
        waiters = self._drain()
        for future in waiters:
            future.set_exception(error)
        return len(waiters)

    def cancel_all(self) -> int:
        """Cancel every pending future."""
        waiters = self._drain()
        for future in waiters:
            future.cancel()
        return len(waiters)
