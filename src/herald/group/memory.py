"""In-process group for single-instance deployments and tests."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from herald.errors import GroupError
from herald.group.base import Group, Membership, Snapshot, make_snapshot

logger = logging.getLogger(__name__)


class InMemoryGroup(Group):
    """Group whose membership is set directly by the owning process.

    Watches block on futures that ``update()`` resolves once the new
    membership differs from their expectation, and ``fail()`` fails.

    Example:
        group = InMemoryGroup()
        detector = LeaderDetector(group)
        group.update([Membership(3), Membership(5)])
    """

    def __init__(self, memberships: Iterable[Membership] = ()):
        self._memberships: Snapshot = make_snapshot(memberships)
        self._watchers: list[tuple[Snapshot, asyncio.Future[Snapshot]]] = []
        self._watch_count = 0

    @property
    def memberships(self) -> Snapshot:
        """Current membership."""
        return self._memberships

    @property
    def watch_count(self) -> int:
        """Number of watch requests issued since creation."""
        return self._watch_count

    @property
    def pending_watches(self) -> int:
        """Number of watch requests currently waiting for a change."""
        return sum(1 for _, future in self._watchers if not future.done())

    async def snapshot(self) -> Snapshot:
        return self._memberships

    async def watch(self, expected: Snapshot) -> Snapshot:
        self._watch_count += 1

        if self._memberships != expected:
            return self._memberships

        future: asyncio.Future[Snapshot] = asyncio.get_running_loop().create_future()
        entry = (expected, future)
        self._watchers.append(entry)
        try:
            return await future
        finally:
            if entry in self._watchers:
                self._watchers.remove(entry)

    def update(self, memberships: Iterable[Membership]) -> None:
        """Replace the membership and wake watchers expecting something else."""
        self._memberships = make_snapshot(memberships)
        logger.debug(f"Group membership now {sorted(m.id for m in self._memberships)}")

        for expected, future in list(self._watchers):
            if expected != self._memberships and not future.done():
                future.set_result(self._memberships)

    def fail(self, error: Exception | None = None) -> None:
        """Fail every pending watch, simulating a lost coordination session."""
        error = error or GroupError("coordination session lost")
        for _, future in list(self._watchers):
            if not future.done():
                future.set_exception(error)
