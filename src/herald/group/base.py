"""Group membership abstraction consumed by the leader detector.

A group is a change-notifying view over the set of participants
registered with a coordination service. The detector only ever reads
from it:

- ``watch(expected)`` returns once the actual membership differs from
  ``expected`` and yields the new snapshot
- ``snapshot()`` returns the current membership without waiting

Implementations:
- InMemoryGroup: single-process deployments and tests
- RedisGroup: membership kept in a Redis sorted set
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field

Snapshot = frozenset["Membership"]


@dataclass(frozen=True, order=True)
class Membership:
    """One participant in a group.

    The id is assigned by the coordination service and increases
    monotonically over the group's history. Equality, hashing and
    ordering use the id only; ``data`` is an opaque payload.
    """

    id: int
    data: bytes = field(default=b"", compare=False)

    def __str__(self) -> str:
        return f"id={self.id}"


def make_snapshot(memberships: Iterable[Membership]) -> Snapshot:
    """Build an immutable snapshot from any iterable of memberships."""
    return frozenset(memberships)


class Group(ABC):
    """Abstract group interface."""

    @abstractmethod
    async def watch(self, expected: Snapshot) -> Snapshot:
        """Wait until membership differs from ``expected`` and return it.

        Raises:
            GroupError: If the coordination service fails.
        """
        pass

    @abstractmethod
    async def snapshot(self) -> Snapshot:
        """Return the current membership."""
        pass
