"""Leader election rule.

The leader of a group is its oldest member: the membership with the
smallest id. Ids are unique, so no further tie-break is needed.
"""

from __future__ import annotations

from collections.abc import Iterable
from operator import attrgetter

from herald.group.base import Membership

_by_id = attrgetter("id")


def compute_leader(snapshot: Iterable[Membership]) -> Membership | None:
    """Return the membership with the smallest id, or None if there is none."""
    return min(snapshot, key=_by_id, default=None)
