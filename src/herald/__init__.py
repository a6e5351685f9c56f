"""Herald: leader detection for groups backed by a coordination service.

Example:
    from herald import InMemoryGroup, LeaderDetector, Membership

    group = InMemoryGroup([Membership(3), Membership(5)])
    detector = LeaderDetector(group)

    leader = await detector.detect(None)  # Membership(id=3)
    next_leader = await detector.detect(leader)  # Waits for a change
"""

from herald.detector import LeaderDetector, ResubscribePolicy, WatchState
from herald.election import compute_leader
from herald.errors import DetectorClosedError, GroupError, HeraldError, WatchError
from herald.group import Group, InMemoryGroup, Membership, RedisGroup

__all__ = [
    "LeaderDetector",
    "ResubscribePolicy",
    "WatchState",
    "compute_leader",
    "HeraldError",
    "GroupError",
    "WatchError",
    "DetectorClosedError",
    "Group",
    "InMemoryGroup",
    "Membership",
    "RedisGroup",
]
