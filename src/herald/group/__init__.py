"""Group membership views for Herald.

Example:
    from herald.group import InMemoryGroup, Membership

    group = InMemoryGroup([Membership(3), Membership(5)])
    snapshot = await group.watch(frozenset())
"""

from herald.group.base import Group, Membership, Snapshot, make_snapshot
from herald.group.memory import InMemoryGroup
from herald.group.redis import RedisGroup, close_redis, get_redis

__all__ = [
    "Group",
    "Membership",
    "Snapshot",
    "make_snapshot",
    "InMemoryGroup",
    "RedisGroup",
    "get_redis",
    "close_redis",
]
