"""Redis-backed group view.

Membership lives in a sorted set where each member's score is its
membership id and the member value is its opaque data. Whoever manages
membership (outside Herald) publishes on the group's change channel
after every write; this view re-reads the set on each notice, and at
least every ``poll_interval`` seconds in case a notice is missed.

Membership ids are Redis scores, which are doubles: only integral scores
within +/-2**53 map exactly to ids. Other members are skipped with a
warning, as are members whose score repeats an id already read.

Keys:
    {key_prefix}{name}:members   sorted set (score = membership id)
    {key_prefix}{name}:changes   Pub/Sub channel for change notices
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import redis.asyncio as redis
from redis.exceptions import RedisError

from herald.config import settings
from herald.errors import GroupError
from herald.group.base import Group, Membership, Snapshot, make_snapshot

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

# Largest id a Redis score (a double) represents exactly
MAX_EXACT_ID = 2**53

# Module-level connection pool
_redis_client: Redis | None = None


async def get_redis() -> Redis:
    """Get or create the shared Redis client."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(  # type: ignore[no-untyped-call]
            settings.redis_url,
            decode_responses=False,  # Membership data is opaque bytes
        )
    return _redis_client


async def close_redis() -> None:
    """Close the shared Redis client."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


class RedisGroup(Group):
    """Read-only view of a group stored in Redis.

    Args:
        name: Group name (defaults to settings.group_name)
        client: Redis client (the shared client if None)
        key_prefix: Prefix for the group's keys
        poll_interval: Longest wait between re-reads of the member set
    """

    def __init__(
        self,
        name: str | None = None,
        client: Redis | None = None,
        key_prefix: str | None = None,
        poll_interval: float | None = None,
    ):
        self.name = name or settings.group_name
        self.key_prefix = key_prefix if key_prefix is not None else settings.key_prefix
        self.poll_interval = (
            poll_interval if poll_interval is not None else settings.watch_poll_interval
        )
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")
        self._redis = client

    @property
    def members_key(self) -> str:
        return f"{self.key_prefix}{self.name}:members"

    @property
    def changes_channel(self) -> str:
        return f"{self.key_prefix}{self.name}:changes"

    async def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = await get_redis()
        return self._redis

    async def _read(self, client: Redis) -> Snapshot:
        rows = await client.zrange(self.members_key, 0, -1, withscores=True)
        memberships: dict[int, Membership] = {}

        for member, score in rows:
            data = member if isinstance(member, bytes) else member.encode()
            if not float(score).is_integer() or abs(score) > MAX_EXACT_ID:
                logger.warning(
                    f"Ignoring member {data!r} of group '{self.name}': "
                    f"score {score} is not an exact integer id"
                )
                continue

            membership_id = int(score)
            if membership_id in memberships:
                # Rows arrive ordered by (score, member), so the first one is kept
                logger.warning(
                    f"Ignoring member {data!r} of group '{self.name}': "
                    f"id {membership_id} already taken by {memberships[membership_id].data!r}"
                )
                continue

            memberships[membership_id] = Membership(id=membership_id, data=data)

        return make_snapshot(memberships.values())

    async def snapshot(self) -> Snapshot:
        client = await self._get_redis()
        try:
            return await self._read(client)
        except RedisError as e:
            raise GroupError(f"Failed to read group '{self.name}': {e}") from e

    async def watch(self, expected: Snapshot) -> Snapshot:
        client = await self._get_redis()
        pubsub = client.pubsub()
        try:
            # Subscribe before reading so a change between the two is not lost
            await pubsub.subscribe(self.changes_channel)
            while True:
                current = await self._read(client)
                if current != expected:
                    return current

                message = await pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=self.poll_interval,
                )
                if message is not None:
                    logger.debug(f"Change notice for group '{self.name}'")
        except RedisError as e:
            raise GroupError(f"Failed to watch group '{self.name}': {e}") from e
        finally:
            await pubsub.aclose()
