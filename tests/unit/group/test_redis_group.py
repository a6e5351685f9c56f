"""Tests for the Redis-backed group view."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from herald.errors import GroupError
from herald.group import Membership, RedisGroup

ROWS_3_5 = [(b"node-a", 3.0), (b"node-b", 5.0)]
ROWS_5_7 = [(b"node-b", 5.0), (b"node-c", 7.0)]


@pytest.fixture
def pubsub() -> MagicMock:
    """Create mock Pub/Sub connection."""
    pubsub = MagicMock()
    pubsub.subscribe = AsyncMock()
    pubsub.get_message = AsyncMock(return_value=None)
    pubsub.aclose = AsyncMock()
    return pubsub


@pytest.fixture
def client(pubsub: MagicMock) -> MagicMock:
    """Create mock Redis client."""
    client = MagicMock()
    client.zrange = AsyncMock(return_value=ROWS_3_5)
    client.pubsub = MagicMock(return_value=pubsub)
    return client


@pytest.fixture
def group(client: MagicMock) -> RedisGroup:
    return RedisGroup("workers", client=client, key_prefix="herald:group:", poll_interval=0.5)


class TestRedisGroupKeys:
    """Tests for key naming."""

    def test_keys(self, group: RedisGroup) -> None:
        assert group.members_key == "herald:group:workers:members"
        assert group.changes_channel == "herald:group:workers:changes"

    def test_defaults_from_settings(self, client: MagicMock) -> None:
        group = RedisGroup(client=client)

        assert group.name == "default"
        assert group.key_prefix == "herald:group:"
        assert group.poll_interval == 1.0

    def test_explicit_zero_poll_interval_rejected(self, client: MagicMock) -> None:
        """An explicit interval is used as given, so zero is an error, not the default."""
        with pytest.raises(ValueError, match="poll_interval"):
            RedisGroup("workers", client=client, poll_interval=0)

        with pytest.raises(ValueError, match="poll_interval"):
            RedisGroup("workers", client=client, poll_interval=-1.0)

    def test_explicit_small_poll_interval_kept(self, client: MagicMock) -> None:
        assert RedisGroup("workers", client=client, poll_interval=0.01).poll_interval == 0.01


class TestRedisGroupSnapshot:
    """Tests for reading membership."""

    async def test_snapshot_parses_scores_as_ids(self, group: RedisGroup, client: MagicMock) -> None:
        snapshot = await group.snapshot()

        assert snapshot == frozenset({Membership(3), Membership(5)})
        assert {m.data for m in snapshot} == {b"node-a", b"node-b"}
        client.zrange.assert_awaited_once_with(
            "herald:group:workers:members", 0, -1, withscores=True
        )

    async def test_snapshot_encodes_decoded_members(
        self, group: RedisGroup, client: MagicMock
    ) -> None:
        """Clients configured with decode_responses still yield bytes data."""
        client.zrange.return_value = [("node-a", 3.0)]

        snapshot = await group.snapshot()

        assert [m.data for m in snapshot] == [b"node-a"]

    async def test_snapshot_error(self, group: RedisGroup, client: MagicMock) -> None:
        client.zrange.side_effect = RedisConnectionError("connection refused")

        with pytest.raises(GroupError, match="connection refused"):
            await group.snapshot()

    async def test_skips_non_integral_scores(
        self, group: RedisGroup, client: MagicMock, caplog: pytest.LogCaptureFixture
    ) -> None:
        client.zrange.return_value = [(b"node-a", 3.0), (b"node-x", 4.5), (b"node-y", 2.0**60)]

        with caplog.at_level(logging.WARNING, logger="herald.group.redis"):
            snapshot = await group.snapshot()

        assert snapshot == frozenset({Membership(3)})
        assert len(caplog.records) == 2

    async def test_duplicate_scores_keep_first_member(
        self, group: RedisGroup, client: MagicMock, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Redis orders equal scores by member, so the first row wins."""
        client.zrange.return_value = [(b"node-a", 3.0), (b"node-b", 3.0), (b"node-c", 5.0)]

        with caplog.at_level(logging.WARNING, logger="herald.group.redis"):
            snapshot = await group.snapshot()

        assert snapshot == frozenset({Membership(3), Membership(5)})
        assert {m.data for m in snapshot} == {b"node-a", b"node-c"}
        assert any("already taken" in r.getMessage() for r in caplog.records)

    async def test_largest_exact_id_accepted(self, group: RedisGroup, client: MagicMock) -> None:
        client.zrange.return_value = [(b"node-a", float(2**53))]

        assert await group.snapshot() == frozenset({Membership(2**53)})


class TestRedisGroupWatch:
    """Tests for watching membership."""

    async def test_returns_immediately_on_difference(
        self, group: RedisGroup, pubsub: MagicMock
    ) -> None:
        result = await group.watch(frozenset())

        assert result == frozenset({Membership(3), Membership(5)})
        pubsub.subscribe.assert_awaited_once_with("herald:group:workers:changes")
        pubsub.get_message.assert_not_awaited()
        pubsub.aclose.assert_awaited_once()

    async def test_waits_for_change_notice(
        self, group: RedisGroup, client: MagicMock, pubsub: MagicMock
    ) -> None:
        client.zrange.side_effect = [ROWS_3_5, ROWS_3_5, ROWS_5_7]
        pubsub.get_message.side_effect = [
            None,
            {"type": "message", "channel": b"herald:group:workers:changes", "data": b"1"},
        ]

        result = await group.watch(frozenset({Membership(3), Membership(5)}))

        assert result == frozenset({Membership(5), Membership(7)})
        assert client.zrange.await_count == 3
        assert pubsub.get_message.await_count == 2
        pubsub.get_message.assert_awaited_with(ignore_subscribe_messages=True, timeout=0.5)
        pubsub.aclose.assert_awaited_once()

    async def test_error_becomes_group_error(
        self, group: RedisGroup, client: MagicMock, pubsub: MagicMock
    ) -> None:
        error = RedisConnectionError("connection lost")
        client.zrange.side_effect = error

        with pytest.raises(GroupError) as exc_info:
            await group.watch(frozenset())

        assert exc_info.value.__cause__ is error
        pubsub.aclose.assert_awaited_once()

    async def test_subscribe_error(self, group: RedisGroup, pubsub: MagicMock) -> None:
        pubsub.subscribe.side_effect = RedisConnectionError("no route to host")

        with pytest.raises(GroupError, match="no route to host"):
            await group.watch(frozenset())
