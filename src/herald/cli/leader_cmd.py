"""CLI command for printing a group's current leader once.

Usage:
    herald leader
    herald leader --group workers
"""

from __future__ import annotations

import asyncio

import redis.asyncio as redis
import typer

from herald.cli.watch_cmd import describe
from herald.config import settings
from herald.election import compute_leader
from herald.errors import GroupError
from herald.group.base import Membership
from herald.group.redis import RedisGroup, close_redis

app = typer.Typer(help="Print the current leader of a group")


async def _current_leader(group_name: str, redis_url: str | None) -> Membership | None:
    client = redis.from_url(redis_url) if redis_url else None
    group = RedisGroup(group_name, client=client)

    try:
        return compute_leader(await group.snapshot())
    finally:
        if client is not None:
            await client.aclose()
        else:
            await close_redis()


@app.callback(invoke_without_command=True)
def leader(
    group: str = typer.Option(
        None,
        "--group",
        "-g",
        help="Group name (default: HERALD_GROUP_NAME)",
    ),
    redis_url: str = typer.Option(
        None,
        "--redis-url",
        help="Redis URL (default: REDIS_URL)",
    ),
) -> None:
    """Print the group's current leader and exit."""
    try:
        current = asyncio.run(_current_leader(group or settings.group_name, redis_url))
    except GroupError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"leader: {describe(current)}")
