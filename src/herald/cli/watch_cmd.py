"""CLI command for following a group's leader.

Usage:
    herald watch
    herald watch --group workers --redis-url redis://cache:6379/0
    herald watch --json --metrics-port 9100
"""

from __future__ import annotations

import asyncio

import redis.asyncio as redis
import typer
from prometheus_client import start_http_server

from herald.config import settings
from herald.detector import LeaderDetector, WatchState
from herald.errors import WatchError
from herald.group.base import Membership
from herald.group.redis import RedisGroup, close_redis
from herald.observability.logging import LogContext, configure_logging

app = typer.Typer(help="Follow the leader of a group")


def describe(leader: Membership | None) -> str:
    """Render a leader for terminal output."""
    if leader is None:
        return "none"
    if leader.data:
        return f"{leader} ({leader.data.decode(errors='replace')})"
    return str(leader)


async def _follow(group_name: str, redis_url: str | None) -> None:
    client = redis.from_url(redis_url) if redis_url else None
    group = RedisGroup(group_name, client=client)

    try:
        with LogContext(group=group.name):
            async with LeaderDetector(group) as detector:
                leader: Membership | None = None
                while True:
                    try:
                        leader = await detector.detect(leader)
                    except WatchError:
                        if detector.state is not WatchState.BACKOFF:
                            raise
                        leader = None
                        continue
                    typer.echo(f"leader: {describe(leader)}")
    finally:
        if client is not None:
            await client.aclose()
        else:
            await close_redis()


@app.callback(invoke_without_command=True)
def watch(
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
    json_logs: bool = typer.Option(
        None,
        "--json/--no-json",
        help="Emit JSON logs (default: HERALD_LOG_JSON)",
    ),
    log_level: str = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level: debug, info, warning, error",
    ),
    metrics_port: int = typer.Option(
        None,
        "--metrics-port",
        help="Serve Prometheus metrics on this port",
    ),
) -> None:
    """Print the group's leader every time it changes.

    Runs until interrupted. Exits with status 1 if the membership watch
    fails and no resubscription is configured.
    """
    configure_logging(
        json_format=settings.log_json if json_logs is None else json_logs,
        level=log_level or settings.log_level,
    )

    if metrics_port:
        start_http_server(metrics_port)
        typer.echo(f"Metrics: http://0.0.0.0:{metrics_port}/metrics")

    try:
        asyncio.run(_follow(group or settings.group_name, redis_url))
    except KeyboardInterrupt:
        typer.echo("Stopped")
    except WatchError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
