"""Leader detection over a change-notifying group.

The detector keeps a watch on the group at all times. Every time the
membership changes it re-runs the election (oldest member wins) and,
when the winner differs from the incumbent, completes every pending
``detect()`` request with the new leader.

All state belongs to the event loop the detector was created on. Watch
completions come back through future done-callbacks, which the loop
runs one at a time, so transitions never interleave and a new watch is
only issued once the previous completion has been handled.

Example:
    async with LeaderDetector(group) as detector:
        leader = None
        while True:
            leader = await detector.detect(leader)
            print(f"leader is now {leader}")
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
from dataclasses import dataclass
from enum import Enum
from types import TracebackType

from herald.config import settings
from herald.election import compute_leader
from herald.errors import DetectorClosedError, WatchError
from herald.group.base import Group, Membership, Snapshot
from herald.observability.metrics import get_metrics
from herald.waiters import WaiterRegistry

logger = logging.getLogger(__name__)


class WatchState(str, Enum):
    """State of the detector's watch loop."""

    WATCHING = "watching"
    BACKOFF = "backoff"  # Waiting to resubscribe after a failure
    STOPPED = "stopped"  # Watch failed; no further watches
    CLOSED = "closed"  # Torn down


@dataclass(frozen=True)
class ResubscribePolicy:
    """How the detector reacts to a failed watch.

    With ``max_attempts == 0`` a failed watch stops the detector for good
    and callers have to create a new one. Otherwise the detector starts a
    fresh watch after an exponentially growing delay, up to
    ``max_attempts`` consecutive failures.
    """

    max_attempts: int = 0
    delay_initial: float = 1.0
    delay_max: float = 60.0
    multiplier: float = 2.0

    @classmethod
    def from_settings(cls) -> "ResubscribePolicy":
        return cls(
            max_attempts=settings.resubscribe_max_attempts,
            delay_initial=settings.resubscribe_delay_initial,
            delay_max=settings.resubscribe_delay_max,
            multiplier=settings.resubscribe_delay_multiplier,
        )

    def delay(self, attempt: int) -> float:
        """Delay before the given resubscription attempt (0-based)."""
        return float(min(self.delay_initial * self.multiplier**attempt, self.delay_max))


class LeaderDetector:
    """Detects the leader of a group and reports changes to callers.

    Must be created inside a running event loop; watching starts
    immediately.

    Args:
        group: Membership view to watch
        name: Group name used in logs and metrics (taken from the group if None)
        resubscribe: Failure policy (built from settings if None)
    """

    def __init__(
        self,
        group: Group,
        name: str | None = None,
        resubscribe: ResubscribePolicy | None = None,
    ):
        self._loop = asyncio.get_running_loop()
        self._group = group
        self.name = name or getattr(group, "name", "local")
        self._policy = resubscribe or ResubscribePolicy.from_settings()
        self._metrics = get_metrics()

        self._leader: Membership | None = None
        self._waiters: WaiterRegistry[Membership | None] = WaiterRegistry()
        self._state = WatchState.WATCHING
        self._watch_task: asyncio.Task[Snapshot] | None = None
        self._retry_handle: asyncio.TimerHandle | None = None
        self._failures = 0

        logger.info(f"Started leader detection for group '{self.name}'")
        self._watch(frozenset())

    @property
    def leader(self) -> Membership | None:
        """The current leader, or None if unknown."""
        return self._leader

    @property
    def state(self) -> WatchState:
        return self._state

    @property
    def pending_waiters(self) -> int:
        """Number of detect() requests waiting for a leader change."""
        return len(self._waiters)

    def detect(self, previous: Membership | None = None) -> asyncio.Future[Membership | None]:
        """Return a future for the leader, once it differs from ``previous``.

        If the current leader already differs from ``previous`` the future
        is resolved on return. Otherwise it resolves with the next elected
        leader, fails with WatchError if the watch fails first, or is
        cancelled if the detector is closed first.

        Must be called from the detector's event loop thread; other
        threads use detect_threadsafe().

        Raises:
            DetectorClosedError: If the detector has been closed.
        """
        if self._state is WatchState.CLOSED:
            raise DetectorClosedError(f"Leader detector for group '{self.name}' is closed")

        future: asyncio.Future[Membership | None] = self._loop.create_future()

        if self._leader != previous:
            self._metrics.detect_requests_total.labels(group=self.name, outcome="immediate").inc()
            future.set_result(self._leader)
            return future

        self._waiters.add(future)
        future.add_done_callback(self._waiter_done)
        self._metrics.detect_requests_total.labels(group=self.name, outcome="queued").inc()
        self._metrics.waiters_pending.labels(group=self.name).set(len(self._waiters))
        return future

    def detect_threadsafe(
        self, previous: Membership | None = None
    ) -> concurrent.futures.Future[Membership | None]:
        """Thread-safe variant of detect() for callers outside the event loop.

        The request is queued onto the detector's loop and handled in
        arrival order. Never block on the result from the loop thread itself.
        """
        return asyncio.run_coroutine_threadsafe(self._detect(previous), self._loop)

    async def _detect(self, previous: Membership | None) -> Membership | None:
        return await self.detect(previous)

    def _waiter_done(self, future: asyncio.Future[Membership | None]) -> None:
        self._metrics.waiters_pending.labels(group=self.name).set(len(self._waiters))

    # -------------------------------------------------------------------------
    # Watch loop
    # -------------------------------------------------------------------------

    def _watch(self, expected: Snapshot) -> None:
        self._metrics.watches_total.labels(group=self.name).inc()
        task = self._loop.create_task(self._group.watch(expected))
        task.add_done_callback(self._watched)
        self._watch_task = task

    def _watched(self, task: asyncio.Task[Snapshot]) -> None:
        """Handle a completed watch."""
        if task is not self._watch_task:
            return
        self._watch_task = None

        if self._state is not WatchState.WATCHING:
            return

        if task.cancelled():
            self._failed(None)
            return

        error = task.exception()
        if error is not None:
            self._failed(error)
            return

        self._updated(task.result())

    def _updated(self, memberships: Snapshot) -> None:
        self._failures = 0

        if self._leader is not None and self._leader not in memberships:
            logger.warning(f"The current leader ({self._leader}) is lost")

        # The oldest member wins. Waiters are left alone if the incumbent wins.
        leader = compute_leader(memberships)

        if leader != self._leader:
            logger.info(
                f"Detected a new leader for group '{self.name}': "
                f"{leader if leader is not None else 'None'}"
                f" (was {self._leader if self._leader is not None else 'None'})"
            )
            self._metrics.leader_changes_total.labels(group=self.name).inc()
            notified = self._waiters.resolve_all(leader)
            logger.debug(f"Notified {notified} waiting callers")

        self._leader = leader
        self._watch(memberships)

    def _failed(self, error: BaseException | None) -> None:
        if error is None:
            logger.error(f"Membership watch for group '{self.name}' was cancelled")
            failure = WatchError("Membership watch was cancelled")
        else:
            logger.error(f"Failed to watch memberships of group '{self.name}': {error}")
            failure = WatchError(f"Failed to watch memberships: {error}")
            failure.__cause__ = error

        self._metrics.watch_failures_total.labels(group=self.name).inc()
        self._leader = None
        self._waiters.fail_all(failure)

        if self._failures < self._policy.max_attempts:
            delay = self._policy.delay(self._failures)
            self._failures += 1
            self._state = WatchState.BACKOFF
            logger.warning(
                f"Resubscribing to group '{self.name}' in {delay:.1f}s "
                f"(attempt {self._failures}/{self._policy.max_attempts})"
            )
            self._retry_handle = self._loop.call_later(delay, self._resubscribe)
        else:
            self._state = WatchState.STOPPED
            logger.error(f"Stopped leader detection for group '{self.name}'")

    def _resubscribe(self) -> None:
        self._retry_handle = None
        if self._state is not WatchState.BACKOFF:
            return
        self._state = WatchState.WATCHING
        self._watch(frozenset())

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Stop watching and cancel every pending detect() request.

        Safe to call more than once.
        """
        if self._state is WatchState.CLOSED:
            return
        self._state = WatchState.CLOSED

        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None

        # Waiters are cancelled before waiting on the watch, which may be
        # slow to unwind or interrupted
        cancelled = self._waiters.cancel_all()
        self._leader = None
        logger.info(
            f"Closed leader detection for group '{self.name}' "
            f"({cancelled} pending requests cancelled)"
        )

        task = self._watch_task
        self._watch_task = None
        if task is not None:
            task.cancel()
            await asyncio.wait([task])

    async def __aenter__(self) -> "LeaderDetector":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
