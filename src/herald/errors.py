"""Exception hierarchy for Herald.

Cancellation is never reported through these classes: waiters resolved
by detector teardown raise ``asyncio.CancelledError`` for their awaiter.
"""

from __future__ import annotations


class HeraldError(Exception):
    """Base class for all Herald errors."""


class GroupError(HeraldError):
    """The coordination service behind a group failed (session or connectivity loss)."""


class WatchError(HeraldError):
    """The membership watch failed; pending detections are failed with this.

    The collaborator's original exception is available as ``__cause__``.
    """


class DetectorClosedError(HeraldError):
    """The detector was torn down and accepts no more requests."""
