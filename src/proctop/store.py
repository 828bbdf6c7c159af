"""Two-generation snapshot store."""

import dataclasses

from proctop.logging import get_logger
from proctop.models import Snapshot

log = get_logger(__name__)


class SnapshotStore:
    """
    Holds the current snapshot and the one captured before it.

    Installing a new snapshot demotes the current one to "previous" and drops
    anything older, so at most two snapshots are alive at any time.
    Timestamps are kept strictly increasing: a snapshot stamped at or before
    the current one (wall clock stepped backwards) is re-stamped 1 ms later.
    """

    def __init__(self) -> None:
        self._current: Snapshot | None = None
        self._previous: Snapshot | None = None

    def record(self, snapshot: Snapshot) -> Snapshot:
        """Install a new current snapshot and return it as stored."""
        if self._current is not None and snapshot.timestamp_ms <= self._current.timestamp_ms:
            restamped = self._current.timestamp_ms + 1
            log.warning(
                "snapshot timestamp not increasing",
                timestamp_ms=snapshot.timestamp_ms,
                previous_ms=self._current.timestamp_ms,
            )
            snapshot = dataclasses.replace(snapshot, timestamp_ms=restamped)

        self._previous = self._current
        self._current = snapshot
        return snapshot

    def current(self) -> Snapshot | None:
        """Latest snapshot, None before the first record()."""
        return self._current

    def previous(self) -> Snapshot | None:
        """Snapshot before the current one, None on the first iteration."""
        return self._previous

    def elapsed_since_previous(self) -> int:
        """Milliseconds between the previous and current capture.

        Raises:
            LookupError: If there is no previous snapshot yet.
        """
        if self._current is None or self._previous is None:
            raise LookupError("no previous snapshot")
        return self._current.timestamp_ms - self._previous.timestamp_ms

    def reset(self) -> None:
        """Forget both generations."""
        self._current = None
        self._previous = None
