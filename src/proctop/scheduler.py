"""Sampling loop: sample, compute, rank, render, wait, repeat."""

import threading
import time
from dataclasses import dataclass
from enum import Enum
from queue import Empty, Queue
from typing import Callable, Protocol

from proctop.config import MonitorConfig
from proctop.delta import compute
from proctop.logging import get_logger
from proctop.models import RankedProcess, SystemSummary
from proctop.provider import ProcessProvider, ProviderError
from proctop.ranker import SortKey, rank
from proctop.store import SnapshotStore

log = get_logger(__name__)

CANCEL_KEYS = frozenset({"q", "Q", "\x03"})
HELP_KEYS = frozenset({"h", "?"})
SORT_KEYS = frozenset({"s"})

HELP_TEXT = """\
proctop - live process activity

  q      quit
  h ?    show this help
  s      switch sort between %CPU and PID

%CPU is the share of one core used since the previous sample.
New processes show 0.0 until they have been sampled twice.

Press any key to continue.
"""


class SchedulerState(Enum):
    """Phases of the sampling loop."""

    IDLE = "idle"
    SAMPLING = "sampling"
    RENDERING = "rendering"
    WAITING = "waiting"
    TERMINATED = "terminated"


@dataclass(slots=True, frozen=True)
class Frame:
    """Everything a display sink needs for one iteration."""

    iteration: int
    timestamp_ms: int
    rows: list[RankedProcess]
    summary: SystemSummary
    sort_key: SortKey


class DisplaySink(Protocol):
    """Consumer of rendered frames."""

    def render(self, frame: Frame) -> None: ...

    def show_help(self, text: str) -> None: ...

    def hide_help(self) -> None: ...

    def fatal(self, message: str) -> None: ...


class KeySource(Protocol):
    """Non-blocking single-character operator input."""

    def read_key(self) -> str | None: ...


class QueueKeySource:
    """KeySource fed from another thread, e.g. a UI event handler."""

    def __init__(self) -> None:
        self._keys: Queue[str] = Queue()

    def put(self, key: str) -> None:
        """Queue a keystroke."""
        self._keys.put(key)

    def read_key(self) -> str | None:
        """Return the oldest pending keystroke, or None."""
        try:
            return self._keys.get_nowait()
        except Empty:
            return None


class Scheduler:
    """
    Drives the monitor loop in a single thread.

    The wait between samples is split into short sleeps. Between sleeps the
    scheduler checks the cancel flag and, unless in batch mode, reads operator
    keys. Cancellation is cooperative: it is only noticed at those polling
    points and right after rendering.
    """

    def __init__(
        self,
        provider: ProcessProvider,
        sink: DisplaySink,
        config: MonitorConfig | None = None,
        keys: KeySource | None = None,
        *,
        store: SnapshotStore | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the Scheduler.

        Args:
            provider: Source of process snapshots.
            sink: Where each frame is rendered.
            config: Iterations, interval, sort key, batch flag, poll increment.
            keys: Operator input. Ignored in batch mode.
            store: Snapshot store, a fresh one by default.
            sleep: Sleep function, replaceable in tests.
            clock: Monotonic clock in seconds, replaceable in tests.
        """
        config = config or MonitorConfig()
        self._provider = provider
        self._sink = sink
        self._keys = None if config.batch else keys
        self._iterations = config.iterations
        self._interval = config.interval
        self._poll_increment = config.poll_increment
        self._store = store or SnapshotStore()
        self._sleep = sleep
        self._clock = clock
        self._cancel = threading.Event()
        self._state = SchedulerState.IDLE
        self._exit_code = 0
        self.sort_key = SortKey.parse(config.sort_key)
        self.iteration = 0
        self.error: str | None = None

    @property
    def state(self) -> SchedulerState:
        """Current phase of the loop."""
        return self._state

    @property
    def exit_code(self) -> int:
        """0 after normal completion or cancel, 1 after a fatal provider error."""
        return self._exit_code

    @property
    def cancelled(self) -> bool:
        """Whether a cancel has been requested."""
        return self._cancel.is_set()

    def cancel(self) -> None:
        """Request the loop to stop at the next polling point. Thread-safe."""
        self._cancel.set()

    def run(self) -> int:
        """Run until cancelled, out of iterations, or a fatal error.

        Returns:
            The process exit status.
        """
        if self._state is not SchedulerState.IDLE:
            raise RuntimeError("Scheduler can only run once")

        if self._cancel.is_set() or self._iterations == 0:
            self._terminate(0)
            return self._exit_code

        self._transition(SchedulerState.SAMPLING)
        frame: Frame | None = None

        while self._state is not SchedulerState.TERMINATED:
            if self._state is SchedulerState.SAMPLING:
                frame = self._sample()
                if frame is not None:
                    self._transition(SchedulerState.RENDERING)

            elif self._state is SchedulerState.RENDERING:
                if frame is None:
                    raise RuntimeError("Rendering without a sampled frame")
                self._sink.render(frame)
                self.iteration += 1
                if self._iterations is not None and self.iteration >= self._iterations:
                    self._terminate(0)
                elif self._cancel.is_set():
                    self._terminate(0)
                else:
                    self._transition(SchedulerState.WAITING)

            elif self._state is SchedulerState.WAITING:
                if self._wait():
                    self._terminate(0)
                else:
                    self._transition(SchedulerState.SAMPLING)

        return self._exit_code

    def _transition(self, state: SchedulerState) -> None:
        log.debug("scheduler transition", src=self._state.value, dst=state.value)
        self._state = state

    def _terminate(self, exit_code: int) -> None:
        self._exit_code = exit_code
        self._transition(SchedulerState.TERMINATED)
        log.info("scheduler terminated", exit_code=exit_code, iterations=self.iteration)

    def _sample(self) -> Frame | None:
        """Take a snapshot and build the next frame, None on fatal error."""
        try:
            snapshot = self._provider.list_processes()
            totals = self._provider.system_totals()
        except ProviderError as e:
            self.error = str(e)
            log.error("provider failed", error=self.error)
            self._sink.fatal(self.error)
            self._terminate(1)
            return None

        snapshot = self._store.record(snapshot)
        previous = self._store.previous()
        elapsed_ms = self._store.elapsed_since_previous() if previous is not None else 0
        utilization = compute(snapshot, previous, elapsed_ms, self._provider.ticks_per_second)

        return Frame(
            iteration=self.iteration + 1,
            timestamp_ms=snapshot.timestamp_ms,
            rows=rank(snapshot, utilization, self.sort_key),
            summary=SystemSummary.from_snapshot(snapshot, totals),
            sort_key=self.sort_key,
        )

    def _wait(self) -> bool:
        """Wait out the interval in short increments.

        Returns:
            True if the loop should terminate.
        """
        deadline = self._clock() + self._interval

        while True:
            if self._cancel.is_set():
                return True

            keys = self._keys
            if keys is not None:
                while (key := keys.read_key()) is not None:
                    if key in CANCEL_KEYS:
                        self.cancel()
                        return True
                    if key in HELP_KEYS:
                        # Time spent reading help does not count against the interval
                        deadline += self._help_pause(keys)
                        if self._cancel.is_set():
                            return True
                    elif key in SORT_KEYS:
                        self.sort_key = self.sort_key.next()
                        log.debug("sort key changed", sort_key=self.sort_key.value)

            remaining = deadline - self._clock()
            if remaining <= 0:
                return False
            self._sleep(min(self._poll_increment, remaining))

    def _help_pause(self, keys: KeySource) -> float:
        """Show help until the next keypress; return seconds spent paused."""
        started = self._clock()
        self._sink.show_help(HELP_TEXT)
        try:
            while not self._cancel.is_set():
                key = keys.read_key()
                if key is not None:
                    if key in CANCEL_KEYS:
                        self.cancel()
                    break
                self._sleep(self._poll_increment)
        finally:
            self._sink.hide_help()
        return self._clock() - started
