"""Background runner that feeds scheduler output to a UI thread."""

import threading
from dataclasses import dataclass
from queue import Queue

from proctop.config import MonitorConfig
from proctop.logging import get_logger
from proctop.provider import ProcessProvider
from proctop.scheduler import Frame, QueueKeySource, Scheduler

log = get_logger(__name__)


@dataclass(slots=True, frozen=True)
class HelpShown:
    """The scheduler paused to show help."""

    text: str


@dataclass(slots=True, frozen=True)
class HelpHidden:
    """The help pause ended."""


@dataclass(slots=True, frozen=True)
class Finished:
    """The scheduler reached its terminal state."""

    exit_code: int
    error: str | None = None


Update = Frame | HelpShown | HelpHidden | Finished


class QueueSink:
    """Display sink that forwards everything to a thread-safe queue."""

    def __init__(self, update_queue: "Queue[Update]") -> None:
        self._queue = update_queue

    def render(self, frame: Frame) -> None:
        self._queue.put(frame)

    def show_help(self, text: str) -> None:
        self._queue.put(HelpShown(text))

    def hide_help(self) -> None:
        self._queue.put(HelpHidden())

    def fatal(self, message: str) -> None:
        # Reported through Finished so the UI can exit before printing it
        pass


class MonitorThread:
    """
    Runs a Scheduler in a daemon thread and pushes its output to a Queue.

    Keystrokes go the other way through :attr:`keys`. The last item put on
    the queue is always a :class:`Finished`.
    """

    def __init__(
        self,
        provider: ProcessProvider,
        update_queue: "Queue[Update]",
        config: MonitorConfig | None = None,
    ) -> None:
        """
        Initialize the MonitorThread.

        Args:
            provider: Source of process snapshots.
            update_queue: Thread-safe queue to push updates to.
            config: Scheduler configuration. Batch mode is not meaningful here.
        """
        self._queue = update_queue
        self.keys = QueueKeySource()
        self.scheduler = Scheduler(provider, QueueSink(update_queue), config, self.keys)
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self._thread is not None:
            return

        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name="MonitorThread",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Cancel the scheduler and wait for the thread to finish.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self.scheduler.cancel()
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def _run(self) -> None:
        try:
            exit_code = self.scheduler.run()
        except Exception:
            log.exception("scheduler crashed")
            self._queue.put(Finished(exit_code=1, error="internal error, see log"))
            return
        self._queue.put(Finished(exit_code=exit_code, error=self.scheduler.error))
