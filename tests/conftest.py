"""Shared test fixtures for proctop."""

from collections.abc import Iterable

import pytest

from proctop import logging as proctop_logging
from proctop.models import ProcessRecord, ProcessState, Snapshot, SystemTotals
from proctop.provider import ProviderError
from proctop.scheduler import Frame


@pytest.fixture(autouse=True)
def _quiet_logging():
    """Keep structlog output out of the test run."""
    proctop_logging.configure("WARNING", console=False)
    yield
    proctop_logging.configure("WARNING", console=False)


def make_record(
    pid: int = 100,
    ppid: int = 1,
    state: ProcessState = ProcessState.SLEEPING,
    name: str = "test_cmd",
    utime: int = 0,
    stime: int = 0,
    nice: int = 0,
) -> ProcessRecord:
    """Create a ProcessRecord for testing."""
    return ProcessRecord(
        pid=pid,
        ppid=ppid,
        state=state,
        name=name,
        utime=utime,
        stime=stime,
        nice=nice,
    )


def make_snapshot(timestamp_ms: int, *records: ProcessRecord) -> Snapshot:
    """Create a Snapshot for testing."""
    return Snapshot(processes=tuple(records), timestamp_ms=timestamp_ms)


class FakeClock:
    """Monotonic clock whose sleep() just advances time."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeProvider:
    """Provider that replays a fixed list of snapshots.

    Once the list is exhausted it raises ProviderError, unless ``repeat_last``
    is set, in which case the last snapshot is returned again with the
    timestamp moved forward by 1 second.
    """

    def __init__(
        self,
        snapshots: Iterable[Snapshot],
        ticks_per_second: int = 100,
        repeat_last: bool = False,
        totals: SystemTotals | None = None,
    ) -> None:
        self._snapshots = list(snapshots)
        self._repeat_last = repeat_last
        self._last: Snapshot | None = None
        self.ticks_per_second = ticks_per_second
        self.totals = totals or SystemTotals(memory_total=8 * 1024**3, cpu_count=4)
        self.calls = 0

    def list_processes(self) -> Snapshot:
        self.calls += 1
        if self._snapshots:
            self._last = self._snapshots.pop(0)
            return self._last
        if self._repeat_last and self._last is not None:
            self._last = Snapshot(self._last.processes, self._last.timestamp_ms + 1000)
            return self._last
        raise ProviderError("process source unavailable")

    def system_totals(self) -> SystemTotals:
        return self.totals


class RecordingSink:
    """Display sink that remembers every call."""

    def __init__(self) -> None:
        self.frames: list[Frame] = []
        self.events: list[str] = []
        self.help_texts: list[str] = []
        self.fatal_messages: list[str] = []

    def render(self, frame: Frame) -> None:
        self.frames.append(frame)
        self.events.append("render")

    def show_help(self, text: str) -> None:
        self.help_texts.append(text)
        self.events.append("show_help")

    def hide_help(self) -> None:
        self.events.append("hide_help")

    def fatal(self, message: str) -> None:
        self.fatal_messages.append(message)
        self.events.append("fatal")


class ScriptedKeys:
    """KeySource that delivers keys at fixed clock times."""

    def __init__(self, clock: FakeClock, script: list[tuple[float, str]]) -> None:
        self._clock = clock
        self._script = sorted(script)
        self.reads = 0

    def read_key(self) -> str | None:
        self.reads += 1
        if self._script and self._script[0][0] <= self._clock():
            return self._script.pop(0)[1]
        return None


@pytest.fixture
def clock() -> FakeClock:
    """A fake clock starting at zero."""
    return FakeClock()


@pytest.fixture
def sink() -> RecordingSink:
    """A sink that records frames."""
    return RecordingSink()
