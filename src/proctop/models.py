"""Data models for proctop."""

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple

COMMAND_MAX_LEN = 16


class ProcessState(Enum):
    """Run state of a process, reduced to what the monitor distinguishes."""

    RUNNING = "R"
    SLEEPING = "S"
    ZOMBIE = "Z"
    UNKNOWN = "?"

    @classmethod
    def from_code(cls, code: str) -> "ProcessState":
        """Map a single-character /proc state code."""
        if code == "R":
            return cls.RUNNING
        if code in ("S", "D", "I"):
            return cls.SLEEPING
        if code == "Z":
            return cls.ZOMBIE
        return cls.UNKNOWN

    @classmethod
    def from_psutil(cls, status: str | None) -> "ProcessState":
        """Map a psutil status string (psutil.STATUS_*)."""
        return _PSUTIL_STATES.get(status or "", cls.UNKNOWN)


_PSUTIL_STATES = {
    "running": ProcessState.RUNNING,
    "sleeping": ProcessState.SLEEPING,
    "disk-sleep": ProcessState.SLEEPING,
    "idle": ProcessState.SLEEPING,
    "zombie": ProcessState.ZOMBIE,
}


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable record of one process observed in a single sample."""

    pid: int
    ppid: int
    state: ProcessState
    name: str
    utime: int  # Clock ticks, cumulative since process start
    stime: int  # Clock ticks, cumulative since process start
    nice: int
    is_degraded: bool = False  # Status unreadable; counters are placeholders

    def __post_init__(self) -> None:
        if self.utime < 0 or self.stime < 0:
            raise ValueError(f"CPU tick counters must be non-negative (pid {self.pid})")
        if len(self.name) > COMMAND_MAX_LEN:
            object.__setattr__(self, "name", self.name[:COMMAND_MAX_LEN])

    @property
    def total_ticks(self) -> int:
        """User plus kernel ticks."""
        return self.utime + self.stime

    @classmethod
    def degraded(cls, pid: int, name: str = "", ppid: int = 0) -> "ProcessRecord":
        """Record for a process whose status could not be read or parsed."""
        return cls(
            pid=pid,
            ppid=ppid,
            state=ProcessState.UNKNOWN,
            name=name,
            utime=0,
            stime=0,
            nice=0,
            is_degraded=True,
        )


@dataclass(slots=True, frozen=True)
class Snapshot:
    """One complete sampling pass plus its wall-clock capture time."""

    processes: tuple[ProcessRecord, ...]
    timestamp_ms: int

    def __post_init__(self) -> None:
        pids = [proc.pid for proc in self.processes]
        if len(pids) != len(set(pids)):
            raise ValueError("Process identifiers must be unique within a snapshot")

    def __len__(self) -> int:
        return len(self.processes)

    def by_pid(self) -> dict[int, ProcessRecord]:
        """Return the records keyed by process identifier."""
        return {proc.pid: proc for proc in self.processes}


@dataclass(slots=True, frozen=True)
class UtilizationSample:
    """CPU utilization of one process since the previous snapshot."""

    pid: int
    cpu_percent: float  # 0.0 - 100.0, single-core equivalent
    has_baseline: bool = True


class RankedProcess(NamedTuple):
    """A process row as handed to a display sink."""

    record: ProcessRecord
    sample: UtilizationSample


@dataclass(slots=True, frozen=True)
class SystemTotals:
    """Host-wide figures that do not come from the process table."""

    load_avg: tuple[float, float, float] = (0.0, 0.0, 0.0)
    memory_total: int = 0
    memory_used: int = 0
    memory_free: int = 0
    memory_shared: int = 0
    memory_buffers: int = 0
    swap_total: int = 0
    swap_used: int = 0
    swap_free: int = 0
    uptime_seconds: float = 0.0
    cpu_count: int = 0


@dataclass(slots=True, frozen=True)
class SystemSummary:
    """Aggregate values shown above the process table."""

    total: int
    running: int
    sleeping: int
    zombie: int
    totals: SystemTotals = field(default_factory=SystemTotals)

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot, totals: SystemTotals) -> "SystemSummary":
        """Count tasks per state in a snapshot."""
        states = [proc.state for proc in snapshot.processes]
        return cls(
            total=len(states),
            running=states.count(ProcessState.RUNNING),
            sleeping=states.count(ProcessState.SLEEPING),
            zombie=states.count(ProcessState.ZOMBIE),
            totals=totals,
        )
