"""Process information providers.

A provider turns the host's process table into a :class:`Snapshot`. Two
implementations share the same contract:

- :class:`PsutilProvider` asks psutil, which works on every platform it supports.
- :class:`ProcfsProvider` reads ``/proc/<pid>/stat`` directly.

Per-process problems never escape: a process that exits between enumeration
and detail read is omitted, and a process whose status cannot be read or
parsed is reported as a degraded record. Only failure to enumerate at all
raises :class:`ProviderError`.
"""

import os
import time
from pathlib import Path
from typing import Callable, Protocol

import psutil

from proctop.logging import get_logger
from proctop.models import ProcessRecord, ProcessState, Snapshot, SystemTotals

log = get_logger(__name__)

DEFAULT_CLOCK_TICKS = 100


def _clock_ticks() -> int:
    """Ticks per second used by the kernel for CPU accounting."""
    try:
        ticks = os.sysconf("SC_CLK_TCK")
    except (AttributeError, ValueError, OSError):
        return DEFAULT_CLOCK_TICKS
    return ticks if ticks > 0 else DEFAULT_CLOCK_TICKS


CLOCK_TICKS = _clock_ticks()


def wall_clock_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return time.time_ns() // 1_000_000


class ProviderError(Exception):
    """The process information source itself is unavailable."""


class ProcessProvider(Protocol):
    """Source of process snapshots and host totals."""

    ticks_per_second: int

    def list_processes(self) -> Snapshot: ...

    def system_totals(self) -> SystemTotals: ...


class _BaseProvider:
    """Shared clock handling and host totals."""

    def __init__(
        self,
        clock: Callable[[], int] = wall_clock_ms,
        ticks_per_second: int = CLOCK_TICKS,
    ) -> None:
        self._clock = clock
        self.ticks_per_second = ticks_per_second

    def system_totals(self) -> SystemTotals:
        """Collect memory, swap, load average and uptime from psutil."""
        try:
            mem = psutil.virtual_memory()
            swap = psutil.swap_memory()
            load_avg = psutil.getloadavg()
            boot_time = psutil.boot_time()
        except (OSError, psutil.Error) as e:
            raise ProviderError(f"system information unavailable: {e}") from e

        return SystemTotals(
            load_avg=tuple(load_avg),
            memory_total=mem.total,
            memory_used=mem.used,
            memory_free=mem.free,
            memory_shared=getattr(mem, "shared", 0),
            memory_buffers=getattr(mem, "buffers", 0),
            swap_total=swap.total,
            swap_used=swap.used,
            swap_free=swap.free,
            uptime_seconds=max(0.0, time.time() - boot_time),
            cpu_count=psutil.cpu_count() or 0,
        )


class PsutilProvider(_BaseProvider):
    """Provider backed by psutil.process_iter()."""

    ATTRS = ["pid", "ppid", "name", "status", "cpu_times", "nice"]

    def _to_ticks(self, seconds: float) -> int:
        return max(0, round(seconds * self.ticks_per_second))

    def list_processes(self) -> Snapshot:
        """Snapshot every visible process.

        process_iter() already skips processes that vanish mid-iteration;
        fields that raise AccessDenied or ZombieProcess come back as None.
        """
        records: list[ProcessRecord] = []
        try:
            for proc in psutil.process_iter(attrs=self.ATTRS, ad_value=None):
                records.append(self._to_record(proc.info))
        except (OSError, psutil.Error) as e:
            raise ProviderError(f"cannot enumerate processes: {e}") from e

        return Snapshot(processes=_unique(records), timestamp_ms=self._clock())

    def _to_record(self, info: dict) -> ProcessRecord:
        pid = info["pid"]
        name = info.get("name") or ""
        ppid = info.get("ppid") or 0
        cpu_times = info.get("cpu_times")
        status = info.get("status")

        if cpu_times is None or status is None:
            log.debug("process details unavailable", pid=pid)
            return ProcessRecord.degraded(pid, name=name, ppid=ppid)

        return ProcessRecord(
            pid=pid,
            ppid=ppid,
            state=ProcessState.from_psutil(status),
            name=name,
            utime=self._to_ticks(cpu_times.user),
            stime=self._to_ticks(cpu_times.system),
            nice=info.get("nice") or 0,
        )


def parse_stat_line(line: str) -> ProcessRecord:
    """Parse the contents of a ``/proc/<pid>/stat`` file.

    The command name sits in parentheses and may itself contain spaces or
    parentheses, so it runs from the first ``(`` to the last ``)``.

    Raises:
        ValueError: If the line is truncated or a numeric field is malformed.
    """
    lparen = line.find("(")
    rparen = line.rfind(")")
    if lparen < 0 or rparen < lparen:
        raise ValueError("missing command name")

    pid = int(line[:lparen])
    name = line[lparen + 1 : rparen]
    rest = line[rparen + 1 :].split()
    # rest[0] is field 3 (state); utime, stime and nice are fields 14, 15, 19
    if len(rest) < 17:
        raise ValueError(f"truncated stat record ({len(rest) + 2} fields)")

    return ProcessRecord(
        pid=pid,
        ppid=int(rest[1]),
        state=ProcessState.from_code(rest[0]),
        name=name,
        utime=int(rest[11]),
        stime=int(rest[12]),
        nice=int(rest[16]),
    )


class ProcfsProvider(_BaseProvider):
    """Provider that reads a procfs tree directly."""

    def __init__(
        self,
        root: Path | str = "/proc",
        clock: Callable[[], int] = wall_clock_ms,
        ticks_per_second: int = CLOCK_TICKS,
    ) -> None:
        super().__init__(clock=clock, ticks_per_second=ticks_per_second)
        self._root = Path(root)

    def list_processes(self) -> Snapshot:
        """Snapshot every numeric entry under the procfs root."""
        try:
            pids = sorted(int(entry.name) for entry in self._root.iterdir() if entry.name.isdigit())
        except OSError as e:
            raise ProviderError(f"cannot enumerate processes in {self._root}: {e}") from e

        records: list[ProcessRecord] = []
        for pid in pids:
            record = self._read_record(pid)
            if record is not None:
                records.append(record)

        return Snapshot(processes=_unique(records), timestamp_ms=self._clock())

    def _read_record(self, pid: int) -> ProcessRecord | None:
        """Read one process, None if it has exited."""
        try:
            content = (self._root / str(pid) / "stat").read_text()
        except (FileNotFoundError, ProcessLookupError):
            return None
        except OSError as e:
            log.debug("stat unreadable", pid=pid, error=str(e))
            return ProcessRecord.degraded(pid)

        if not content:
            # The stat file of an exited process reads empty on some kernels
            return None

        try:
            record = parse_stat_line(content)
        except ValueError as e:
            log.debug("stat malformed", pid=pid, error=str(e))
            return ProcessRecord.degraded(pid)

        if record.pid != pid:
            log.debug("stat pid mismatch", pid=pid, reported=record.pid)
            return ProcessRecord.degraded(pid, name=record.name)
        return record


def _unique(records: list[ProcessRecord]) -> tuple[ProcessRecord, ...]:
    """Drop repeated pids, keeping the first occurrence."""
    seen: set[int] = set()
    unique = []
    for record in records:
        if record.pid in seen:
            continue
        seen.add(record.pid)
        unique.append(record)
    return tuple(unique)
