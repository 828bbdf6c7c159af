"""Ordering of process rows."""

from enum import Enum

from proctop.models import RankedProcess, Snapshot, UtilizationSample


class SortKey(Enum):
    """Sort keys for the process table."""

    CPU = "cpu"
    PID = "pid"

    @classmethod
    def parse(cls, value: str) -> "SortKey":
        """Look up a key by its value, ignoring case."""
        try:
            return cls(value.lower())
        except ValueError:
            valid = ", ".join(key.value for key in cls)
            raise ValueError(f"Unknown sort key: {value!r}. Valid keys: {valid}") from None

    def next(self) -> "SortKey":
        """The key after this one, wrapping around."""
        keys = list(SortKey)
        return keys[(keys.index(self) + 1) % len(keys)]


def _cpu_order(row: RankedProcess) -> tuple[float, int, int]:
    # Utilization desc, then cumulative CPU time desc, then pid asc
    return (-row.sample.cpu_percent, -row.record.total_ticks, row.record.pid)


def _pid_order(row: RankedProcess) -> int:
    return row.record.pid


_ORDERS = {
    SortKey.CPU: _cpu_order,
    SortKey.PID: _pid_order,
}


def rank(
    snapshot: Snapshot,
    utilization: dict[int, UtilizationSample],
    key: SortKey = SortKey.CPU,
) -> list[RankedProcess]:
    """
    Pair every process with its utilization and sort the pairs.

    Every sort key ends in the pid, which is unique within a snapshot, so the
    order is total and identical input always gives identical output.
    """
    rows = [
        RankedProcess(
            record=proc,
            sample=utilization.get(proc.pid) or UtilizationSample(proc.pid, 0.0, has_baseline=False),
        )
        for proc in snapshot.processes
    ]
    return sorted(rows, key=_ORDERS[key])
