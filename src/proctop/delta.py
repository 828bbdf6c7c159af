"""CPU utilization from two snapshots of cumulative tick counters."""

from proctop.models import Snapshot, UtilizationSample
from proctop.provider import CLOCK_TICKS

MIN_ELAPSED_MS = 1
MAX_PERCENT = 100.0


def compute(
    current: Snapshot,
    previous: Snapshot | None,
    elapsed_ms: int,
    ticks_per_second: int = CLOCK_TICKS,
) -> dict[int, UtilizationSample]:
    """
    Compute per-process CPU utilization since the previous snapshot.

    Processes are matched by pid. A process with no previous record, or whose
    status could not be read in either snapshot, has no baseline and reports
    0%. A tick count that went backwards means the pid
    now belongs to a different process, so the delta is treated as 0.
    Elapsed time below 1 ms is raised to 1 ms. Results are capped at 100%,
    i.e. one fully busy core.

    Args:
        current: The snapshot to report on.
        previous: The snapshot before it, or None on the first iteration.
        elapsed_ms: Wall-clock milliseconds between the two captures.
        ticks_per_second: Kernel clock tick rate for converting CPU ticks.

    Returns:
        Mapping of pid to utilization for every process in ``current``.
    """
    if ticks_per_second < 1:
        raise ValueError(f"ticks_per_second must be >= 1, got {ticks_per_second}")

    if previous is None:
        return {
            proc.pid: UtilizationSample(pid=proc.pid, cpu_percent=0.0, has_baseline=False)
            for proc in current.processes
        }

    elapsed_ms = max(MIN_ELAPSED_MS, elapsed_ms)
    baseline = previous.by_pid()
    samples: dict[int, UtilizationSample] = {}

    for proc in current.processes:
        before = baseline.get(proc.pid)
        # Degraded records carry zeroed counters, which are no baseline
        if before is None or before.is_degraded or proc.is_degraded:
            samples[proc.pid] = UtilizationSample(pid=proc.pid, cpu_percent=0.0, has_baseline=False)
            continue

        cpu_delta = max(0, proc.total_ticks - before.total_ticks)
        cpu_ms = cpu_delta * 1000 / ticks_per_second
        percent = min(MAX_PERCENT, max(0.0, cpu_ms / elapsed_ms * 100))
        samples[proc.pid] = UtilizationSample(pid=proc.pid, cpu_percent=percent)

    return samples
