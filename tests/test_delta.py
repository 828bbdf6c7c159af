"""Tests for the delta engine."""

import pytest

from proctop.delta import compute
from proctop.models import ProcessRecord, UtilizationSample

from conftest import make_record, make_snapshot


def test_full_core_is_one_hundred_percent():
    """100 ticks at 100 ticks/s over 1000 ms is one busy core."""
    previous = make_snapshot(1000, make_record(pid=100, utime=150, stime=50))
    current = make_snapshot(2000, make_record(pid=100, utime=220, stime=80))

    samples = compute(current, previous, elapsed_ms=1000, ticks_per_second=100)

    assert samples[100].cpu_percent == 100.0
    assert samples[100].has_baseline


def test_partial_utilization():
    """25 ticks over one second at 100 ticks/s is 25%."""
    previous = make_snapshot(1000, make_record(pid=1, utime=100))
    current = make_snapshot(2000, make_record(pid=1, utime=120, stime=5))

    samples = compute(current, previous, elapsed_ms=1000, ticks_per_second=100)

    assert samples[1].cpu_percent == pytest.approx(25.0)


def test_multi_core_usage_is_capped():
    """Per-process utilization is single-core equivalent, capped at 100%."""
    previous = make_snapshot(1000, make_record(pid=1, utime=0))
    current = make_snapshot(2000, make_record(pid=1, utime=400))

    samples = compute(current, previous, elapsed_ms=1000, ticks_per_second=100)

    assert samples[1].cpu_percent == 100.0


def test_new_process_reports_zero():
    """A process absent from the previous snapshot has no baseline."""
    previous = make_snapshot(1000, make_record(pid=1, utime=10))
    current = make_snapshot(2000, make_record(pid=1, utime=10), make_record(pid=2, utime=5000))

    samples = compute(current, previous, elapsed_ms=1000, ticks_per_second=100)

    assert samples[2].cpu_percent == 0.0
    assert not samples[2].has_baseline


def test_first_iteration_reports_zero_for_all():
    """With no previous snapshot every process reports 0."""
    current = make_snapshot(2000, make_record(pid=1, utime=500), make_record(pid=2, stime=900))

    samples = compute(current, None, elapsed_ms=0, ticks_per_second=100)

    assert {pid: s.cpu_percent for pid, s in samples.items()} == {1: 0.0, 2: 0.0}
    assert not any(s.has_baseline for s in samples.values())


def test_pid_reuse_clamps_negative_delta():
    """A counter that went backwards (pid reused) reports 0, never negative."""
    previous = make_snapshot(1000, make_record(pid=42, utime=9000, stime=1000))
    current = make_snapshot(2000, make_record(pid=42, name="newproc", utime=3))

    samples = compute(current, previous, elapsed_ms=1000, ticks_per_second=100)

    assert samples[42].cpu_percent == 0.0


@pytest.mark.parametrize("elapsed_ms", [0, -500])
def test_zero_or_negative_elapsed_is_guarded(elapsed_ms):
    """Elapsed time is raised to 1 ms instead of dividing by zero."""
    previous = make_snapshot(1000, make_record(pid=1, utime=0))
    current = make_snapshot(1000, make_record(pid=1, utime=1))

    samples = compute(current, previous, elapsed_ms=elapsed_ms, ticks_per_second=100)

    assert 0.0 <= samples[1].cpu_percent <= 100.0


def test_zero_elapsed_without_activity_is_zero():
    """No CPU delta stays at 0 even with a degenerate interval."""
    previous = make_snapshot(1000, make_record(pid=1, utime=50))
    current = make_snapshot(1000, make_record(pid=1, utime=50))

    samples = compute(current, previous, elapsed_ms=0, ticks_per_second=100)

    assert samples[1].cpu_percent == 0.0


def test_vanished_process_is_not_reported():
    """Only processes in the current snapshot appear in the result."""
    previous = make_snapshot(1000, make_record(pid=1), make_record(pid=2))
    current = make_snapshot(2000, make_record(pid=2))

    samples = compute(current, previous, elapsed_ms=1000, ticks_per_second=100)

    assert set(samples) == {2}


def test_empty_snapshot_gives_empty_map():
    """All processes gone: empty result, no error."""
    previous = make_snapshot(1000, make_record(pid=1, utime=10))
    current = make_snapshot(2000)

    assert compute(current, previous, elapsed_ms=1000, ticks_per_second=100) == {}


def test_results_always_within_bounds():
    """Utilization is in [0, 100] across a spread of deltas."""
    previous = make_snapshot(1000, *(make_record(pid=p, utime=p * 7) for p in range(1, 50)))
    current = make_snapshot(
        3000, *(make_record(pid=p, utime=p * 7 + (p * 13) % 400) for p in range(1, 50))
    )

    samples = compute(current, previous, elapsed_ms=2000, ticks_per_second=100)

    assert all(0.0 <= s.cpu_percent <= 100.0 for s in samples.values())


def test_invalid_tick_rate():
    """A tick rate below 1 is rejected."""
    snapshot = make_snapshot(1000)
    with pytest.raises(ValueError):
        compute(snapshot, snapshot, elapsed_ms=1000, ticks_per_second=0)


def test_degraded_previous_record_is_not_a_baseline():
    """A process unreadable last round reports 0 instead of its lifetime CPU."""
    previous = make_snapshot(1000, ProcessRecord.degraded(42))
    current = make_snapshot(3000, make_record(pid=42, utime=360000, stime=5000))

    samples = compute(current, previous, elapsed_ms=2000, ticks_per_second=100)

    assert samples[42].cpu_percent == 0.0
    assert not samples[42].has_baseline


def test_degraded_current_record_reports_zero():
    """A process unreadable this round has no baseline either."""
    previous = make_snapshot(1000, make_record(pid=42, utime=500))
    current = make_snapshot(2000, ProcessRecord.degraded(42))

    samples = compute(current, previous, elapsed_ms=1000, ticks_per_second=100)

    assert samples[42] == UtilizationSample(pid=42, cpu_percent=0.0, has_baseline=False)


def test_recovers_once_two_readable_samples_exist():
    """After a degraded round, the next readable pair is measured normally."""
    first = make_snapshot(1000, ProcessRecord.degraded(7))
    second = make_snapshot(2000, make_record(pid=7, utime=1000))
    third = make_snapshot(3000, make_record(pid=7, utime=1050))

    assert compute(second, first, 1000, 100)[7].cpu_percent == 0.0
    assert compute(third, second, 1000, 100)[7].cpu_percent == pytest.approx(50.0)
