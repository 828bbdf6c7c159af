"""Tests for text formatting and the Rich console sink."""

from io import StringIO

from rich.console import Console

from proctop.console import ConsoleSink
from proctop.formatting import (
    format_cpu_time,
    format_mem,
    format_uptime,
    summary_lines,
)
from proctop.models import (
    ProcessState,
    RankedProcess,
    SystemSummary,
    SystemTotals,
    UtilizationSample,
)
from proctop.ranker import SortKey
from proctop.scheduler import Frame

from conftest import make_record


def test_format_mem():
    """format_mem spells out units."""
    assert format_mem(512) == "512 B"
    assert format_mem(2048) == "2.0 KB"
    assert format_mem(3 * 1024**2) == "3.0 MB"
    assert format_mem(int(1.5 * 1024**3)) == "1.5 GB"


def test_format_uptime():
    """Uptime shows days only when there are some."""
    assert format_uptime(3 * 3600 + 7 * 60) == " 3:07"
    assert format_uptime(2 * 86400 + 3600) == "2 days,  1:00"


def test_format_cpu_time():
    """TIME+ is minutes, seconds and hundredths."""
    assert format_cpu_time(0, 100) == "0:00.00"
    assert format_cpu_time(6525, 100) == "1:05.25"
    assert format_cpu_time(250, 250) == "0:01.00"


def _frame(rows, sort_key=SortKey.CPU) -> Frame:
    totals = SystemTotals(
        load_avg=(0.5, 0.25, 0.125),
        memory_total=8 * 1024**3,
        memory_used=2 * 1024**3,
        memory_free=6 * 1024**3,
        swap_total=1024**3,
        uptime_seconds=3600,
        cpu_count=4,
    )
    summary = SystemSummary(total=len(rows), running=1, sleeping=len(rows) - 1, zombie=0, totals=totals)
    return Frame(iteration=1, timestamp_ms=0, rows=rows, summary=summary, sort_key=sort_key)


def test_summary_lines():
    """The header reports load, tasks, cores, memory and swap."""
    lines = summary_lines(_frame([]).summary, 0)
    text = "\n".join(lines)

    assert lines[0].startswith("top - ")
    assert "load average: 0.50, 0.25, 0.12" in text
    assert "Tasks: 0 total, 1 running" in text
    assert "CPU cores: 4" in text
    assert "Mem:  8.0 GB total" in text
    assert "Swap: 1.0 GB total" in text


def test_summary_lines_without_swap():
    """No swap line when there is no swap."""
    summary = SystemSummary(total=0, running=0, sleeping=0, zombie=0)
    assert not any(line.startswith("Swap") for line in summary_lines(summary, 0))


def _render(frame: Frame, **kwargs) -> str:
    out = StringIO()
    sink = ConsoleSink(console=Console(file=out, width=120, color_system=None), ticks_per_second=100, **kwargs)
    sink.render(frame)
    return out.getvalue()


def test_console_sink_renders_rows_in_order():
    """Rows appear in ranked order with their utilization."""
    rows = [
        RankedProcess(make_record(pid=42, name="busy", state=ProcessState.RUNNING, utime=6525), UtilizationSample(42, 87.5)),
        RankedProcess(make_record(pid=7, name="idle"), UtilizationSample(7, 0.0)),
    ]

    output = _render(_frame(rows))

    assert "PID" in output and "%CPU*" in output and "COMMAND" in output
    assert output.index("busy") < output.index("idle")
    assert "87.5" in output
    assert "1:05.25" in output


def test_console_sink_limits_rows():
    """Only max_rows rows are printed."""
    rows = [RankedProcess(make_record(pid=p, name=f"proc{p}"), UtilizationSample(p, 0.0)) for p in range(1, 11)]

    output = _render(_frame(rows), max_rows=3)

    assert "proc3" in output
    assert "proc4" not in output


def test_console_sink_marks_pid_sort():
    """The sort column is marked."""
    output = _render(_frame([], sort_key=SortKey.PID))
    assert "PID*" in output
    assert "%CPU*" not in output


def test_console_sink_escapes_markup_in_names():
    """Process names are printed literally."""
    rows = [RankedProcess(make_record(pid=1, name="[bold]x[/]"), UtilizationSample(1, 0.0))]
    assert "[bold]x[/]" in _render(_frame(rows))


def test_console_sink_help():
    """Help text is printed in a panel."""
    out = StringIO()
    sink = ConsoleSink(console=Console(file=out, width=80, color_system=None))

    sink.show_help("press q to quit")
    sink.hide_help()

    assert "press q to quit" in out.getvalue()
    assert "Help" in out.getvalue()
