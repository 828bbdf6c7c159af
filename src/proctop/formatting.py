"""Text formatting shared by the console and Textual sinks."""

from datetime import datetime

from proctop.models import SystemSummary


def format_mem(size: int) -> str:
    """Format bytes with a spelled-out unit, e.g. ``1.5 GB``."""
    if size >= 1024**3:
        return f"{size / 1024**3:.1f} GB"
    if size >= 1024**2:
        return f"{size / 1024**2:.1f} MB"
    if size >= 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size} B"


def format_uptime(seconds: float) -> str:
    """Format uptime as ``H:MM`` or ``N days, H:MM``."""
    seconds = int(seconds)
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60
    if days > 0:
        return f"{days} days, {hours:2d}:{minutes:02d}"
    return f"{hours:2d}:{minutes:02d}"


def format_cpu_time(ticks: int, ticks_per_second: int) -> str:
    """Format cumulative CPU ticks as ``M:SS.hh`` like top's TIME+ column."""
    hundredths = ticks * 100 // max(1, ticks_per_second)
    minutes, rem = divmod(hundredths, 6000)
    seconds, hundredths = divmod(rem, 100)
    return f"{minutes}:{seconds:02d}.{hundredths:02d}"


def summary_lines(summary: SystemSummary, timestamp_ms: int) -> list[str]:
    """Header lines above the process table, as plain text."""
    totals = summary.totals
    clock = datetime.fromtimestamp(timestamp_ms / 1000).strftime("%H:%M:%S")
    load = ", ".join(f"{value:.2f}" for value in totals.load_avg)
    lines = [
        f"top - {clock} up {format_uptime(totals.uptime_seconds)}, load average: {load}",
        f"Tasks: {summary.total} total, {summary.running} running, "
        f"{summary.sleeping} sleeping, {summary.zombie} zombie",
    ]
    if totals.cpu_count:
        lines.append(f"CPU cores: {totals.cpu_count}")
    lines.append(
        f"Mem:  {format_mem(totals.memory_total)} total, {format_mem(totals.memory_used)} used, "
        f"{format_mem(totals.memory_free)} free, {format_mem(totals.memory_shared)} shared, "
        f"{format_mem(totals.memory_buffers)} buffers"
    )
    if totals.swap_total > 0:
        lines.append(
            f"Swap: {format_mem(totals.swap_total)} total, {format_mem(totals.swap_used)} used, "
            f"{format_mem(totals.swap_free)} free"
        )
    return lines
