"""Rich console display sink for batch and plain-terminal output."""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from proctop.formatting import format_cpu_time, summary_lines
from proctop.models import ProcessState
from proctop.provider import CLOCK_TICKS
from proctop.scheduler import Frame

_STATE_STYLES = {
    ProcessState.RUNNING: "green",
    ProcessState.SLEEPING: "cyan",
    ProcessState.ZOMBIE: "bold red",
    ProcessState.UNKNOWN: "dim",
}


class ConsoleSink:
    """
    Prints each frame as a header plus a process table.

    In batch mode frames are appended one after another, separated by a blank
    line, so the output can be piped or logged. Otherwise the screen is
    cleared before each frame.
    """

    def __init__(
        self,
        console: Console | None = None,
        batch: bool = True,
        max_rows: int = 40,
        ticks_per_second: int = CLOCK_TICKS,
    ) -> None:
        self._console = console or Console(highlight=False)
        self._batch = batch
        self._max_rows = max_rows
        self._ticks_per_second = ticks_per_second

    def render(self, frame: Frame) -> None:
        """Print one frame."""
        if not self._batch:
            self._console.clear()

        for line in summary_lines(frame.summary, frame.timestamp_ms):
            self._console.print(escape(line))
        self._console.print()
        self._console.print(self._build_table(frame))

        if self._batch:
            self._console.print()

    def _build_table(self, frame: Frame) -> Table:
        sort_column = "%CPU" if frame.sort_key.value == "cpu" else "PID"
        table = Table(box=None, header_style="bold reverse", pad_edge=False)
        for column in ("PID", "PPID", "S", "NI", "%CPU", "TIME+"):
            header = f"{column}*" if column == sort_column else column
            table.add_column(header, justify="right", no_wrap=True)
        table.add_column("COMMAND", justify="left", no_wrap=True)

        for record, sample in frame.rows[: self._max_rows]:
            style = _STATE_STYLES[record.state]
            table.add_row(
                str(record.pid),
                str(record.ppid),
                f"[{style}]{record.state.value}[/]",
                str(record.nice),
                f"{sample.cpu_percent:5.1f}",
                format_cpu_time(record.total_ticks, self._ticks_per_second),
                escape(record.name),
            )
        return table

    def show_help(self, text: str) -> None:
        """Print the help text in a panel."""
        self._console.print(Panel(escape(text), title="Help", expand=False))

    def hide_help(self) -> None:
        """Nothing to undo; the next frame replaces the help panel."""

    def fatal(self, message: str) -> None:
        """Fatal errors are reported by the caller, not mixed into the output."""
