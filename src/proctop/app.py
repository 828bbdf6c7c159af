"""proctop - Textual application for interactive mode."""

from queue import Empty, Queue

from rich.markup import escape
from textual import events
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.screen import ModalScreen
from textual.widgets import DataTable, Static

from proctop.config import MonitorConfig
from proctop.formatting import format_cpu_time, summary_lines
from proctop.models import ProcessState, RankedProcess
from proctop.monitor import Finished, HelpHidden, HelpShown, MonitorThread, Update
from proctop.provider import ProcessProvider
from proctop.scheduler import Frame

_STATE_STYLES = {
    ProcessState.RUNNING: "green",
    ProcessState.SLEEPING: "cyan",
    ProcessState.ZOMBIE: "bold red",
    ProcessState.UNKNOWN: "dim",
}


class HeaderStats(Static):
    """Header widget showing uptime, load, task counts and memory."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 5;
        padding: 0 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__("Sampling...", *args, **kwargs)
        self._lines: list[str] = []

    @property
    def lines(self) -> list[str]:
        """The header text currently shown."""
        return list(self._lines)

    def update_stats(self, frame: Frame) -> None:
        """Update the statistics from a frame."""
        self._lines = summary_lines(frame.summary, frame.timestamp_ms)
        self.update(escape("\n".join(self._lines)))


class ProcessTable(Container):
    """Container for the process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, ticks_per_second: int, *args, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._ticks_per_second = ticks_per_second
        self._pids: list[int] = []

    @property
    def pids(self) -> list[int]:
        """Pids in display order."""
        return list(self._pids)

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"

        table.add_column("PID", key="pid", width=8)
        table.add_column("PPID", key="ppid", width=8)
        table.add_column("S", key="state", width=3)
        table.add_column("NI", key="nice", width=4)
        table.add_column("%CPU", key="cpu", width=6)
        table.add_column("TIME+", key="time", width=10)
        table.add_column("COMMAND", key="command")

    def update_processes(self, rows: list[RankedProcess]) -> None:
        """
        Replace the table contents with already-ranked rows.

        Rows are rebuilt rather than patched in place because the ranking
        decides the order. The cursor stays on the same pid when it survives.
        """
        table = self.query_one("#process-table", DataTable)
        selected = self._pids[table.cursor_row] if 0 <= table.cursor_row < len(self._pids) else None

        table.clear()
        for record, sample in rows:
            style = _STATE_STYLES[record.state]
            table.add_row(
                str(record.pid),
                str(record.ppid),
                f"[{style}]{record.state.value}[/]",
                str(record.nice),
                f"{sample.cpu_percent:5.1f}",
                format_cpu_time(record.total_ticks, self._ticks_per_second),
                escape(record.name),
                key=str(record.pid),
            )
        self._pids = [row.record.pid for row in rows]

        if selected in self._pids:
            table.move_cursor(row=self._pids.index(selected))


class HelpScreen(ModalScreen):
    """Static help shown while the scheduler is paused."""

    DEFAULT_CSS = """
    HelpScreen {
        align: center middle;
    }

    #help-text {
        width: auto;
        max-width: 70;
        padding: 1 2;
        border: thick $primary;
        background: $surface;
    }
    """

    def __init__(self, text: str) -> None:
        """Initialize HelpScreen."""
        super().__init__()
        self._text = text

    def compose(self) -> ComposeResult:
        """Compose the help box."""
        yield Static(escape(self._text), id="help-text")


class ProctopApp(App):
    """Main proctop application."""

    TITLE = "proctop"
    SUB_TITLE = "Process Activity Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
    }

    #key-hints {
        dock: bottom;
        height: 1;
        background: $primary;
    }
    """

    def __init__(self, provider: ProcessProvider, config: MonitorConfig | None = None) -> None:
        """Initialize the ProctopApp."""
        super().__init__()
        self._update_queue: Queue[Update] = Queue()
        self._monitor = MonitorThread(provider, self._update_queue, config)
        self._header = HeaderStats(id="header-stats")
        self._table = ProcessTable(provider.ticks_per_second)
        self.fatal_error: str | None = None

    @property
    def monitor(self) -> MonitorThread:
        """The background sampler."""
        return self._monitor

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield self._header
        yield self._table
        yield Static(" q Quit  h Help  s Sort", id="key-hints")

    def on_mount(self) -> None:
        """Start the monitor when the app is mounted."""
        self._monitor.start()
        self.set_interval(0.1, self._check_for_updates)

    def on_key(self, event: events.Key) -> None:
        """Forward keystrokes to the scheduler, which interprets them."""
        if event.character:
            self._monitor.keys.put(event.character)
            event.stop()

    def _check_for_updates(self) -> None:
        """Drain the queue, applying frames before any control update behind them."""
        latest: Frame | None = None
        while True:
            try:
                update = self._update_queue.get_nowait()
            except Empty:
                break

            if isinstance(update, Frame):
                latest = update
                continue

            if latest is not None:
                self._update_ui(latest)
                latest = None

            if isinstance(update, HelpShown):
                self.push_screen(HelpScreen(update.text))
            elif isinstance(update, HelpHidden):
                if isinstance(self.screen, HelpScreen):
                    self.pop_screen()
            elif isinstance(update, Finished):
                self.fatal_error = update.error
                self.exit(return_code=update.exit_code)
                return

        if latest is not None:
            self._update_ui(latest)

    def _update_ui(self, frame: Frame) -> None:
        """Update the UI with a new frame."""
        self._header.update_stats(frame)
        self._table.update_processes(frame.rows)
        self.sub_title = f"Sort: {frame.sort_key.value.upper()}"

    def on_unmount(self) -> None:
        """Stop the sampler with the app."""
        self._monitor.stop()
