"""Command-line entry point for proctop."""

import signal
import sys
from pathlib import Path

import click
from rich.console import Console

from proctop import logging as proctop_logging
from proctop.config import Config, MonitorConfig, default_config_path
from proctop.console import ConsoleSink
from proctop.provider import ProcessProvider, ProcfsProvider, PsutilProvider
from proctop.scheduler import Scheduler

_stderr = Console(stderr=True, highlight=False)


def build_provider(config: MonitorConfig) -> ProcessProvider:
    """Create the provider named in the config."""
    if config.provider == "procfs":
        return ProcfsProvider(config.procfs_root)
    return PsutilProvider()


def run_batch(provider: ProcessProvider, config: MonitorConfig, console: Console | None = None) -> int:
    """Run the scheduler with plain console output; Ctrl-C cancels."""
    sink = ConsoleSink(
        console=console,
        batch=True,
        max_rows=config.max_rows,
        ticks_per_second=provider.ticks_per_second,
    )
    scheduler = Scheduler(provider, sink, config)

    def _on_sigint(signum, frame) -> None:
        scheduler.cancel()

    previous_handler = signal.signal(signal.SIGINT, _on_sigint)
    try:
        exit_code = scheduler.run()
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    if scheduler.error:
        report_fatal(scheduler.error)
    return exit_code


def run_interactive(provider: ProcessProvider, config: MonitorConfig) -> int:
    """Run the Textual UI until the scheduler terminates."""
    from proctop.app import ProctopApp

    app = ProctopApp(provider, config)
    app.run()
    if app.fatal_error:
        report_fatal(app.fatal_error)
    return app.return_code or 0


def report_fatal(message: str) -> None:
    """Print the single diagnostic line for a fatal error."""
    _stderr.print(f"proctop: {message}", markup=False)


@click.command()
@click.version_option(package_name="proctop")
@click.option(
    "-n",
    "--iterations",
    type=int,
    default=None,
    help="Update this many times, then exit (negative: no limit).",
)
@click.option("-d", "--delay", type=float, default=None, help="Seconds between updates (default 2, minimum 1).")
@click.option("-b", "--batch", is_flag=True, default=False, help="Batch mode: plain output, no key handling.")
@click.option(
    "-s",
    "--sort",
    "sort_key",
    type=click.Choice(["cpu", "pid"], case_sensitive=False),
    default=None,
    help="Sort by %CPU (default) or PID.",
)
@click.option("--procfs", "use_procfs", is_flag=True, default=False, help="Read /proc directly instead of psutil.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default ~/.config/proctop/config.toml).",
)
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write JSON logs here.")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Diagnostic log level.",
)
def main(
    iterations: int | None,
    delay: float | None,
    batch: bool,
    sort_key: str | None,
    use_procfs: bool,
    config_path: Path | None,
    log_file: Path | None,
    log_level: str | None,
) -> None:
    """Live process activity monitor."""
    try:
        config = Config.load(config_path or default_config_path())
        overrides = {
            "iterations": iterations,
            "interval": delay,
            "batch": True if batch else None,
            "sort_key": sort_key.lower() if sort_key else None,
            "provider": "procfs" if use_procfs else None,
        }
        monitor_config = _override(config.monitor, overrides)
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    level = (log_level or config.logging.level).upper()
    log_path = log_file or config.logging.path
    # The TUI owns the terminal, so without a file nothing is logged there
    proctop_logging.configure(level, log_file=log_path, console=monitor_config.batch)

    provider = build_provider(monitor_config)
    if monitor_config.batch:
        exit_code = run_batch(provider, monitor_config)
    else:
        exit_code = run_interactive(provider, monitor_config)
    sys.exit(exit_code)


def _override(config: MonitorConfig, overrides: dict) -> MonitorConfig:
    """Apply command-line values that were actually given."""
    values = {name: getattr(config, name) for name in config.__dataclass_fields__}
    values.update({name: value for name, value in overrides.items() if value is not None})
    return MonitorConfig(**values)


if __name__ == "__main__":
    main()
