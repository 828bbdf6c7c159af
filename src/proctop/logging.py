"""Structlog configuration for proctop.

Log records are routed through stdlib logging so a single handler decides
where they go:

- a rotating JSON Lines file when ``log_file`` is given,
- stderr with structlog's console renderer in batch mode,
- nowhere when the Textual UI owns the terminal.

Operator-facing diagnostics (the single fatal line) do not go through here;
they are printed by the CLI with Rich.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

import structlog

LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
    structlog.processors.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.format_exc_info,
]


def configure(level: str = "WARNING", log_file: Path | None = None, console: bool = True) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Write JSON Lines to this file instead of the console.
        console: When no file is given, log to stderr. Disable for the TUI.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level!r}")

    handler: logging.Handler
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    elif console:
        handler = logging.StreamHandler(sys.stderr)
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    else:
        handler = logging.NullHandler()
        renderer = structlog.processors.JSONRenderer()

    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=_SHARED_PROCESSORS,
        )
    )

    root = logging.getLogger("proctop")
    for old in root.handlers:
        old.close()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)
    root.propagate = False

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger bound to a stdlib logger of the same name."""
    return structlog.get_logger(name)
