"""Configuration system for proctop."""

from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit

MIN_INTERVAL = 1.0
VALID_PROVIDERS = ("psutil", "procfs")
VALID_SORT_KEYS = ("cpu", "pid")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class MonitorConfig:
    """Sampling loop configuration."""

    iterations: int | None = None  # None (or negative) runs until cancelled
    interval: float = 2.0  # Seconds between samples, minimum 1
    sort_key: str = "cpu"
    batch: bool = False  # No key polling, no help pause
    poll_increment: float = 0.05  # Seconds between cancel checks while waiting
    max_rows: int = 40  # Rows printed per frame in console mode
    provider: str = "psutil"
    procfs_root: str = "/proc"

    def __post_init__(self) -> None:
        self.interval = max(MIN_INTERVAL, float(self.interval))
        if self.iterations is not None and self.iterations < 0:
            self.iterations = None
        if self.sort_key not in VALID_SORT_KEYS:
            raise ValueError(f"Invalid sort_key: {self.sort_key!r}. Must be one of {VALID_SORT_KEYS}")
        if not 0 < self.poll_increment <= MIN_INTERVAL:
            raise ValueError(f"poll_increment must be in (0, 1], got {self.poll_increment}")
        if self.max_rows < 1:
            raise ValueError(f"max_rows must be >= 1, got {self.max_rows}")
        if self.provider not in VALID_PROVIDERS:
            raise ValueError(f"Invalid provider: {self.provider!r}. Must be one of {VALID_PROVIDERS}")


@dataclass
class LoggingConfig:
    """Diagnostic logging configuration."""

    level: str = "WARNING"
    file: str | None = None  # JSON Lines log file, rotated at 5MB

    def __post_init__(self) -> None:
        self.level = self.level.upper()
        if self.level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.level!r}. Must be one of {VALID_LOG_LEVELS}")

    @property
    def path(self) -> Path | None:
        """Log file as a Path, with ~ expanded."""
        return Path(self.file).expanduser() if self.file else None


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table, skipping unset values."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if value is None:
            continue  # TOML has no null
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


def default_config_path() -> Path:
    """Path to the user's config file."""
    return Path.home() / ".config" / "proctop" / "config.toml"


@dataclass
class Config:
    """Main configuration container."""

    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or default_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        for name in ("monitor", "logging"):
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        Raises:
            ValueError: If the file cannot be parsed or holds invalid values.
        """
        path = path or default_config_path()
        if not path.exists():
            return cls()

        try:
            with open(path) as f:
                data = tomlkit.load(f).unwrap()
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        return cls(
            monitor=_load_section(MonitorConfig, data.get("monitor", {})),
            logging=_load_section(LoggingConfig, data.get("logging", {})),
        )


def _load_section(section_cls, data: object):
    """Build a section dataclass, using its defaults for missing keys.

    Raises:
        ValueError: For a section that is not a table, unknown keys, or
            values of the wrong type.
    """
    if not isinstance(data, dict):
        raise ValueError(f"{section_cls.__name__} section must be a table, got {type(data).__name__}")
    known = {f.name for f in fields(section_cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown {section_cls.__name__} keys: {sorted(unknown)}")
    try:
        return section_cls(**data)
    except (TypeError, AttributeError) as e:
        raise ValueError(f"Invalid {section_cls.__name__} value: {e}") from e
