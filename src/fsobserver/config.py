"""Configuration for the fsobserver package."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List


DEFAULT_BACKUP_PATTERN = r"((?:[a-z][a-z0-9_]*))\.\d{0,9}\.r(.)(.)"


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class NoiseConfig:
    """
    Rule set deciding which paths are noise and never emitted.

    Attributes:
        check_hidden: Treat hidden files (and unreadable attributes) as noise
        transient_extensions: Extensions of generic temporary files
        transient_markers: Name prefixes/suffixes left by editors mid-save
        backup_extensions: Extensions of documents with numbered backups
        backup_pattern: Regex searched in names of backup_extensions files
        companion_extensions: Lock/companion files that accompany a document
    """
    check_hidden: bool = True
    transient_extensions: List[str] = field(default_factory=lambda: [".tmp"])
    transient_markers: List[str] = field(default_factory=lambda: ["~"])
    backup_extensions: List[str] = field(default_factory=lambda: [".rvt", ".rfa"])
    backup_pattern: str = DEFAULT_BACKUP_PATTERN
    companion_extensions: List[str] = field(default_factory=lambda: [".laccdb"])


@dataclass
class ObserverConfig:
    """
    Configuration options for the coalescing observer.

    Attributes:
        root: Root folder to observe
        recursive: Whether to watch and enumerate subdirectories
        quiet_period_ms: Time since the last raw event before a key may fire
        tick_interval_ms: Interval between drain cycles while events are pending
        prefilter_raw_events: Drop raw events that cannot be real on arrival
        noise: Noise filter rule set
    """
    root: Path = field(default_factory=lambda: Path("."))
    recursive: bool = True
    quiet_period_ms: int = 75
    tick_interval_ms: int = 100
    prefilter_raw_events: bool = True
    noise: NoiseConfig = field(default_factory=NoiseConfig)

    def __post_init__(self):
        if isinstance(self.root, str):
            self.root = Path(self.root)
        if self.quiet_period_ms < 0:
            raise ValueError(f"quiet_period_ms must be >= 0: {self.quiet_period_ms}")
        if self.tick_interval_ms <= 0:
            raise ValueError(f"tick_interval_ms must be > 0: {self.tick_interval_ms}")

    @property
    def quiet_period(self) -> float:
        """Quiet period in seconds."""
        return self.quiet_period_ms / 1000.0

    @property
    def tick_interval(self) -> float:
        """Tick interval in seconds."""
        return self.tick_interval_ms / 1000.0

    @classmethod
    def from_env(cls) -> "ObserverConfig":
        """Create config from FSOBSERVER_* environment variables."""
        return cls(
            root=Path(os.environ.get("FSOBSERVER_ROOT", ".")),
            recursive=_env_bool("FSOBSERVER_RECURSIVE", True),
            quiet_period_ms=int(os.environ.get("FSOBSERVER_QUIET_PERIOD_MS", "75")),
            tick_interval_ms=int(os.environ.get("FSOBSERVER_TICK_INTERVAL_MS", "100")),
            noise=NoiseConfig(
                check_hidden=_env_bool("FSOBSERVER_CHECK_HIDDEN", True),
            ),
        )
