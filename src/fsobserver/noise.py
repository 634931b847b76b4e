"""Noise filtering for transient, temporary, backup and lock files."""

import logging
import os
import re
import stat
from pathlib import Path
from typing import Optional

from .config import NoiseConfig

logger = logging.getLogger(__name__)


class NoiseFilter:
    """
    Decides whether a path is noise that must never produce an event.

    Stateless apart from the compiled rule set; safe to share between
    threads.
    """

    def __init__(self, config: Optional[NoiseConfig] = None):
        """
        Initialize the noise filter.

        Args:
            config: Noise rule set (defaults to NoiseConfig())
        """
        self.config = config or NoiseConfig()
        self._transient_extensions = {e.lower() for e in self.config.transient_extensions}
        self._backup_extensions = {e.lower() for e in self.config.backup_extensions}
        self._companion_extensions = {e.lower() for e in self.config.companion_extensions}
        self._backup_pattern = re.compile(self.config.backup_pattern)

    def is_hidden(self, path: Path) -> bool:
        """
        Check whether a path is hidden.

        Dot-prefixed names are hidden everywhere. For existing files the
        platform hidden attribute is also consulted; if it cannot be read
        the file is reported as hidden.
        """
        if path.name.startswith("."):
            return True

        try:
            st = os.stat(path)
        except (FileNotFoundError, NotADirectoryError):
            return False
        except OSError as e:
            logger.debug(f"Attribute lookup failed for {path}: {e}")
            return True

        if not stat.S_ISREG(st.st_mode):
            return False

        attributes = getattr(st, "st_file_attributes", 0)
        if attributes & getattr(stat, "FILE_ATTRIBUTE_HIDDEN", 0):
            return True

        flags = getattr(st, "st_flags", 0)
        if flags & getattr(stat, "UF_HIDDEN", 0):
            return True

        return False

    def is_transient(self, path: Path) -> bool:
        """Check for generic temp files and editor save markers."""
        name = path.name
        if path.suffix.lower() in self._transient_extensions:
            return True
        for marker in self.config.transient_markers:
            if name.startswith(marker) or name.endswith(marker):
                return True
        return False

    def is_backup(self, path: Path) -> bool:
        """Check for numbered autosave/backup copies of application documents."""
        if path.suffix.lower() not in self._backup_extensions:
            return False
        return self._backup_pattern.search(path.name) is not None

    def is_companion(self, path: Path) -> bool:
        """Check for lock/companion files that accompany a document."""
        return path.suffix.lower() in self._companion_extensions

    def is_noise(self, path: Optional[Path]) -> bool:
        """
        Check if a path is noise.

        Args:
            path: Path to check; None is never noise

        Returns:
            True if the path must not produce an event
        """
        if path is None or not path.name:
            return False

        if self.config.check_hidden and self.is_hidden(path):
            return True

        return (
            self.is_transient(path)
            or self.is_backup(path)
            or self.is_companion(path)
        )

    def should_fire(self, path: Path, other: Optional[Path] = None) -> bool:
        """
        Check if an event touching one or two paths may be emitted.

        Args:
            path: The primary path
            other: The second path of a two-path event (rename source)

        Returns:
            True if neither path is noise
        """
        return not self.is_noise(path) and not self.is_noise(other)
