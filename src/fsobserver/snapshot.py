"""Snapshot of known paths under the observed root."""

import os
import threading
from pathlib import Path
from typing import FrozenSet, Iterable, Set, Tuple

from .exceptions import EnumerationError


def enumerate_tree(root: Path, recursive: bool = True) -> Set[Path]:
    """
    Enumerate all file system entries under a root.

    Args:
        root: Root folder to enumerate (not included in the result)
        recursive: Whether to descend into subdirectories

    Returns:
        Set of absolute paths of files and directories

    Raises:
        EnumerationError: If the root cannot be listed
    """
    if not root.is_dir():
        raise EnumerationError(f"Root folder is not a directory: {root}")

    paths: Set[Path] = set()

    if not recursive:
        try:
            with os.scandir(root) as entries:
                for entry in entries:
                    paths.add(root / entry.name)
        except OSError as e:
            raise EnumerationError(f"Failed to enumerate {root}: {e}") from e
        return paths

    def _on_error(error: OSError) -> None:
        # Subfolders vanishing mid-walk are expected; the root itself is not.
        if Path(error.filename) == root:
            raise EnumerationError(f"Failed to enumerate {root}: {error}") from error

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        base = Path(dirpath)
        for name in dirnames:
            paths.add(base / name)
        for name in filenames:
            paths.add(base / name)

    return paths


class PathSnapshot:
    """
    Set of all known paths under the observed root.

    Only the drain cycle mutates the snapshot; raw-event pre-filtering
    reads it from source threads, so access is guarded by a lock.
    """

    def __init__(self, paths: Iterable[Path] = ()):
        """
        Initialize the snapshot.

        Args:
            paths: Initially known paths
        """
        self._paths: Set[Path] = set(paths)
        self._lock = threading.RLock()

    def add(self, path: Path) -> None:
        with self._lock:
            self._paths.add(path)

    def discard(self, path: Path) -> None:
        with self._lock:
            self._paths.discard(path)

    def rename(self, old_path: Path, new_path: Path) -> None:
        """Replace old_path with new_path."""
        with self._lock:
            self._paths.discard(old_path)
            self._paths.add(new_path)

    def reconcile(self, current: Iterable[Path]) -> None:
        """
        Replace the snapshot with a fresh enumeration.

        Args:
            current: Paths currently on disk
        """
        new_paths = set(current)
        with self._lock:
            self._paths = new_paths

    def diff(self, current: Set[Path]) -> Tuple[Set[Path], Set[Path]]:
        """
        Compare a fresh enumeration against the snapshot.

        Args:
            current: Paths currently on disk

        Returns:
            (added, removed) - paths new since the snapshot, and paths
            in the snapshot that are gone
        """
        with self._lock:
            return current - self._paths, self._paths - current

    def paths(self) -> FrozenSet[Path]:
        """
        Get the currently known paths.

        Returns:
            Frozen set of paths
        """
        with self._lock:
            return frozenset(self._paths)

    def __contains__(self, path: Path) -> bool:
        with self._lock:
            return path in self._paths

    def __len__(self) -> int:
        with self._lock:
            return len(self._paths)
