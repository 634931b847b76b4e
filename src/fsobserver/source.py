"""Raw notification sources feeding the coalescing engine."""

import logging
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional, Set

from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler

from .exceptions import SourceStartError
from .models import EventKind, RawEvent
from .snapshot import enumerate_tree

logger = logging.getLogger(__name__)


RawEventCallback = Callable[[RawEvent], None]


class RawEventSource(ABC):
    """
    Abstract raw watch source.

    A source delivers unvalidated RawEvents for one root, possibly from
    several threads at once, and can enumerate the whole tree on demand.
    """

    def __init__(self, root: Path, recursive: bool = True):
        self.root = root
        self.recursive = recursive

    @abstractmethod
    def start(self, callback: RawEventCallback) -> None:
        """
        Begin delivering raw events to callback.

        Raises:
            SourceStartError: If the subscription cannot be established
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop delivering events. Safe to call if never started."""
        pass

    def enumerate(self) -> Set[Path]:
        """
        Enumerate all existing entries under the root.

        Raises:
            EnumerationError: If the root cannot be listed
        """
        return enumerate_tree(self.root, self.recursive)


class RawEventHandler(FileSystemEventHandler):
    """Handler that converts watchdog events to RawEvent."""

    def __init__(self, callback: RawEventCallback):
        super().__init__()
        self.callback = callback

    def _emit(self, kind: EventKind, src_path: str, dest_path: Optional[str] = None):
        """Emit a RawEvent to the callback."""
        now = time.time()
        if kind == EventKind.RENAMED:
            raw_event = RawEvent.renamed(Path(src_path), Path(dest_path), timestamp=now)
        else:
            raw_event = RawEvent(kind=kind, path=Path(src_path), timestamp=now)
        self.callback(raw_event)

    def on_created(self, event):
        self._emit(EventKind.CREATED, event.src_path)

    def on_deleted(self, event):
        self._emit(EventKind.DELETED, event.src_path)

    def on_modified(self, event):
        # Directory mtime changes accompany every child change.
        if event.is_directory:
            return
        self._emit(EventKind.CHANGED, event.src_path)

    def on_moved(self, event):
        self._emit(EventKind.RENAMED, event.src_path, event.dest_path)


class WatchdogEventSource(RawEventSource):
    """Raw event source backed by a watchdog observer."""

    def __init__(self, root: Path, recursive: bool = True, join_timeout: float = 5.0):
        """
        Initialize the source.

        Args:
            root: Root folder to watch
            recursive: Whether to watch subdirectories
            join_timeout: Seconds to wait for the observer thread on stop
        """
        super().__init__(root, recursive)
        self.join_timeout = join_timeout
        self._observer: Optional[Observer] = None
        self._lock = threading.Lock()

    def start(self, callback: RawEventCallback) -> None:
        with self._lock:
            if self._observer is not None:
                return

            if not self.root.is_dir():
                raise SourceStartError(f"Root folder is not a directory: {self.root}")

            observer = Observer()
            handler = RawEventHandler(callback)
            try:
                observer.schedule(handler, str(self.root), recursive=self.recursive)
                observer.start()
            except OSError as e:
                raise SourceStartError(f"Failed to watch {self.root}: {e}") from e

            self._observer = observer
            logger.info(f"Watching {self.root} (recursive={self.recursive})")

    def stop(self) -> None:
        with self._lock:
            observer = self._observer
            self._observer = None

        if observer is None:
            return

        observer.stop()
        observer.join(timeout=self.join_timeout)
        logger.info(f"Stopped watching {self.root}")

    @property
    def is_watching(self) -> bool:
        with self._lock:
            return self._observer is not None
