"""Data models for the fsobserver package."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional
import time


class EventKind(Enum):
    """Kinds of raw and semantic file system events."""
    CREATED = "created"
    CHANGED = "changed"
    DELETED = "deleted"
    RENAMED = "renamed"


@dataclass(frozen=True)
class RawEvent:
    """
    Unvalidated notification from the raw watch source.

    Attributes:
        kind: The raw event kind
        path: Full path of the affected entry
        name: File name of the affected entry
        old_path: For RENAMED events, the previous full path
        old_name: For RENAMED events, the previous file name
        timestamp: Unix timestamp when the event was observed
    """
    kind: EventKind
    path: Path
    name: str = ""
    old_path: Optional[Path] = None
    old_name: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        if not self.name:
            object.__setattr__(self, "name", self.path.name)
        if self.kind == EventKind.RENAMED:
            if self.old_path is None:
                raise ValueError(f"renamed event requires old_path: {self.path}")
            if not self.old_name:
                object.__setattr__(self, "old_name", self.old_path.name)

    @classmethod
    def created(cls, path: Path, timestamp: Optional[float] = None) -> "RawEvent":
        return cls._simple(EventKind.CREATED, path, timestamp)

    @classmethod
    def changed(cls, path: Path, timestamp: Optional[float] = None) -> "RawEvent":
        return cls._simple(EventKind.CHANGED, path, timestamp)

    @classmethod
    def deleted(cls, path: Path, timestamp: Optional[float] = None) -> "RawEvent":
        return cls._simple(EventKind.DELETED, path, timestamp)

    @classmethod
    def renamed(
        cls,
        old_path: Path,
        path: Path,
        timestamp: Optional[float] = None,
    ) -> "RawEvent":
        if timestamp is None:
            timestamp = time.time()
        return cls(
            kind=EventKind.RENAMED,
            path=path,
            old_path=old_path,
            timestamp=timestamp,
        )

    @classmethod
    def _simple(cls, kind: EventKind, path: Path, timestamp: Optional[float]) -> "RawEvent":
        if timestamp is None:
            timestamp = time.time()
        return cls(kind=kind, path=path, timestamp=timestamp)


@dataclass(frozen=True)
class PendingKey:
    """
    Composite key of a buffered raw event.

    Equality covers all five fields, so one path can hold entries for
    several kinds at once (e.g. both DELETED and CREATED).
    """
    path: Path
    old_path: Optional[Path]
    name: str
    old_name: Optional[str]
    kind: EventKind

    @classmethod
    def from_raw(cls, event: RawEvent) -> "PendingKey":
        """Create the buffer key for a raw event."""
        return cls(
            path=event.path,
            old_path=event.old_path,
            name=event.name,
            old_name=event.old_name,
            kind=event.kind,
        )


@dataclass
class PendingValue:
    """Most recent observation of a pending key."""
    kind: EventKind
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class Decision:
    """
    A deduplicated event candidate produced by a drain cycle.

    Attributes:
        key: The pending key the decision was made for
        kind: The decided kind (CHANGED for a delete+create rewrite)
    """
    key: PendingKey
    kind: EventKind

    @property
    def path(self) -> Path:
        return self.key.path


@dataclass(frozen=True)
class ObservedEvent:
    """
    A semantic event that passed validation and was emitted.

    Attributes:
        kind: The emitted event kind
        path: Full path of the affected entry
        name: File name of the affected entry
        old_path: For RENAMED events, the previous full path
        old_name: For RENAMED events, the previous file name
    """
    kind: EventKind
    path: Path
    name: str
    old_path: Optional[Path] = None
    old_name: Optional[str] = None

    @classmethod
    def from_decision(cls, decision: Decision) -> "ObservedEvent":
        key = decision.key
        if decision.kind == EventKind.RENAMED:
            return cls(
                kind=decision.kind,
                path=key.path,
                name=key.name,
                old_path=key.old_path,
                old_name=key.old_name,
            )
        return cls(kind=decision.kind, path=key.path, name=key.name)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "kind": self.kind.value,
            "path": str(self.path),
            "name": self.name,
            "old_path": str(self.old_path) if self.old_path else None,
            "old_name": self.old_name,
        }
