"""
File System Observer Package

Coalesces the noisy raw notifications of a recursive directory watcher
into a small, reliable stream of semantic events per path.

Features:
- Semantic events: CREATED, CHANGED, DELETED, RENAMED
- Debouncing with a per-key quiet period
- DELETE+CREATE on one path merged into a single CHANGED (atomic saves)
- Validation against a snapshot reconciled by full-tree enumeration
- Noise filtering of hidden, temporary, backup and lock files
- Drain timer that only runs while events are pending
"""

from .models import (
    EventKind,
    RawEvent,
    PendingKey,
    PendingValue,
    Decision,
    ObservedEvent,
)

from .config import NoiseConfig, ObserverConfig

from .exceptions import (
    ObserverError,
    RawSourceError,
    SourceStartError,
    EnumerationError,
    RootNotFoundError,
    ObserverAlreadyRunningError,
)

from .noise import NoiseFilter
from .snapshot import PathSnapshot, enumerate_tree
from .pending import PendingEventTable, find_ready_events
from .scheduler import DrainScheduler, SchedulerState
from .source import RawEventSource, RawEventHandler, WatchdogEventSource
from .engine import CoalescingEngine


__all__ = [
    # Models
    "EventKind",
    "RawEvent",
    "PendingKey",
    "PendingValue",
    "Decision",
    "ObservedEvent",
    # Config
    "NoiseConfig",
    "ObserverConfig",
    # Exceptions
    "ObserverError",
    "RawSourceError",
    "SourceStartError",
    "EnumerationError",
    "RootNotFoundError",
    "ObserverAlreadyRunningError",
    # Components
    "NoiseFilter",
    "PathSnapshot",
    "enumerate_tree",
    "PendingEventTable",
    "find_ready_events",
    "DrainScheduler",
    "SchedulerState",
    "RawEventSource",
    "RawEventHandler",
    "WatchdogEventSource",
    # Engine
    "CoalescingEngine",
]

__version__ = "0.1.0"
