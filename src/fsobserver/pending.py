"""Debounce buffer of pending raw events and the per-path decision rules."""

import logging
import threading
from collections import defaultdict
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from .models import Decision, EventKind, PendingKey, PendingValue

if TYPE_CHECKING:
    from .scheduler import DrainScheduler

logger = logging.getLogger(__name__)


# Single-kind entries are checked in this order.
KIND_PRIORITY = (
    EventKind.CREATED,
    EventKind.CHANGED,
    EventKind.DELETED,
    EventKind.RENAMED,
)


def find_ready_events(
    pending: Dict[PendingKey, PendingValue],
    now: float,
    quiet_period: float,
) -> Tuple[List[Decision], List[PendingKey]]:
    """
    Decide which pending entries fire now.

    Entries are grouped by full path. A path holding both DELETED and
    CREATED is an atomic rewrite: it fires a single CHANGED right away
    and every entry for the path is consumed. Otherwise the first kind
    present in KIND_PRIORITY fires once its quiet period has elapsed.

    Args:
        pending: Snapshot of the pending table
        now: Current timestamp
        quiet_period: Seconds an entry must stay untouched before it fires

    Returns:
        (decisions, consumed) - at most one decision per path, and the
        keys to remove from the table
    """
    by_path: Dict[Path, Dict[EventKind, Tuple[PendingKey, PendingValue]]] = defaultdict(dict)
    for key, value in pending.items():
        entries = by_path[key.path]
        # Several keys of one kind (e.g. renames from different sources)
        # share a path; the most recent one represents the kind.
        current = entries.get(key.kind)
        if current is None or value.timestamp > current[1].timestamp:
            entries[key.kind] = (key, value)

    decisions: List[Decision] = []
    consumed: List[PendingKey] = []

    for path, entries in by_path.items():
        if EventKind.DELETED in entries and EventKind.CREATED in entries:
            key = entries[EventKind.CREATED][0]
            decisions.append(Decision(key=key, kind=EventKind.CHANGED))
            consumed.extend(k for k in pending if k.path == path)
            continue

        for kind in KIND_PRIORITY:
            if kind not in entries:
                continue
            key, value = entries[kind]
            if now - value.timestamp >= quiet_period:
                decisions.append(Decision(key=key, kind=kind))
                consumed.append(key)
            break

    return decisions, consumed


class PendingEventTable:
    """
    Mutex-guarded map from pending key to its latest observation.

    Repeated raw events with an identical key collapse into one entry
    whose timestamp is the latest observation, which is what implements
    the debounce. The table arms its drain scheduler when it stops being
    empty and disarms it when a drain empties it, both under the table
    lock.
    """

    def __init__(
        self,
        quiet_period: float = 0.075,
        scheduler: Optional["DrainScheduler"] = None,
    ):
        """
        Initialize the table.

        Args:
            quiet_period: Seconds an entry must stay untouched before it fires
            scheduler: Scheduler to arm/disarm as the table fills and empties
        """
        self.quiet_period = quiet_period
        self.scheduler = scheduler
        self._pending: Dict[PendingKey, PendingValue] = {}
        self._lock = threading.Lock()

    def ingest(self, key: PendingKey, value: PendingValue) -> bool:
        """
        Insert or refresh a pending entry.

        Args:
            key: The composite event key
            value: The latest observation for the key

        Returns:
            True if the table went from empty to non-empty
        """
        with self._lock:
            was_empty = not self._pending
            self._pending[key] = value
            if was_empty and self.scheduler is not None:
                self.scheduler.arm()
            return was_empty

    def drain_ready(self, now: float) -> Tuple[List[Decision], bool]:
        """
        Remove and return the decisions that are ready to fire.

        Args:
            now: Current timestamp

        Returns:
            (decisions, is_empty) - ready decisions, and whether the table
            is empty afterwards
        """
        with self._lock:
            decisions, consumed = find_ready_events(self._pending, now, self.quiet_period)

            for key in consumed:
                self._pending.pop(key, None)

            is_empty = not self._pending
            if is_empty and self.scheduler is not None:
                self.scheduler.disarm()

        if decisions:
            logger.debug(f"Drained {len(decisions)} decision(s), {len(self)} still pending")
        return decisions, is_empty

    def rearm(self) -> None:
        """Arm the scheduler if entries are still pending (e.g. after a restart)."""
        with self._lock:
            if self._pending and self.scheduler is not None:
                self.scheduler.arm()

    def __len__(self) -> int:
        """Return the number of pending entries."""
        with self._lock:
            return len(self._pending)
