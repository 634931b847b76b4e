"""Coalescing engine turning raw notifications into semantic file events."""

import logging
import os
import threading
import time
from pathlib import Path
from typing import Callable, Dict, FrozenSet, List, Optional, Set

from .config import ObserverConfig
from .exceptions import ObserverAlreadyRunningError, RootNotFoundError
from .models import (
    Decision,
    EventKind,
    ObservedEvent,
    PendingKey,
    PendingValue,
    RawEvent,
)
from .noise import NoiseFilter
from .pending import PendingEventTable
from .scheduler import DrainScheduler
from .snapshot import PathSnapshot
from .source import RawEventSource, WatchdogEventSource

logger = logging.getLogger(__name__)


PathHandler = Callable[[Path], None]
RenameHandler = Callable[[Path, str, Path, str], None]
ErrorHandler = Callable[[Exception], None]


class CoalescingEngine:
    """
    Debounces, deduplicates and validates raw file system notifications.

    Raw events are buffered in a pending table. While the table is not
    empty a drain scheduler periodically runs a decision cycle: ready
    entries are merged per path, cross-checked against a fresh
    enumeration of the tree, filtered for noise and emitted to the
    subscribers of the matching channel.

    Handlers are invoked synchronously on the drain thread, in
    registration order. A failing handler is logged and does not affect
    the engine.
    """

    def __init__(
        self,
        config: Optional[ObserverConfig] = None,
        source: Optional[RawEventSource] = None,
        noise_filter: Optional[NoiseFilter] = None,
    ):
        """
        Initialize the engine and take the initial snapshot.

        Args:
            config: Observer configuration
            source: Raw event source (defaults to a watchdog source on config.root)
            noise_filter: Noise filter (defaults to one built from config.noise)

        Raises:
            RootNotFoundError: If the root folder does not exist
            RawSourceError: If the initial enumeration fails
        """
        self.config = config or ObserverConfig()
        self.root = self.config.root.resolve()

        if not self.root.is_dir():
            raise RootNotFoundError(f"Root folder does not exist: {self.root}")

        self.source = source or WatchdogEventSource(self.root, self.config.recursive)
        self.noise_filter = noise_filter or NoiseFilter(self.config.noise)

        self._scheduler = DrainScheduler(
            self._on_tick,
            self.config.tick_interval,
            on_error=self._report_error,
        )
        self._table = PendingEventTable(self.config.quiet_period, self._scheduler)
        self._snapshot = PathSnapshot(self.source.enumerate())

        self._handlers: Dict[EventKind, List[Callable]] = {kind: [] for kind in EventKind}
        self._error_handlers: List[ErrorHandler] = []
        self._handlers_lock = threading.Lock()

        self._running = False
        self._lock = threading.Lock()
        self.last_error: Optional[Exception] = None

    # Subscriptions

    def on_changed(self, handler: PathHandler) -> PathHandler:
        """Subscribe handler(path) to CHANGED events."""
        return self._subscribe(EventKind.CHANGED, handler)

    def on_created(self, handler: PathHandler) -> PathHandler:
        """Subscribe handler(path) to CREATED events."""
        return self._subscribe(EventKind.CREATED, handler)

    def on_deleted(self, handler: PathHandler) -> PathHandler:
        """Subscribe handler(path) to DELETED events."""
        return self._subscribe(EventKind.DELETED, handler)

    def on_renamed(self, handler: RenameHandler) -> RenameHandler:
        """Subscribe handler(old_path, old_name, path, name) to RENAMED events."""
        return self._subscribe(EventKind.RENAMED, handler)

    def on_error(self, handler: ErrorHandler) -> ErrorHandler:
        """Subscribe handler(exc) to raw source failures during drain cycles."""
        with self._handlers_lock:
            self._error_handlers.append(handler)
        return handler

    def unsubscribe(self, handler: Callable) -> bool:
        """
        Remove a handler from every channel it is subscribed to.

        Returns:
            True if the handler was subscribed anywhere
        """
        found = False
        with self._handlers_lock:
            for handlers in list(self._handlers.values()) + [self._error_handlers]:
                while handler in handlers:
                    handlers.remove(handler)
                    found = True
        return found

    def _subscribe(self, kind: EventKind, handler: Callable) -> Callable:
        with self._handlers_lock:
            self._handlers[kind].append(handler)
        return handler

    # Lifecycle

    def start(self) -> None:
        """
        Start accepting raw events and arm reconciliation.

        Raises:
            ObserverAlreadyRunningError: If already running
            RawSourceError: If the raw source cannot be subscribed
        """
        with self._lock:
            if self._running:
                raise ObserverAlreadyRunningError("Observer is already running")
            self._running = True

        self._scheduler.start()
        self._table.rearm()

        try:
            self.source.start(self.ingest)
        except Exception:
            self._scheduler.stop()
            with self._lock:
                self._running = False
            raise

        logger.info(f"Observer started for {self.root}")

    def stop(self) -> None:
        """
        Unsubscribe from the raw source and disarm the drain timer.

        An in-flight drain cycle completes first. Safe to call if the
        engine was never started.
        """
        with self._lock:
            if not self._running:
                return
            self._running = False

        self.source.stop()
        self._scheduler.stop()
        logger.info(f"Observer stopped for {self.root}")

    @property
    def is_running(self) -> bool:
        """Check if the observer is running."""
        return self._running

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False

    # Ingest

    def ingest(self, raw_event: RawEvent) -> bool:
        """
        Buffer a raw event.

        Called by the raw source, possibly from several threads at once.

        Args:
            raw_event: The raw notification

        Returns:
            True if the event was buffered, False if it was dropped
        """
        logger.debug(f"Raw {raw_event.kind.value}: {raw_event.path}")

        if self.config.prefilter_raw_events and not self._accepts(raw_event):
            logger.debug(f"Dropped raw {raw_event.kind.value} for {raw_event.path}")
            return False

        key = PendingKey.from_raw(raw_event)
        value = PendingValue(kind=raw_event.kind, timestamp=raw_event.timestamp)
        self._table.ingest(key, value)
        return True

    def _accepts(self, raw_event: RawEvent) -> bool:
        """Reject raw events that cannot describe a real change."""
        path = raw_event.path
        if raw_event.kind == EventKind.CHANGED:
            return os.path.exists(path) and path in self._snapshot
        if raw_event.kind == EventKind.DELETED:
            return path in self._snapshot
        if raw_event.kind == EventKind.CREATED:
            return os.path.exists(path)
        return True

    # Drain cycle

    def _on_tick(self) -> None:
        self.drain()

    def drain(self, now: Optional[float] = None) -> List[ObservedEvent]:
        """
        Run one decision cycle.

        Ready decisions are taken from the pending table, the tree is
        re-enumerated, each decision is validated and emitted, and the
        snapshot is replaced by the enumeration. A decision whose change
        was absorbed by an earlier cycle fails its cross-check and is
        dropped.

        Args:
            now: Current timestamp (defaults to time.time())

        Returns:
            List of events emitted in this cycle

        Raises:
            RawSourceError: If the tree cannot be enumerated
        """
        if now is None:
            now = time.time()

        decisions, _ = self._table.drain_ready(now)

        current = self.source.enumerate()
        added, removed = self._snapshot.diff(current)

        emitted = []
        for decision in decisions:
            event = self._validate(decision, added, removed)
            if event is not None:
                self._dispatch(event)
                emitted.append(event)

        self._snapshot.reconcile(current)
        return emitted

    def _validate(
        self,
        decision: Decision,
        added: Set[Path],
        removed: Set[Path],
    ) -> Optional[ObservedEvent]:
        """
        Validate a decision and apply its snapshot side effect.

        Each added/removed path confirms at most one decision per cycle.

        Returns:
            The event to emit, or None if the decision is suppressed
        """
        key = decision.key
        path = key.path

        if decision.kind == EventKind.CHANGED:
            if not os.path.exists(path):
                return self._suppress(decision, "path no longer exists")
            if not self.noise_filter.should_fire(path):
                return self._suppress(decision, "noise")

        elif decision.kind == EventKind.DELETED:
            if path not in removed:
                return self._suppress(decision, "not removed since last reconciliation")
            removed.discard(path)
            if os.path.exists(path):
                return self._suppress(decision, "path still exists")
            if not self.noise_filter.should_fire(path):
                return self._suppress(decision, "noise")
            self._snapshot.discard(path)

        elif decision.kind == EventKind.CREATED:
            if path not in added:
                return self._suppress(decision, "not added since last reconciliation")
            added.discard(path)
            if not os.path.exists(path):
                return self._suppress(decision, "path no longer exists")
            if path in self._snapshot:
                return self._suppress(decision, "path already known")
            if not self.noise_filter.should_fire(path):
                return self._suppress(decision, "noise")
            self._snapshot.add(path)

        elif decision.kind == EventKind.RENAMED:
            if key.old_path not in removed:
                return self._suppress(decision, "source not removed since last reconciliation")
            removed.discard(key.old_path)
            if path in self._snapshot:
                return self._suppress(decision, "destination already known")
            if not self.noise_filter.should_fire(path, key.old_path):
                return self._suppress(decision, "noise")
            self._snapshot.rename(key.old_path, path)

        return ObservedEvent.from_decision(decision)

    def _suppress(self, decision: Decision, reason: str) -> None:
        logger.debug(f"Suppressed {decision.kind.value} for {decision.path}: {reason}")
        return None

    def _dispatch(self, event: ObservedEvent) -> None:
        """Invoke the handlers subscribed to the event's channel."""
        with self._handlers_lock:
            handlers = list(self._handlers[event.kind])

        logger.debug(f"Emitting {event.kind.value}: {event.path}")

        for handler in handlers:
            try:
                if event.kind == EventKind.RENAMED:
                    handler(event.old_path, event.old_name, event.path, event.name)
                else:
                    handler(event.path)
            except Exception:
                logger.exception(f"Handler for {event.kind.value} event on {event.path} failed")

    def _report_error(self, error: Exception) -> None:
        """Deliver a drain cycle failure to the engine owner."""
        self.last_error = error

        with self._handlers_lock:
            handlers = list(self._error_handlers)

        for handler in handlers:
            try:
                handler(error)
            except Exception:
                logger.exception("Error handler failed")

    # Introspection

    def pending_count(self) -> int:
        """Get the number of pending raw event entries."""
        return len(self._table)

    @property
    def snapshot(self) -> FrozenSet[Path]:
        """The paths known as of the last reconciliation."""
        return self._snapshot.paths()

    @property
    def scheduler(self) -> DrainScheduler:
        return self._scheduler
