"""Repeating drain timer that runs only while events are pending."""

import logging
import threading
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    """States of the drain scheduler."""
    IDLE = "idle"
    ARMED = "armed"
    STOPPED = "stopped"


class DrainScheduler:
    """
    A single repeating timer driving drain cycles.

    While IDLE the worker thread sleeps without ticking. arm() switches
    to ARMED and the worker calls the tick callback every interval until
    disarm() is called. arm() and disarm() never block, so they can be
    called while holding the pending table lock; the first tick after
    arming happens one full interval later.
    """

    def __init__(
        self,
        tick: Callable[[], None],
        interval: float = 0.1,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            tick: Callback run on every tick while armed
            interval: Seconds between ticks
            on_error: Callback for exceptions raised by tick
        """
        self.tick = tick
        self.interval = interval
        self.on_error = on_error
        self._state = SchedulerState.IDLE
        self._armed = threading.Event()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_armed(self) -> bool:
        return self._state == SchedulerState.ARMED

    def start(self) -> None:
        """
        Start the worker thread in the IDLE state.

        A worker left over from a stop() that timed out is joined first,
        so at most one tick runs at a time.
        """
        with self._lock:
            previous = self._thread
            if previous is not None and previous.is_alive():
                if not self._stop_event.is_set():
                    return
                if previous is threading.current_thread():
                    # Restarted from inside a tick; the worker keeps looping.
                    self._resume()
                    return

        if previous is not None:
            previous.join()

        with self._lock:
            if self._thread is not previous:
                return
            self._resume()
            self._thread = threading.Thread(target=self._run, name="DrainScheduler")
            self._thread.daemon = True
            self._thread.start()

    def _resume(self) -> None:
        self._stop_event.clear()
        if self._state == SchedulerState.STOPPED:
            self._state = SchedulerState.IDLE
        if self._state == SchedulerState.ARMED:
            self._armed.set()

    def arm(self) -> None:
        """Begin ticking. No-op once stopped."""
        if self._state == SchedulerState.STOPPED:
            return
        if self._state != SchedulerState.ARMED:
            logger.debug("Drain scheduler armed")
        self._state = SchedulerState.ARMED
        self._armed.set()

    def disarm(self) -> None:
        """Stop ticking until armed again."""
        if self._state == SchedulerState.ARMED:
            logger.debug("Drain scheduler idle")
            self._state = SchedulerState.IDLE
        self._armed.clear()

    def stop(self, timeout: float = 5.0) -> None:
        """
        Stop the worker thread.

        An in-flight tick is allowed to complete. Safe to call if the
        scheduler was never started.

        Args:
            timeout: Seconds to wait for the worker thread to finish
        """
        with self._lock:
            self._state = SchedulerState.STOPPED
            self._stop_event.set()
            self._armed.set()
            thread = self._thread

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(f"Drain scheduler did not stop within {timeout}s")

        with self._lock:
            # Keep a worker that is still finishing so start() can join it.
            if self._thread is thread and (thread is None or not thread.is_alive()):
                self._thread = None
        self._armed.clear()

    def _run(self) -> None:
        """Worker loop: wait while idle, tick every interval while armed."""
        logger.debug(f"Drain scheduler started, interval={self.interval}s")

        while not self._stop_event.is_set():
            self._armed.wait()
            if self._stop_event.wait(timeout=self.interval):
                break
            if not self._armed.is_set():
                continue

            try:
                self.tick()
            except Exception as e:
                logger.error(f"Drain tick error: {e}")
                if self.on_error is not None:
                    self.on_error(e)

        logger.debug("Drain scheduler stopped")
