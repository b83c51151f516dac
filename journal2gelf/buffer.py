"""Coalescing buffer: single-slot handoff between ingest and delivery."""

import logging
import threading
import time

from journal2gelf.metrics import Metrics
from journal2gelf.models import LogEntry

logger = logging.getLogger(__name__)

DEFAULT_WRITE_INTERVAL = 0.05
DEFAULT_QUIESCENCE = 0.1


class PendingSlot:
    """Holds at most one entry awaiting delivery.

    Every operation swaps the occupant under the lock and hands the
    removed entry back to the caller, which delivers it after the lock
    is released.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entry: LogEntry | None = None

    def try_place(self, entry: LogEntry) -> bool:
        """Place ``entry`` only if the slot is empty."""
        with self._lock:
            if self._entry is not None:
                return False
            self._entry = entry
            return True

    def evict_and_replace(self, entry: LogEntry) -> LogEntry | None:
        """Place ``entry`` and return the previous occupant, if any."""
        with self._lock:
            evicted = self._entry
            self._entry = entry
            return evicted

    def drain_if_stale(self, now_us: int, threshold_us: int) -> LogEntry | None:
        """Remove the occupant if its timestamp is older than the threshold."""
        with self._lock:
            if self._entry is None:
                return None
            if now_us - self._entry.realtime_timestamp <= threshold_us:
                return None
            entry = self._entry
            self._entry = None
            return entry

    def drain(self) -> LogEntry | None:
        """Remove and return the occupant unconditionally."""
        with self._lock:
            entry = self._entry
            self._entry = None
            return entry

    @property
    def occupied(self) -> bool:
        with self._lock:
            return self._entry is not None


class CoalescingBuffer:
    """Decouples the ingest path from blocking delivery.

    A new entry evicts the pending one, which the producer delivers
    synchronously. An entry nobody evicts is flushed by a timer thread
    once its timestamp is older than ``quiescence`` seconds.
    """

    def __init__(
        self,
        on_deliver,
        write_interval: float = DEFAULT_WRITE_INTERVAL,
        quiescence: float = DEFAULT_QUIESCENCE,
        shutdown_event: threading.Event | None = None,
        metrics: Metrics | None = None,
        clock=time.time,
    ):
        self._on_deliver = on_deliver
        self._write_interval = write_interval
        self._threshold_us = int(quiescence * 1000 * 1000)
        self._shutdown = shutdown_event or threading.Event()
        self._metrics = metrics or Metrics()
        self._clock = clock
        self._slot = PendingSlot()

        self._timer_thread = threading.Thread(target=self._flush_timer, daemon=True)
        self._timer_thread.start()

    def add(self, entry: LogEntry):
        """Make ``entry`` the pending one, delivering whatever it displaced."""
        evicted = self._slot.evict_and_replace(entry)
        if evicted is not None:
            self._metrics.record_eviction()
            self._safe_deliver(evicted)

    def stop(self):
        """Stop the timer thread and flush the pending entry, if any."""
        self._shutdown.set()
        self._timer_thread.join()

        entry = self._slot.drain()
        if entry is not None:
            self._safe_deliver(entry)
        logger.debug("Coalescing buffer stopped")

    @property
    def pending(self) -> bool:
        return self._slot.occupied

    def _flush_timer(self):
        """Deliver the pending entry once it has gone quiet."""
        while not self._shutdown.is_set():
            self._shutdown.wait(timeout=self._write_interval)

            now_us = int(self._clock() * 1000 * 1000)
            entry = self._slot.drain_if_stale(now_us, self._threshold_us)
            if entry is not None:
                self._metrics.record_idle_flush()
                self._safe_deliver(entry)

    def _safe_deliver(self, entry: LogEntry):
        try:
            self._on_deliver(entry)
        except Exception:
            logger.exception("Delivery callback failed for entry %s", entry.cursor)
