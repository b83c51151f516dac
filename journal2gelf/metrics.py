"""Thread-safe pipeline counters and periodic reporting."""

import logging
import threading
import time

logger = logging.getLogger(__name__)


class Metrics:
    """Counters shared by the ingest path and the idle-flush thread."""

    def __init__(self):
        self._lock = threading.Lock()
        self._lines_read = 0
        self._parse_errors = 0
        self._rule_hits = 0
        self._delivered = 0
        self._send_failures = 0
        self._evictions = 0
        self._idle_flushes = 0
        self._dropped = 0
        self._start_time = time.monotonic()

    def record_line(self, parsed: bool):
        with self._lock:
            self._lines_read += 1
            if not parsed:
                self._parse_errors += 1

    def record_rule_hit(self):
        with self._lock:
            self._rule_hits += 1

    def record_delivered(self):
        with self._lock:
            self._delivered += 1

    def record_send_failure(self):
        with self._lock:
            self._send_failures += 1

    def record_eviction(self):
        with self._lock:
            self._evictions += 1

    def record_idle_flush(self):
        with self._lock:
            self._idle_flushes += 1

    def record_dropped(self):
        with self._lock:
            self._dropped += 1

    def snapshot(self) -> dict:
        """Return a point-in-time copy of all counters."""
        with self._lock:
            elapsed = time.monotonic() - self._start_time
            return {
                "lines_read": self._lines_read,
                "parse_errors": self._parse_errors,
                "rule_hits": self._rule_hits,
                "delivered": self._delivered,
                "send_failures": self._send_failures,
                "evictions": self._evictions,
                "idle_flushes": self._idle_flushes,
                "dropped": self._dropped,
                "elapsed_seconds": round(elapsed, 1),
                "delivered_per_sec": round(self._delivered / elapsed, 1) if elapsed > 0 else 0.0,
            }


class MetricsReporter:
    """Background thread that periodically logs a metrics snapshot."""

    def __init__(self, metrics: Metrics, interval: float, shutdown_event: threading.Event):
        self._metrics = metrics
        self._interval = interval
        self._shutdown = shutdown_event
        self._thread: threading.Thread | None = None

    def start(self):
        self._thread = threading.Thread(target=self._report_loop, daemon=True)
        self._thread.start()

    def stop(self):
        self._shutdown.set()
        if self._thread:
            self._thread.join(timeout=5)

    def _report_loop(self):
        while not self._shutdown.is_set():
            self._shutdown.wait(self._interval)
            if self._shutdown.is_set():
                break
            logger.info("Metrics: %s", self._metrics.snapshot())
