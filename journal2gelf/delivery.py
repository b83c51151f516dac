"""Delivery engine: converts entries to GELF and sends them until they land."""

import logging
import time

from journal2gelf.gelf import GELFError, to_gelf
from journal2gelf.metrics import Metrics
from journal2gelf.models import LogEntry

logger = logging.getLogger(__name__)

DEFAULT_RETRY_BACKOFF = 15.0


class DeliveryEngine:
    """Sends one entry at a time, retrying transport failures forever.

    A stuck entry blocks the calling thread until the endpoint accepts it
    again; nothing is dropped because of a send error.
    """

    def __init__(self, writer, retry_backoff: float = DEFAULT_RETRY_BACKOFF,
                 metrics: Metrics | None = None, sleep=time.sleep):
        self._writer = writer
        self._retry_backoff = retry_backoff
        self._metrics = metrics or Metrics()
        self._sleep = sleep

    def deliver(self, entry: LogEntry) -> bool:
        """Send ``entry``. Returns False only if it cannot be encoded."""
        message = to_gelf(entry)

        while True:
            try:
                self._writer.write_message(message)
            except GELFError as exc:
                logger.error("Dropping entry %s: %s", entry.cursor or "<no cursor>", exc)
                self._metrics.record_dropped()
                return False
            except OSError as exc:
                # The failed send may have been for an earlier datagram; the
                # current one is retried as-is.
                logger.error("Processing paused because of: %s", exc)
                self._metrics.record_send_failure()
                self._sleep(self._retry_backoff)
                continue

            self._metrics.record_delivered()
            return True
