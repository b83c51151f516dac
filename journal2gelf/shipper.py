"""Journal shipper: wires parsing, normalization, buffering, and delivery."""

import logging
import threading
import time

from journal2gelf.buffer import CoalescingBuffer
from journal2gelf.config import Config
from journal2gelf.delivery import DeliveryEngine
from journal2gelf.metrics import Metrics
from journal2gelf.models import parse_entry
from journal2gelf.normalizer import Normalizer
from journal2gelf.rules import RuleRegistry

logger = logging.getLogger(__name__)


class JournalShipper:
    """Turns raw journal lines into GELF messages on the wire.

    Lines are handled in arrival order on the caller's thread; the only
    other thread is the buffer's idle flusher.
    """

    def __init__(self, writer, registry: RuleRegistry, config: Config,
                 metrics: Metrics | None = None, sleep=time.sleep):
        self._config = config
        self._metrics = metrics or Metrics()
        self._normalizer = Normalizer(registry)
        self._delivery = DeliveryEngine(
            writer, config.retry_backoff, self._metrics, sleep=sleep,
        )
        self._buffer: CoalescingBuffer | None = None

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    def start(self):
        """Start the coalescing buffer and its idle-flush thread."""
        self._buffer = CoalescingBuffer(
            on_deliver=self._delivery.deliver,
            write_interval=self._config.write_interval,
            quiescence=self._config.quiescence,
            shutdown_event=threading.Event(),
            metrics=self._metrics,
        )

    def stop(self):
        """Flush the pending entry and stop the idle-flush thread."""
        if self._buffer:
            self._buffer.stop()
            self._buffer = None

    def process_line(self, line: str):
        """Parse, normalize, and hand one line to the buffer."""
        entry = parse_entry(line)
        self._metrics.record_line(parsed=entry is not None)
        if entry is None:
            return

        if self._normalizer.normalize(entry):
            self._metrics.record_rule_hit()

        if self._buffer is None:
            self.start()
        self._buffer.add(entry)

    def run(self, lines):
        """Ship every line from ``lines``, then flush what is left."""
        if self._buffer is None:
            self.start()
        try:
            for line in lines:
                self.process_line(line)
        finally:
            self.stop()
            logger.info("Shipper finished: %s", self._metrics.snapshot())
