"""Entry point: ship journalctl output to Graylog over GELF/UDP."""

import logging
import signal
import sys
import threading

from journal2gelf.config import ConfigError, load_config, load_rule_registry
from journal2gelf.journal import JournalReadError, JournalReader
from journal2gelf.metrics import Metrics, MetricsReporter
from journal2gelf.sender import GELFWriter
from journal2gelf.shipper import JournalShipper

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    config = load_config(argv)

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        registry = load_rule_registry(config.rules_file)
    except ConfigError as exc:
        logger.error("%s", exc)
        return 1

    try:
        writer = GELFWriter(config.host, config.port, config.compression, config.chunk_size)
    except OSError as exc:
        logger.error("While connecting to Graylog server %s:%d: %s", config.host, config.port, exc)
        return 1

    shutdown_event = threading.Event()
    reader = JournalReader(config.journal_args, config.journalctl)

    def signal_handler(signum, frame):
        logger.info("Received signal %d, shutting down...", signum)
        shutdown_event.set()
        reader.terminate()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        reader.start()
    except OSError as exc:
        logger.error("Could not start %s: %s", config.journalctl, exc)
        writer.close()
        return 1

    metrics = Metrics()
    reporter = None
    if config.metrics_interval > 0:
        reporter = MetricsReporter(metrics, config.metrics_interval, threading.Event())
        reporter.start()

    shipper = JournalShipper(writer, registry, config, metrics)
    status = 0
    try:
        shipper.run(reader)
    except JournalReadError as exc:
        logger.error("%s", exc)
        status = 1
    finally:
        if reporter:
            reporter.stop()
        writer.close()

    returncode = reader.wait()
    if status == 0 and returncode != 0 and not shutdown_event.is_set():
        logger.error("journalctl exited with status %d", returncode)
        status = 1
    return status


if __name__ == "__main__":
    sys.exit(main())
