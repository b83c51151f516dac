"""Configuration: frozen dataclass built from env vars and CLI args."""

import argparse
import logging
import os
import re
from dataclasses import dataclass

import yaml

from journal2gelf.buffer import DEFAULT_QUIESCENCE, DEFAULT_WRITE_INTERVAL
from journal2gelf.delivery import DEFAULT_RETRY_BACKOFF
from journal2gelf.gelf import COMPRESSIONS, DEFAULT_CHUNK_SIZE
from journal2gelf.rules import RuleRegistry, build_registry

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class Config:
    host: str = ""
    port: int = 12201
    journal_args: tuple[str, ...] = ()
    journalctl: str = "journalctl"
    write_interval: float = DEFAULT_WRITE_INTERVAL
    quiescence: float = DEFAULT_QUIESCENCE
    retry_backoff: float = DEFAULT_RETRY_BACKOFF
    compression: str = "gzip"
    chunk_size: int = DEFAULT_CHUNK_SIZE
    rules_file: str | None = None
    metrics_interval: float = 0.0
    log_level: str = "INFO"


def parse_endpoint(value: str) -> tuple[str, int]:
    """Split "host:port" (or "[v6addr]:port") into its parts."""
    host, sep, port = value.rpartition(":")
    if not sep or not host or not port:
        raise ValueError(f"endpoint must look like host:port, got {value!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    port_number = int(port)
    if not 0 < port_number < 65536:
        raise ValueError(f"port out of range: {port_number}")
    return host, port_number


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="journal2gelf",
        description="Ship journalctl output to a Graylog GELF UDP input.",
    )
    parser.add_argument("--journalctl", default=None, help="journalctl binary to run")
    parser.add_argument("--write-interval", type=float, default=None,
                        help="Seconds between idle-flush checks")
    parser.add_argument("--quiescence", type=float, default=None,
                        help="Seconds an entry may wait before it is flushed")
    parser.add_argument("--retry-backoff", type=float, default=None,
                        help="Seconds to pause after a failed send")
    parser.add_argument("--compression", choices=COMPRESSIONS, default=None)
    parser.add_argument("--chunk-size", type=int, default=None,
                        help="Maximum datagram size in bytes")
    parser.add_argument("--rules", dest="rules_file", default=None,
                        help="YAML file with extra normalization rules")
    parser.add_argument("--metrics-interval", type=float, default=None,
                        help="Seconds between metrics log lines (0 disables)")
    parser.add_argument("--log-level", choices=LOG_LEVELS, default=None)
    parser.add_argument("endpoint", help="Graylog GELF UDP input, e.g. graylog:12201")
    parser.add_argument("journal_args", nargs=argparse.REMAINDER,
                        help="Arguments passed through to journalctl")
    return parser


def load_config(argv: list[str] | None = None) -> Config:
    """Build Config from defaults <- env vars <- CLI args (highest priority).

    Invalid arguments exit through argparse with status 2.
    """
    env_journalctl = os.environ.get("JOURNALCTL", Config.journalctl)
    env_write_interval = float(os.environ.get("WRITE_INTERVAL", str(Config.write_interval)))
    env_quiescence = float(os.environ.get("QUIESCENCE", str(Config.quiescence)))
    env_retry_backoff = float(os.environ.get("RETRY_BACKOFF", str(Config.retry_backoff)))
    env_compression = os.environ.get("GELF_COMPRESSION", Config.compression).lower()
    env_chunk_size = int(os.environ.get("GELF_CHUNK_SIZE", str(Config.chunk_size)))
    env_rules_file = os.environ.get("RULES_FILE") or None
    env_metrics_interval = float(os.environ.get("METRICS_INTERVAL", str(Config.metrics_interval)))
    env_log_level = os.environ.get("LOG_LEVEL", Config.log_level).upper()

    parser = build_cli_parser()
    args = parser.parse_args(argv)

    try:
        host, port = parse_endpoint(args.endpoint)
    except ValueError as exc:
        parser.error(str(exc))

    config = Config(
        host=host,
        port=port,
        journal_args=tuple(args.journal_args),
        journalctl=args.journalctl if args.journalctl is not None else env_journalctl,
        write_interval=args.write_interval if args.write_interval is not None else env_write_interval,
        quiescence=args.quiescence if args.quiescence is not None else env_quiescence,
        retry_backoff=args.retry_backoff if args.retry_backoff is not None else env_retry_backoff,
        compression=args.compression if args.compression is not None else env_compression,
        chunk_size=args.chunk_size if args.chunk_size is not None else env_chunk_size,
        rules_file=args.rules_file if args.rules_file is not None else env_rules_file,
        metrics_interval=(
            args.metrics_interval if args.metrics_interval is not None else env_metrics_interval
        ),
        log_level=args.log_level if args.log_level is not None else env_log_level,
    )

    if config.compression not in COMPRESSIONS:
        parser.error(f"unsupported compression: {config.compression}")
    if config.log_level not in LOG_LEVELS:
        parser.error(f"unsupported log level: {config.log_level}")
    if config.chunk_size <= 12:
        parser.error(f"chunk size too small: {config.chunk_size}")
    return config


def load_rules_file(path: str | None) -> dict[str, str]:
    """Load facility -> pattern overrides from a YAML file."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigError(f"cannot read rules file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc

    if not isinstance(data, dict) or not isinstance(data.get("rules", []), list):
        raise ConfigError(f"{path}: expected a mapping with a 'rules' list")

    patterns = {}
    for i, rule in enumerate(data.get("rules", [])):
        if not isinstance(rule, dict):
            raise ConfigError(f"{path}: rule #{i} is not a mapping")
        facility = rule.get("facility")
        pattern = rule.get("pattern")
        if not isinstance(facility, str) or not isinstance(pattern, str) or not facility:
            raise ConfigError(f"{path}: rule #{i} needs string 'facility' and 'pattern'")
        patterns[facility] = pattern

    logger.info("Loaded %d rule(s) from %s", len(patterns), path)
    return patterns


def load_rule_registry(path: str | None) -> RuleRegistry:
    """Built-in rules plus those from the rules file, compiled once."""
    patterns = load_rules_file(path)
    try:
        return build_registry(patterns)
    except re.error as exc:
        raise ConfigError(f"invalid pattern in {path}: {exc}") from exc
