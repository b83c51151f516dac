"""Strips source-injected prefixes from messages and recovers severities."""

import logging

from journal2gelf.models import LogEntry
from journal2gelf.rules import TIMESTAMP_PATTERN, RuleRegistry
from journal2gelf.severity import resolve_severity

logger = logging.getLogger(__name__)


class Normalizer:
    def __init__(self, registry: RuleRegistry):
        self._registry = registry

    def normalize(self, entry: LogEntry) -> bool:
        """Clean up ``entry`` in place. Returns True if a facility rule matched."""
        entry.message = TIMESTAMP_PATTERN.sub("", entry.message, count=1)

        rule = self._registry.lookup(entry.syslog_identifier, entry.comm)
        if rule is None:
            return False

        match = rule.pattern.search(entry.message)
        if match is None:
            return False

        if rule.priority_group is not None:
            entry.priority = resolve_severity(match.group(rule.priority_group) or "")

        entry.message = entry.message[:match.start()] + entry.message[match.end():]
        logger.debug("Applied %s rule, priority=%d", rule.facility, entry.priority)
        return True
