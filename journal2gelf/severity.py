"""Syslog severity levels and the word -> level lookup table."""

EMERGENCY = 0
ALERT = 1
CRITICAL = 2
ERROR = 3
WARNING = 4
NOTICE = 5
INFO = 6
DEBUG = 7

# Level used when a severity cannot be determined.
UNSET = 0

SEVERITIES: dict[str, int] = {
    "emergency": EMERGENCY,
    "emerg": EMERGENCY,
    "alert": ALERT,
    "critical": CRITICAL,
    "crit": CRITICAL,
    "error": ERROR,
    "err": ERROR,
    "warning": WARNING,
    "warn": WARNING,
    "notice": NOTICE,
    "info": INFO,
    "debug": DEBUG,
}


def resolve_severity(word: str) -> int:
    """Map a severity word (any case) to its level, UNSET if unknown."""
    return SEVERITIES.get(word.lower(), UNSET)


def is_valid_level(level: int) -> bool:
    return EMERGENCY <= level <= DEBUG
