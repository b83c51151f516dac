"""Journal entry model and parsing of ``journalctl --output=json`` lines.

Field names follow the systemd journal convention, see
http://www.freedesktop.org/software/systemd/man/systemd.journal-fields.html
"""

import json
import logging
import re
from dataclasses import dataclass, field

from journal2gelf.severity import UNSET, is_valid_level

logger = logging.getLogger(__name__)

# Messages shorter than this are never treated as embedded JSON.
JSON_MESSAGE_MIN_LENGTH = 64

_JSON_SHAPE = re.compile(r'\s*\{\s*"')

# attribute name -> journal field name
_STRING_FIELDS = {
    "cursor": "__CURSOR",
    "monotonic_timestamp": "__MONOTONIC_TIMESTAMP",
    "boot_id": "_BOOT_ID",
    "transport": "_TRANSPORT",
    "syslog_facility": "SYSLOG_FACILITY",
    "syslog_identifier": "SYSLOG_IDENTIFIER",
    "message": "MESSAGE",
    "pid": "_PID",
    "uid": "_UID",
    "gid": "_GID",
    "comm": "_COMM",
    "exe": "_EXE",
    "cmdline": "_CMDLINE",
    "systemd_cgroup": "_SYSTEMD_CGROUP",
    "systemd_session": "_SYSTEMD_SESSION",
    "systemd_owner_uid": "_SYSTEMD_OWNER_UID",
    "systemd_unit": "_SYSTEMD_UNIT",
    "source_realtime_timestamp": "_SOURCE_REALTIME_TIMESTAMP",
    "machine_id": "_MACHINE_ID",
    "hostname": "_HOSTNAME",
}

# Sent as quoted integers by journalctl.
_INT_FIELDS = {
    "realtime_timestamp": "__REALTIME_TIMESTAMP",
    "priority": "PRIORITY",
}

# Free-form fields set by applications logging to the journal directly.
APPLICATION_FIELDS = (
    "LOGGER",
    "EVENTID",
    "EXCEPTION",
    "EXCEPTION_TYPE",
    "EXCEPTION_STACKTRACE",
    "INNEREXCEPTION",
    "INNEREXCEPTION_TYPE",
    "INNEREXCEPTION_STACKTRACE",
    "STATUSCODE",
    "QUERYSTRING",
    "MEMBERID",
    "CORRELATIONID",
    "REQUESTPATH",
    "REQUESTID",
)


@dataclass
class LogEntry:
    cursor: str = ""
    realtime_timestamp: int = 0      # microseconds since the epoch
    monotonic_timestamp: str = ""
    boot_id: str = ""
    transport: str = ""
    priority: int = UNSET
    syslog_facility: str = ""
    syslog_identifier: str = ""
    message: str = ""
    full_message: str = ""
    pid: str = ""
    uid: str = ""
    gid: str = ""
    comm: str = ""
    exe: str = ""
    cmdline: str = ""
    systemd_cgroup: str = ""
    systemd_session: str = ""
    systemd_owner_uid: str = ""
    systemd_unit: str = ""
    source_realtime_timestamp: str = ""
    machine_id: str = ""
    hostname: str = ""
    fields: dict[str, str] = field(default_factory=dict)
    attributes: dict = field(default_factory=dict)

    @property
    def facility(self) -> str:
        # php-fpm does not fill in SYSLOG_IDENTIFIER
        return self.syslog_identifier or self.comm

    @property
    def timestamp(self) -> float:
        """Realtime timestamp in seconds."""
        return self.realtime_timestamp / 1000 / 1000


def parse_entry(line: str) -> LogEntry | None:
    """Parse one journal JSON line. Returns None for anything malformed."""
    try:
        data = json.loads(line)
        if not isinstance(data, dict):
            raise TypeError(f"expected a JSON object, got {type(data).__name__}")
        kwargs = {}
        for attr, key in _STRING_FIELDS.items():
            if key in data:
                kwargs[attr] = _as_str(data[key], key)
        for attr, key in _INT_FIELDS.items():
            if key in data:
                kwargs[attr] = _as_int(data[key], key)
        app_fields = {key: _as_str(data[key], key) for key in APPLICATION_FIELDS if key in data}
    except (json.JSONDecodeError, TypeError, ValueError) as exc:
        logger.debug("Skipping unparseable line: %s (%s)", line[:100], exc)
        return None

    entry = LogEntry(fields=app_fields, **kwargs)
    if not is_valid_level(entry.priority):
        entry.priority = UNSET
    expand_message(entry)
    return entry


def expand_message(entry: LogEntry):
    """Derive full message and attributes from the raw message body.

    A JSON object body is merged into the attributes, with its "Message"
    and "FullMessage" keys taking over the short and full message. A
    multi-line body is split so the short message holds the first line.
    """
    if is_json_message(entry.message):
        _merge_json_message(entry)

    if "\n" in entry.message:
        if not entry.full_message:
            entry.full_message = entry.message
        entry.message = entry.message.split("\n", 1)[0].rstrip("\r")


def is_json_message(message: str) -> bool:
    return len(message) > JSON_MESSAGE_MIN_LENGTH and _JSON_SHAPE.match(message) is not None


def _merge_json_message(entry: LogEntry):
    try:
        extra = json.loads(entry.message)
    except json.JSONDecodeError:
        return
    if not isinstance(extra, dict):
        return

    if "Message" in extra:
        entry.message = str(extra.pop("Message"))
    if "FullMessage" in extra:
        entry.full_message = str(extra.pop("FullMessage"))
    entry.attributes.update(extra)


def _as_str(value, key: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{key} is not a string")
    return value


def _as_int(value, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise TypeError(f"{key} is not an integer")
    return int(value)
