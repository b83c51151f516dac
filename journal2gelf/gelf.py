"""GELF 1.1 envelope building, serialization, and UDP chunking.

See https://go2docs.graylog.org/current/getting_in_log_data/gelf.html
"""

import gzip
import json
import os
import zlib

from journal2gelf.models import LogEntry

GELF_VERSION = "1.1"

# Chunked-message header: 2-byte magic, 8-byte message id, sequence
# number, sequence count.
CHUNK_MAGIC = b"\x1e\x0f"
CHUNK_HEADER_SIZE = 12
MAX_CHUNKS = 128

DEFAULT_CHUNK_SIZE = 1420

COMPRESSIONS = ("gzip", "zlib", "none")

# Extra keys always present on the envelope: GELF name -> journal field.
WELL_KNOWN_FIELDS = {
    "Logger": "LOGGER",
    "EventId": "EVENTID",
    "Exception": "EXCEPTION",
    "Exception_Type": "EXCEPTION_TYPE",
    "Exception_Stacktrace": "EXCEPTION_STACKTRACE",
    "Inner_Exception": "INNEREXCEPTION",
    "Inner_Exception_Type": "INNEREXCEPTION_TYPE",
    "Inner_Exception_Stacktrace": "INNEREXCEPTION_STACKTRACE",
    "Request_Id": "REQUESTID",
    "Request_Path": "REQUESTPATH",
    "Status_Code": "STATUSCODE",
    "Query_String": "QUERYSTRING",
    "Correlation_Id": "CORRELATIONID",
    "Member_Id": "MEMBERID",
}


class GELFError(Exception):
    pass


class ChunkLimitExceeded(GELFError):
    pass


def extra_fields(entry: LogEntry) -> dict:
    """Well-known keys (empty when absent) overlaid with the entry's attributes."""
    extra = {
        "Boot_id": entry.boot_id,
        "Pid": entry.pid,
        "Uid": entry.uid,
    }
    for name, key in WELL_KNOWN_FIELDS.items():
        extra[name] = entry.fields.get(key, "")
    extra.update(entry.attributes)
    return extra


def to_gelf(entry: LogEntry) -> dict:
    """Build the GELF envelope for an entry."""
    message = {
        "version": GELF_VERSION,
        "host": entry.hostname,
        "short_message": entry.message,
        "timestamp": entry.timestamp,
        "level": entry.priority,
        "facility": entry.facility,
    }
    if entry.full_message:
        message["full_message"] = entry.full_message

    for key, value in extra_fields(entry).items():
        # "_id" is reserved by GELF
        if key == "id":
            continue
        message["_" + key] = _field_value(value)
    return message


def encode_message(message: dict, compression: str = "gzip") -> bytes:
    """Serialize an envelope to compact JSON, optionally compressed."""
    payload = json.dumps(message, separators=(",", ":")).encode("utf-8")
    if compression == "gzip":
        return gzip.compress(payload)
    if compression == "zlib":
        return zlib.compress(payload)
    if compression == "none":
        return payload
    raise ValueError(f"Unsupported compression: {compression}")


def split_chunks(payload: bytes, chunk_size: int = DEFAULT_CHUNK_SIZE) -> list[bytes]:
    """Split a payload into datagrams no larger than ``chunk_size``."""
    if len(payload) <= chunk_size:
        return [payload]

    body_size = chunk_size - CHUNK_HEADER_SIZE
    if body_size <= 0:
        raise ValueError(f"chunk_size must exceed {CHUNK_HEADER_SIZE} bytes")

    bodies = [payload[i:i + body_size] for i in range(0, len(payload), body_size)]
    if len(bodies) > MAX_CHUNKS:
        raise ChunkLimitExceeded(
            f"message needs {len(bodies)} chunks, GELF allows at most {MAX_CHUNKS}"
        )

    message_id = os.urandom(8)
    count = len(bodies)
    return [
        CHUNK_MAGIC + message_id + bytes([seq, count]) + body
        for seq, body in enumerate(bodies)
    ]


def _field_value(value):
    if isinstance(value, (str, int, float, bool)):
        return value
    return json.dumps(value)
