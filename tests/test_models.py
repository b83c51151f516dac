"""Tests for journal line parsing and message expansion."""

import json

import pytest

from journal2gelf.models import (
    JSON_MESSAGE_MIN_LENGTH, LogEntry, expand_message, is_json_message, parse_entry,
)


def _line(**fields) -> str:
    record = {
        "__CURSOR": "s=abc;i=1",
        "__REALTIME_TIMESTAMP": "1704164645123456",
        "_BOOT_ID": "boot-1",
        "PRIORITY": "6",
        "SYSLOG_IDENTIFIER": "myapp",
        "MESSAGE": "hello world",
        "_HOSTNAME": "web-1",
        "_PID": "4242",
    }
    record.update(fields)
    return json.dumps(record)


class TestParseEntry:
    def test_basic_fields(self):
        entry = parse_entry(_line())
        assert entry is not None
        assert entry.cursor == "s=abc;i=1"
        assert entry.realtime_timestamp == 1704164645123456
        assert entry.priority == 6
        assert entry.syslog_identifier == "myapp"
        assert entry.message == "hello world"
        assert entry.full_message == ""
        assert entry.hostname == "web-1"
        assert entry.pid == "4242"
        assert entry.attributes == {}

    def test_timestamp_seconds(self):
        entry = parse_entry(_line())
        assert entry.timestamp == pytest.approx(1704164645.123456)

    def test_application_fields_captured(self):
        entry = parse_entry(_line(LOGGER="app.db", REQUESTID="req-1"))
        assert entry.fields == {"LOGGER": "app.db", "REQUESTID": "req-1"}

    def test_missing_fields_default(self):
        entry = parse_entry('{"MESSAGE": "bare"}')
        assert entry.message == "bare"
        assert entry.priority == 0
        assert entry.realtime_timestamp == 0
        assert entry.hostname == ""

    @pytest.mark.parametrize("line", [
        "",
        "not json",
        "{truncated",
        "[1, 2, 3]",
        '"just a string"',
    ])
    def test_malformed_lines_dropped(self, line):
        assert parse_entry(line) is None

    def test_non_numeric_priority_dropped(self):
        assert parse_entry(_line(PRIORITY="loud")) is None

    def test_non_numeric_timestamp_dropped(self):
        assert parse_entry(_line(**{"__REALTIME_TIMESTAMP": "yesterday"})) is None

    def test_binary_message_dropped(self):
        assert parse_entry(_line(MESSAGE=[104, 105])) is None

    def test_out_of_range_priority_unset(self):
        entry = parse_entry(_line(PRIORITY="12"))
        assert entry.priority == 0


class TestFacility:
    def test_syslog_identifier_preferred(self):
        entry = LogEntry(syslog_identifier="nginx", comm="nginx-worker")
        assert entry.facility == "nginx"

    def test_falls_back_to_comm(self):
        entry = LogEntry(syslog_identifier="", comm="php-fpm")
        assert entry.facility == "php-fpm"


class TestMultilineMessage:
    def test_split_on_first_line_break(self):
        original = "Traceback (most recent call last):\n  File x\nValueError: boom"
        entry = parse_entry(_line(MESSAGE=original))
        assert entry.message == "Traceback (most recent call last):"
        assert entry.full_message == original

    def test_single_line_untouched(self):
        entry = parse_entry(_line(MESSAGE="one line"))
        assert entry.message == "one line"
        assert entry.full_message == ""


class TestJsonMessage:
    def _json_message(self, **payload) -> str:
        payload.setdefault("padding", "x" * JSON_MESSAGE_MIN_LENGTH)
        return json.dumps(payload)

    def test_message_and_full_message_extracted(self):
        body = self._json_message(Message="short text", FullMessage="long\ntext", Tenant="acme")
        entry = parse_entry(_line(MESSAGE=body))
        assert entry.message == "short text"
        assert entry.full_message == "long\ntext"
        assert "Message" not in entry.attributes
        assert "FullMessage" not in entry.attributes
        assert entry.attributes["Tenant"] == "acme"

    def test_keys_merged_without_reserved(self):
        body = self._json_message(UserId=7, Active=True)
        entry = parse_entry(_line(MESSAGE=body))
        assert entry.attributes["UserId"] == 7
        assert entry.attributes["Active"] is True
        assert entry.message == body

    def test_short_payload_not_expanded(self):
        body = '{"Message": "hi"}'
        entry = parse_entry(_line(MESSAGE=body))
        assert entry.message == body
        assert entry.attributes == {}

    def test_invalid_json_left_unexpanded(self):
        body = '{"Message": "' + "x" * 80
        entry = parse_entry(_line(MESSAGE=body))
        assert entry is not None
        assert entry.message == body
        assert entry.attributes == {}

    def test_leading_whitespace_allowed(self):
        body = "  " + self._json_message(Message="indented")
        entry = parse_entry(_line(MESSAGE=body))
        assert entry.message == "indented"

    def test_multiline_json_message_value_split(self):
        body = self._json_message(Message="first\nsecond")
        entry = LogEntry(message=body)
        expand_message(entry)
        assert entry.message == "first"
        assert entry.full_message == "first\nsecond"


class TestIsJsonMessage:
    def test_requires_brace_and_quote(self):
        assert is_json_message('{"a": "' + "x" * 70 + '"}')
        assert not is_json_message("{a: " + "x" * 70)
        assert not is_json_message("[" + "x" * 70)

    def test_requires_length(self):
        assert not is_json_message('{"a": 1}')
