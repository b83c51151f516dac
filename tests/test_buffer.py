"""Tests for the pending slot and the coalescing buffer."""

import threading
import time

import pytest

from journal2gelf.buffer import CoalescingBuffer, PendingSlot
from journal2gelf.metrics import Metrics
from journal2gelf.models import LogEntry


def _entry(name: str, timestamp_us: int | None = None) -> LogEntry:
    if timestamp_us is None:
        timestamp_us = int(time.time() * 1_000_000)
    return LogEntry(cursor=name, message=name, realtime_timestamp=timestamp_us)


def _make_buffer(quiescence: float = 0.1, write_interval: float = 0.02, clock=time.time):
    """Factory that returns (buffer, delivered_list, metrics)."""
    delivered: list[LogEntry] = []
    metrics = Metrics()
    buf = CoalescingBuffer(
        on_deliver=delivered.append,
        write_interval=write_interval,
        quiescence=quiescence,
        shutdown_event=threading.Event(),
        metrics=metrics,
        clock=clock,
    )
    return buf, delivered, metrics


class TestPendingSlot:
    def test_try_place_only_when_empty(self):
        slot = PendingSlot()
        a, b = _entry("a"), _entry("b")
        assert slot.try_place(a) is True
        assert slot.try_place(b) is False
        assert slot.drain() is a

    def test_evict_and_replace(self):
        slot = PendingSlot()
        a, b = _entry("a"), _entry("b")
        assert slot.evict_and_replace(a) is None
        assert slot.evict_and_replace(b) is a
        assert slot.drain() is b
        assert not slot.occupied

    def test_drain_if_stale(self):
        slot = PendingSlot()
        slot.evict_and_replace(_entry("a", timestamp_us=1_000_000))
        assert slot.drain_if_stale(now_us=1_050_000, threshold_us=100_000) is None
        assert slot.occupied
        entry = slot.drain_if_stale(now_us=1_200_000, threshold_us=100_000)
        assert entry.cursor == "a"
        assert not slot.occupied

    def test_drain_empty(self):
        slot = PendingSlot()
        assert slot.drain() is None
        assert slot.drain_if_stale(now_us=10**18, threshold_us=0) is None


class TestProducerPath:
    def test_first_entry_held(self):
        buf, delivered, _ = _make_buffer(quiescence=3600)
        buf.add(_entry("a"))
        time.sleep(0.1)
        assert delivered == []
        assert buf.pending
        buf.stop()

    def test_second_entry_evicts_first(self):
        buf, delivered, metrics = _make_buffer(quiescence=3600)
        buf.add(_entry("a"))
        buf.add(_entry("b"))
        assert [e.cursor for e in delivered] == ["a"]
        assert buf.pending
        assert metrics.snapshot()["evictions"] == 1
        buf.stop()
        assert [e.cursor for e in delivered] == ["a", "b"]

    def test_arrival_order_preserved(self):
        buf, delivered, _ = _make_buffer(quiescence=3600)
        for i in range(20):
            buf.add(_entry(f"e{i}"))
        buf.stop()
        assert [e.cursor for e in delivered] == [f"e{i}" for i in range(20)]


class TestIdleFlush:
    def test_quiet_entry_flushed(self):
        buf, delivered, metrics = _make_buffer(quiescence=0.1, write_interval=0.02)
        buf.add(_entry("lonely"))

        deadline = time.monotonic() + 2.0
        while not delivered and time.monotonic() < deadline:
            time.sleep(0.01)

        assert [e.cursor for e in delivered] == ["lonely"]
        assert not buf.pending
        assert metrics.snapshot()["idle_flushes"] == 1
        buf.stop()
        assert len(delivered) == 1

    def test_flushed_within_poll_interval_of_threshold(self):
        buf, delivered, _ = _make_buffer(quiescence=0.1, write_interval=0.02)
        start = time.monotonic()
        buf.add(_entry("timed"))

        while not delivered and time.monotonic() - start < 2.0:
            time.sleep(0.005)
        elapsed = time.monotonic() - start

        assert delivered
        assert elapsed >= 0.09
        assert elapsed < 0.5
        buf.stop()

    def test_old_entry_flushed_on_next_poll(self):
        buf, delivered, _ = _make_buffer(quiescence=0.1, write_interval=0.02)
        buf.add(_entry("historic", timestamp_us=1_000_000))
        time.sleep(0.2)
        assert [e.cursor for e in delivered] == ["historic"]
        buf.stop()

    def test_uses_injected_clock(self):
        now = [100.0]
        buf, delivered, _ = _make_buffer(quiescence=0.1, write_interval=0.02, clock=lambda: now[0])
        buf.add(_entry("a", timestamp_us=100_000_000))
        time.sleep(0.1)
        assert delivered == []
        now[0] = 100.5
        time.sleep(0.1)
        assert [e.cursor for e in delivered] == ["a"]
        buf.stop()


class TestStop:
    def test_stop_flushes_pending(self):
        buf, delivered, _ = _make_buffer(quiescence=3600)
        buf.add(_entry("last"))
        buf.stop()
        assert [e.cursor for e in delivered] == ["last"]

    def test_stop_with_empty_slot(self):
        buf, delivered, _ = _make_buffer()
        buf.stop()
        assert delivered == []

    def test_failing_callback_does_not_break_buffer(self):
        calls: list[str] = []

        def on_deliver(entry):
            calls.append(entry.cursor)
            raise RuntimeError("boom")

        buf = CoalescingBuffer(on_deliver=on_deliver, quiescence=3600, write_interval=0.02)
        buf.add(_entry("a"))
        buf.add(_entry("b"))
        buf.stop()
        assert calls == ["a", "b"]
