"""Tests for fitband.views.logs: bounded newest-first logs."""

from __future__ import annotations

from typing import Any

import pytest

from fitband.models.telemetry import Command, CommandName
from fitband.views.logs import BoundedLog, CommandLog, TelemetryLog


class TestBoundedLog:
    def test_newest_first(self) -> None:
        log: BoundedLog[int] = BoundedLog(3)
        for i in range(3):
            log.push(i)
        assert log.entries() == [2, 1, 0]

    def test_drops_oldest_beyond_capacity(self) -> None:
        log: BoundedLog[int] = BoundedLog(3)
        for i in range(5):
            log.push(i)
        assert log.entries() == [4, 3, 2]
        assert len(log) == 3

    def test_replace_truncates(self) -> None:
        log: BoundedLog[int] = BoundedLog(2)
        log.replace([9, 8, 7])
        assert list(log) == [9, 8]

    def test_entries_is_a_copy(self) -> None:
        log: BoundedLog[int] = BoundedLog(2)
        log.push(1)
        log.entries().append(5)
        assert log.entries() == [1]

    def test_invalid_capacity(self) -> None:
        with pytest.raises(ValueError):
            BoundedLog(0)


class TestTelemetryLog:
    def test_capacity_twenty(self, sample_factory: Any) -> None:
        log = TelemetryLog()
        for i in range(25):
            log.push(sample_factory(message_id=f"m{i}"))
        assert len(log) == 20
        assert log.entries()[0].message_id == "m24"

    def test_duplicate_message_id_rejected(self, sample_factory: Any) -> None:
        log = TelemetryLog()
        assert log.push(sample_factory(message_id="a"))
        assert not log.push(sample_factory(message_id="a", heart_rate=99))
        assert len(log) == 1
        assert log.entries()[0].metrics.heart_rate == 72

    def test_replace_dedupes(self, sample_factory: Any) -> None:
        log = TelemetryLog()
        log.replace([sample_factory(message_id="a"), sample_factory(message_id="a")])
        assert len(log) == 1


class TestCommandLog:
    def test_capacity_ten(self) -> None:
        log = CommandLog()
        for _ in range(12):
            log.push(Command(name=CommandName.VIBRATE))
        assert len(log) == 10
