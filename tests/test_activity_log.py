# tests/test_activity_log.py
"""Unit tests for the in-memory activity log and its rolling window."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from crowd_balance.services.activity_log import ActivityLog, expiry_cutoff
from crowd_balance.services.errors import ValidationError
from conftest import T0, WINDOW


class TestAppend:
    @pytest.mark.parametrize("level", ["high", "MAX", "", None, 3])
    def test_rejects_anything_but_the_three_tokens(self, level):
        log = ActivityLog()
        with pytest.raises(ValidationError):
            log.append(level)
        assert len(log) == 0

    def test_timestamp_defaults_to_now(self):
        before = datetime.utcnow()
        event = ActivityLog().append("moderate")
        assert before <= event.timestamp <= datetime.utcnow()

    def test_reporter_defaults_to_organizer(self):
        assert ActivityLog().append("min", T0).reporter_id == "organizer"
        assert ActivityLog().append("min", T0, "org-7").reporter_id == "org-7"

    def test_aware_timestamp_stored_as_naive_utc(self):
        plus_two = timezone(timedelta(hours=2))
        event = ActivityLog().append("max", datetime(2026, 3, 14, 20, 0, tzinfo=plus_two))
        assert event.timestamp == T0
        assert event.timestamp.tzinfo is None


class TestEventsWithin:
    def test_boundary_event_is_excluded(self):
        log = ActivityLog()
        log.append("max", T0 - WINDOW)                               # exactly on the boundary
        log.append("min", T0 - WINDOW + timedelta(microseconds=1))
        levels = [e.crowd_level for e in log.events_within(WINDOW, now=T0)]
        assert levels == ["min"]

    def test_view_is_restartable_and_does_not_mutate(self):
        log = ActivityLog()
        log.append("max", T0 - timedelta(minutes=90))
        log.append("moderate", T0 - timedelta(minutes=5))
        view = log.events_within(WINDOW, now=T0)
        assert list(view) == list(view)
        assert len(list(view)) == 1
        assert len(log) == 2

    def test_defaults_to_retention_window(self):
        log = ActivityLog(retention_window=timedelta(minutes=10))
        log.append("max", T0 - timedelta(minutes=11))
        log.append("min", T0 - timedelta(minutes=5))
        assert [e.crowd_level for e in log.events_within(now=T0)] == ["min"]

    def test_future_timestamp_counts_as_current(self):
        log = ActivityLog()
        log.append("max", T0 + timedelta(seconds=30))   # reporter clock ahead
        assert len(list(log.events_within(WINDOW, now=T0))) == 1


class TestPrune:
    def test_removes_expired_and_returns_count(self):
        log = ActivityLog()
        for minutes in (120, 61, 60, 59, 1):
            log.append("max", T0 - timedelta(minutes=minutes))
        assert log.prune(WINDOW, now=T0) == 3
        assert len(log) == 2

    def test_second_prune_removes_nothing(self):
        log = ActivityLog()
        log.append("min", T0 - timedelta(hours=2))
        log.append("min", T0)
        assert log.prune(WINDOW, now=T0) == 1
        assert log.prune(WINDOW, now=T0) == 0

    def test_prune_keeps_exactly_what_the_filter_shows(self):
        log = ActivityLog()
        for seconds in (3601, 3600, 3599, 0):
            log.append("moderate", T0 - timedelta(seconds=seconds))
        current = list(log.events_within(WINDOW, now=T0))
        log.prune(WINDOW, now=T0)
        assert list(log) == current

    def test_cutoff_matches_window(self):
        assert expiry_cutoff(WINDOW, T0) == T0 - timedelta(minutes=60)


class TestLatest:
    def test_empty_log_has_no_latest(self):
        assert ActivityLog().latest() is None

    def test_arrival_order_wins_over_timestamp(self):
        log = ActivityLog()
        log.append("max", T0)
        log.append("min", T0 - timedelta(minutes=5))   # skewed clock, arrived later
        assert log.latest().crowd_level == "min"

    def test_from_entries_keeps_row_order(self):
        rows = [
            SimpleNamespace(crowd_level="min", timestamp=T0, reporter_id="a"),
            SimpleNamespace(crowd_level="max", timestamp=T0, reporter_id="b"),
        ]
        log = ActivityLog.from_entries(rows)
        assert [e.reporter_id for e in log] == ["a", "b"]
        assert log.latest().crowd_level == "max"
