"""Tests for the client cancellation notice rule."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from lawconsult.lifecycle.policy import DEFAULT_NOTICE, cancellation_deadline, client_may_cancel

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)


class TestClientMayCancel:
    def test_default_notice_is_48_hours(self):
        assert DEFAULT_NOTICE == timedelta(hours=48)

    def test_one_second_inside_window_denied(self):
        start = NOW + timedelta(hours=48) - timedelta(seconds=1)
        assert client_may_cancel(start, NOW) is False

    def test_one_second_outside_window_allowed(self):
        start = NOW + timedelta(hours=48) + timedelta(seconds=1)
        assert client_may_cancel(start, NOW) is True

    def test_exact_boundary_allowed(self):
        assert client_may_cancel(NOW + timedelta(hours=48), NOW) is True

    def test_past_appointment_denied(self):
        assert client_may_cancel(NOW - timedelta(hours=1), NOW) is False

    def test_custom_notice(self):
        start = NOW + timedelta(hours=30)
        assert client_may_cancel(start, NOW, notice=timedelta(hours=24)) is True
        assert client_may_cancel(start, NOW, notice=timedelta(hours=36)) is False

    def test_other_timezone_compares_by_instant(self):
        # 2026-10-21 18:00 UTC, 57 hours after NOW
        tokyo = datetime(2026, 10, 22, 3, 0, tzinfo=timezone(timedelta(hours=9)))
        assert client_may_cancel(tokyo, NOW) is True

    def test_naive_datetime_rejected(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            client_may_cancel(datetime(2026, 10, 25, 9, 0), NOW)


class TestCancellationDeadline:
    def test_deadline_is_start_minus_notice(self):
        start = NOW + timedelta(days=5)
        assert cancellation_deadline(start) == start - timedelta(hours=48)
