"""Unit tests for Saturday-Friday week boundaries in Cairo time."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from freezegun import freeze_time

from modules.core.clock import SystemClock
from modules.settlements.periods import week_window

pytestmark = pytest.mark.unit

UTC = timezone.utc


class TestWeekWindow:
    def test_midweek_instant(self):
        window = week_window(datetime(2025, 1, 8, 10, 0, tzinfo=UTC))

        assert (window.year, window.week_number) == (2025, 2)
        assert window.start == datetime(2025, 1, 3, 22, 0, tzinfo=UTC)
        assert window.end == datetime(2025, 1, 10, 21, 59, 59, 999999, tzinfo=UTC)

    def test_window_spans_one_week_less_a_microsecond(self):
        window = week_window(datetime(2025, 1, 8, 10, 0, tzinfo=UTC))

        assert window.end - window.start == timedelta(days=7) - timedelta(microseconds=1)

    def test_last_microsecond_of_friday_belongs_to_the_week(self):
        window = week_window(datetime(2025, 1, 10, 21, 59, 59, 999999, tzinfo=UTC))

        assert window.week_number == 2

    def test_saturday_midnight_starts_a_new_week(self):
        window = week_window(datetime(2025, 1, 10, 22, 0, tzinfo=UTC))

        assert window.week_number == 3
        assert window.start == datetime(2025, 1, 10, 22, 0, tzinfo=UTC)

    def test_local_offset_not_utc_decides_the_day(self):
        # Friday 23:30 UTC is already Saturday 01:30 in Cairo.
        window = week_window(datetime(2025, 1, 10, 23, 30, tzinfo=UTC))

        assert window.week_number == 3

    def test_year_boundary_uses_iso_week_of_monday(self):
        window = week_window(datetime(2024, 12, 30, 12, 0, tzinfo=UTC))

        assert (window.year, window.week_number) == (2025, 1)
        assert window.start == datetime(2024, 12, 27, 22, 0, tzinfo=UTC)

    def test_other_offsets(self):
        window = week_window(datetime(2025, 1, 8, 10, 0, tzinfo=UTC), utc_offset_hours=0)

        assert window.start == datetime(2025, 1, 4, 0, 0, tzinfo=UTC)

    def test_naive_datetime_is_rejected(self):
        with pytest.raises(ValueError):
            week_window(datetime(2025, 1, 8, 10, 0))

    @freeze_time("2025-01-08 10:00:00")
    def test_system_clock_feeds_the_current_window(self):
        window = week_window(SystemClock().now())

        assert window.week_number == 2
