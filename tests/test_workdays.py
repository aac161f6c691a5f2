"""
Tests for the working-day calendar (Friday/Saturday weekend).
"""
import pytest
from datetime import date

from progress_recon.modules.workdays import WorkCalendar, build_weekmask


@pytest.fixture
def calendar():
    return WorkCalendar(weekend_days=[4, 5], holidays=[])


class TestWeekmask:

    def test_friday_saturday_weekend(self):
        assert build_weekmask([4, 5]) == '1111001'

    def test_no_working_days_rejected(self):
        with pytest.raises(ValueError):
            build_weekmask(range(7))


class TestWorkCalendar:
    """Tests for working-day arithmetic."""

    def test_default_calendar_uses_config(self):
        cal = WorkCalendar.default()
        assert cal.weekend_days == [4, 5]

    def test_is_working_day(self, calendar):
        assert calendar.is_working_day(date(2025, 1, 9))       # Thursday
        assert not calendar.is_working_day(date(2025, 1, 10))  # Friday
        assert not calendar.is_working_day(date(2025, 1, 11))  # Saturday
        assert calendar.is_working_day(date(2025, 1, 12))      # Sunday

    def test_count_working_days_inclusive(self, calendar):
        # Mon 6 .. Sun 12 Jan 2025: Mon-Thu plus Sunday
        assert calendar.count_working_days(date(2025, 1, 6), date(2025, 1, 12)) == 5
        assert calendar.count_working_days(date(2025, 1, 6), date(2025, 1, 6)) == 1
        assert calendar.count_working_days(date(2025, 1, 10), date(2025, 1, 11)) == 0

    def test_count_reversed_range(self, calendar):
        assert calendar.count_working_days(date(2025, 1, 12), date(2025, 1, 6)) == 0

    def test_add_working_days_counts_start(self, calendar):
        monday = date(2025, 1, 6)
        assert calendar.add_working_days(monday, 1) == monday
        assert calendar.add_working_days(monday, 5) == date(2025, 1, 12)
        assert calendar.add_working_days(monday, 0) == monday

    def test_add_working_days_beyond_calendar_is_none(self, calendar):
        """Results past the last representable date give no date."""
        assert calendar.add_working_days(date(9999, 12, 1), 100) is None
        # Fits in calendar days but not once weekends are skipped
        assert calendar.add_working_days(date(9999, 12, 1), 30) is None
        assert calendar.add_working_days(date(9999, 12, 1), 3) == date(9999, 12, 5)
        assert calendar.add_working_days(date(2026, 10, 19), 50_000_000) is None

    def test_add_working_days_from_weekend(self, calendar):
        friday = date(2025, 1, 10)
        assert calendar.add_working_days(friday, 1) == date(2025, 1, 12)

    def test_holidays(self):
        cal = WorkCalendar(weekend_days=[4, 5], holidays=[date(2025, 1, 7)])
        assert not cal.is_working_day(date(2025, 1, 7))
        assert cal.add_working_days(date(2025, 1, 6), 2) == date(2025, 1, 8)
        assert cal.count_working_days(date(2025, 1, 6), date(2025, 1, 9)) == 3

    def test_distinct_working_days(self, calendar):
        dates = [date(2025, 1, 6), date(2025, 1, 6), date(2025, 1, 7), date(2025, 1, 10)]
        assert calendar.distinct_working_days(dates) == 2
