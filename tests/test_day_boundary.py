"""
Unit tests for the UTC day boundary helpers.

Days are calendar days in UTC, never 24-hour windows.
"""

import pytest
from datetime import date, datetime, timedelta, timezone

from services.day_boundary import (
    as_utc,
    day_string,
    is_consecutive_day,
    parse_day_string,
    previous_day,
    utc_day,
)


class TestDayString:
    """Test day_string function"""

    def test_formats_as_iso_date(self):
        moment = datetime(2025, 3, 1, 12, 30, tzinfo=timezone.utc)
        assert day_string(moment) == '2025-03-01'

    def test_last_second_of_day_stays_on_that_day(self):
        moment = datetime(2025, 3, 1, 23, 59, 59, tzinfo=timezone.utc)
        assert day_string(moment) == '2025-03-01'

    def test_first_second_of_day_starts_next_day(self):
        moment = datetime(2025, 3, 2, 0, 0, 1, tzinfo=timezone.utc)
        assert day_string(moment) == '2025-03-02'

    def test_converts_other_timezones_to_utc(self):
        """23:30 in UTC-5 is already the next UTC day"""
        eastern = timezone(timedelta(hours=-5))
        moment = datetime(2025, 3, 1, 23, 30, tzinfo=eastern)
        assert day_string(moment) == '2025-03-02'

    def test_naive_datetimes_are_taken_as_utc(self):
        assert day_string(datetime(2025, 3, 1, 23, 59)) == '2025-03-01'

    def test_defaults_to_now(self):
        assert day_string() == datetime.now(timezone.utc).date().isoformat()


class TestAsUtc:
    """Test as_utc function"""

    def test_naive_gets_utc_tzinfo(self):
        result = as_utc(datetime(2025, 1, 1, 8, 0))
        assert result.tzinfo == timezone.utc
        assert result.hour == 8

    def test_aware_is_converted(self):
        plus_two = timezone(timedelta(hours=2))
        result = as_utc(datetime(2025, 1, 1, 8, 0, tzinfo=plus_two))
        assert result.hour == 6


class TestCalendarArithmetic:
    """Test previous_day, is_consecutive_day and parse_day_string"""

    def test_previous_day_crosses_month(self):
        assert previous_day(date(2025, 3, 1)) == date(2025, 2, 28)

    def test_previous_day_in_leap_year(self):
        assert previous_day(date(2024, 3, 1)) == date(2024, 2, 29)

    def test_consecutive_across_year_end(self):
        assert is_consecutive_day(date(2024, 12, 31), date(2025, 1, 1)) is True

    def test_same_day_is_not_consecutive(self):
        assert is_consecutive_day(date(2025, 1, 1), date(2025, 1, 1)) is False

    def test_gap_is_not_consecutive(self):
        assert is_consecutive_day(date(2025, 1, 1), date(2025, 1, 3)) is False

    def test_parse_round_trips_utc_day(self):
        moment = datetime(2025, 7, 4, 18, 0, tzinfo=timezone.utc)
        assert parse_day_string(day_string(moment)) == utc_day(moment)

    def test_parse_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_day_string('15/01/2025')
