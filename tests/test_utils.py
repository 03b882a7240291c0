"""Tests for time-of-day helpers."""

import pytest

from booking_engine.errors import InvalidTimeFormatError, ValidationError
from booking_engine.utils import (
    add_minutes,
    duration_minutes,
    minutes_to_time,
    time_to_minutes,
    windows_overlap,
)


class TestTimeToMinutes:
    def test_midnight(self):
        assert time_to_minutes("00:00") == 0

    def test_morning(self):
        assert time_to_minutes("09:30") == 570

    def test_last_minute_of_day(self):
        assert time_to_minutes("23:59") == 1439

    def test_strips_whitespace(self):
        assert time_to_minutes(" 14:00 ") == 840

    @pytest.mark.parametrize("value", ["24:00", "9:30", "12:60", "noon", "", "12-30"])
    def test_rejects_malformed(self, value):
        with pytest.raises(InvalidTimeFormatError):
            time_to_minutes(value)

    def test_rejects_non_string(self):
        with pytest.raises(InvalidTimeFormatError):
            time_to_minutes(930)

    def test_format_error_is_validation_error(self):
        with pytest.raises(ValidationError):
            time_to_minutes("25:00")


class TestMinutesToTime:
    def test_pads_hours_and_minutes(self):
        assert minutes_to_time(65) == "01:05"

    def test_wraps_past_midnight(self):
        assert minutes_to_time(1440 + 30) == "00:30"

    def test_inverse_of_time_to_minutes(self):
        assert minutes_to_time(time_to_minutes("17:45")) == "17:45"


class TestAddMinutes:
    def test_simple_addition(self):
        assert add_minutes("10:00", 90) == "11:30"

    def test_wraps_across_midnight(self):
        assert add_minutes("23:30", 45) == "00:15"


class TestDurationMinutes:
    def test_positive_span(self):
        assert duration_minutes("10:00", "11:30") == 90

    def test_reversed_span_is_negative(self):
        assert duration_minutes("11:00", "10:00") == -60


class TestWindowsOverlap:
    def test_adjacent_windows_do_not_overlap(self):
        assert not windows_overlap(600, 660, 660, 720)

    def test_partial_overlap(self):
        assert windows_overlap(600, 660, 630, 690)

    def test_contained_window(self):
        assert windows_overlap(600, 720, 630, 660)

    def test_disjoint_windows(self):
        assert not windows_overlap(540, 600, 840, 900)
