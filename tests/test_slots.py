"""Tests for the daily slot grid and month classification."""

from datetime import date

import pytest

from marine_service.domain.appointments import slots
from marine_service.shared.validators import parse_calendar_date


class TestSlotGrid:
    """Tests for the fixed time slots."""

    def test_twelve_slots_from_nine_to_eight(self):
        """The day has twelve hourly slots."""
        assert slots.SLOTS_PER_DAY == 12
        assert slots.TIME_SLOTS[0] == "09:00 AM"
        assert slots.TIME_SLOTS[-1] == "08:00 PM"

    def test_available_slots_keep_day_order(self):
        """Booked slots are removed and the rest stay in order."""
        result = slots.available_slots(["10:00 AM", "03:00 PM"])

        assert len(result) == 10
        assert "10:00 AM" not in result
        assert result[:2] == ["09:00 AM", "11:00 AM"]

    def test_unknown_slot_is_invalid(self):
        """Times outside the grid are rejected."""
        assert slots.is_valid_slot("09:00 AM")
        assert not slots.is_valid_slot("09:30 AM")


class TestClassifyDays:
    """Tests for partial and full day classification."""

    def test_partial_and_full_days(self):
        """Twelve bookings fill a day, fewer leave it partial."""
        partial, full = slots.classify_days(
            {date(2025, 3, 4): 12, date(2025, 3, 2): 3, date(2025, 3, 9): 0}
        )

        assert partial == ["2025-03-02"]
        assert full == ["2025-03-04"]

    def test_month_bounds_handles_leap_february(self):
        """Month bounds follow the calendar."""
        assert slots.month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))


class TestCalendarDate:
    """Tests for normalising incoming dates to a calendar day."""

    @pytest.mark.parametrize(
        "value",
        ["2025-01-10", "2025-01-10T00:00:00.000Z", "2025-01-10T23:30:00+05:30"],
    )
    def test_iso_strings_keep_the_picked_day(self, value):
        """The time part and offset never shift the day."""
        assert parse_calendar_date(value) == date(2025, 1, 10)

    def test_garbage_raises(self):
        """Unparseable input raises ValueError."""
        with pytest.raises(ValueError):
            parse_calendar_date("tomorrow")
