"""Fixed daily time slots and month occupancy rules"""

import calendar
from collections.abc import Iterable
from datetime import date

# Twelve one-hour windows, 09:00 to 20:00
TIME_SLOTS = (
    "09:00 AM",
    "10:00 AM",
    "11:00 AM",
    "12:00 PM",
    "01:00 PM",
    "02:00 PM",
    "03:00 PM",
    "04:00 PM",
    "05:00 PM",
    "06:00 PM",
    "07:00 PM",
    "08:00 PM",
)
SLOTS_PER_DAY = len(TIME_SLOTS)


def is_valid_slot(value: str) -> bool:
    return value in TIME_SLOTS


def available_slots(booked: Iterable[str]) -> list[str]:
    """All slots not in booked, in day order"""
    taken = set(booked)
    return [slot for slot in TIME_SLOTS if slot not in taken]


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of a month"""
    _, last_day = calendar.monthrange(year, month)
    return date(year, month, 1), date(year, month, last_day)


def classify_days(day_counts: dict[date, int]) -> tuple[list[str], list[str]]:
    """
    Split booked days into partially and fully booked.

    A day is fully booked once its active bookings reach SLOTS_PER_DAY.
    Returns ISO date strings in ascending order.
    """
    partially_booked = []
    fully_booked = []
    for day in sorted(day_counts):
        count = day_counts[day]
        if count >= SLOTS_PER_DAY:
            fully_booked.append(day.isoformat())
        elif count > 0:
            partially_booked.append(day.isoformat())
    return partially_booked, fully_booked
