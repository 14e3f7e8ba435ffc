"""Shared validation utilities"""

import re
from datetime import date, datetime
from typing import Optional

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase, trimmed email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Please provide a valid email address")
    return email


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate a phone number loosely: digits with optional +, spaces, dashes
    and parentheses, between 7 and 15 digits.
    """
    if not phone:
        return phone

    phone = phone.strip()
    if not re.fullmatch(r"[+\d\s\-()]+", phone):
        raise ValueError("Phone number contains invalid characters")

    digits = re.sub(r"\D", "", phone)
    if not 7 <= len(digits) <= 15:
        raise ValueError("Phone number must contain 7 to 15 digits")
    return phone


def parse_calendar_date(value) -> date:
    """
    Reduce an incoming date to a calendar day.

    Accepts date objects, datetimes and ISO strings such as "2025-01-10" or
    "2025-01-10T00:00:00.000Z". The time and offset are discarded so the day
    the customer picked is the day that gets stored.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and len(value) >= 10:
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError as e:
            raise ValueError(f"Invalid date: {value}") from e
    raise ValueError(f"Invalid date: {value}")


def parse_numeric_id(value) -> Optional[int]:
    """Positive integer id from a path segment, None when malformed"""
    try:
        parsed = int(str(value))
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None
