"""Shared validation utilities"""

import re
from datetime import date, datetime
from typing import Optional


def validate_ph_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a Philippine mobile number to E.164 format.

    Accepts 09XXXXXXXXX, 9XXXXXXXXX, 639XXXXXXXXX and +639XXXXXXXXX,
    with any spacing or punctuation.

    Returns:
        Normalized phone number in E.164 format (+639XXXXXXXXX)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    # Remove all non-digit characters
    digits = re.sub(r"\D", "", phone)

    if digits.startswith("63") and len(digits) == 12:
        digits = digits[2:]
    elif digits.startswith("0") and len(digits) == 11:
        digits = digits[1:]

    # Mobile numbers are 10 digits starting with 9 once the prefix is gone
    if len(digits) != 10 or not digits.startswith("9"):
        raise ValueError("Phone number must be a valid Philippine mobile number (e.g. 09171234567)")

    return f"+63{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_time_hhmm(value: Optional[str]) -> Optional[str]:
    """Validate a HH:MM time of day and return it zero-padded"""
    if not value:
        return value

    try:
        parsed = datetime.strptime(value.strip()[:5], "%H:%M")
    except ValueError as e:
        raise ValueError("Time must be in HH:MM format") from e

    return parsed.strftime("%H:%M")


def time_to_minutes(value: str) -> int:
    """Convert HH:MM to minutes after midnight"""
    hours, minutes = value.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def minutes_to_time(total: int) -> str:
    """Convert minutes after midnight to HH:MM"""
    return f"{total // 60:02d}:{total % 60:02d}"


def format_peso(amount: float) -> str:
    """Format an amount as Philippine pesos, e.g. ₱1,500.00"""
    return f"₱{amount:,.2f}"


def format_display_date(value: date) -> str:
    """Long date used in notifications, e.g. Monday, March 4, 2024"""
    return f"{value.strftime('%A, %B')} {value.day}, {value.year}"
