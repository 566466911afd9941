"""Shared validation utilities"""

import re
from datetime import date, datetime
from typing import Optional

TIME_24H_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def validate_us_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize US phone number to E.164 format.

    Args:
        phone: Phone number string in various formats

    Returns:
        Normalized phone number in E.164 format (+1XXXXXXXXXX)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    # Remove all non-digit characters
    digits = re.sub(r"\D", "", phone)

    # Handle +1 prefix
    if digits.startswith("1") and len(digits) == 11:
        digits = digits[1:]

    # US phone numbers should have 10 digits
    if len(digits) != 10:
        raise ValueError("Phone number must be 10 digits for US numbers")

    return f"+1{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

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


def validate_date_string(value) -> str:
    """
    Normalize a calendar date to YYYY-MM-DD.

    Accepts date/datetime objects, plain YYYY-MM-DD strings and full ISO
    timestamps (the date part is kept).

    Raises:
        ValueError: If the value is not a valid date
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str) or len(value) < 10:
        raise ValueError("Date must be in YYYY-MM-DD format")

    try:
        return date.fromisoformat(value.strip()[:10]).isoformat()
    except ValueError:
        raise ValueError("Date must be in YYYY-MM-DD format") from None


def validate_time_string(value: str) -> str:
    """
    Validate a zero-padded 24-hour HH:MM time.

    Raises:
        ValueError: If the value is not HH:MM
    """
    if not isinstance(value, str) or not TIME_24H_PATTERN.match(value.strip()):
        raise ValueError("Time must be in 24-hour HH:MM format")
    return value.strip()
