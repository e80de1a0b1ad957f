"""
Input Validation Utilities

This module provides validation and sanitization helpers for user input:
1. sanitize_string: Trim text and strip HTML-like tags
2. is_valid_email / is_valid_phone / is_valid_zip_code: Shape checks
3. is_positive_number / is_positive_integer: Numeric checks for JSON values

Route handlers run every free-text field through sanitize_string before
storing it, and use the shape checks to build user-facing 400 messages.
"""

import math
import re

from email_validator import EmailNotValidError, validate_email


# Anything between angle brackets is treated as a tag and removed
TAG_PATTERN = re.compile(r"<[^>]*>")

# Digits plus the usual phone punctuation, 7 to 20 characters
PHONE_PATTERN = re.compile(r"[\d\s\-+()]{7,20}")

# Mexican postal codes are 5 digits; 4-6 is accepted
ZIP_PATTERN = re.compile(r"\d{4,6}")


def sanitize_string(value) -> str:
    """
    Trim a string and strip HTML-like tags.

    Non-string input (None, numbers, lists from a malformed JSON body)
    becomes an empty string, so callers can test the result for truthiness.

    Examples:
        >>> sanitize_string("  <b>Nueces</b> ")
        'Nueces'
        >>> sanitize_string(None)
        ''
    """
    if not isinstance(value, str):
        return ""
    return TAG_PATTERN.sub("", value.strip())


def is_valid_email(email) -> bool:
    """
    Syntax check only; no DNS lookup is made for the domain.
    """
    if not isinstance(email, str):
        return False
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_valid_phone(phone) -> bool:
    return isinstance(phone, str) and bool(PHONE_PATTERN.fullmatch(phone))


def is_valid_zip_code(zip_code) -> bool:
    return isinstance(zip_code, str) and bool(ZIP_PATTERN.fullmatch(zip_code))


def is_positive_number(value) -> bool:
    """
    True for a finite int or float greater than zero.

    Booleans are rejected even though bool subclasses int in Python,
    since a JSON `true` is never a valid price.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return value > 0 and math.isfinite(value)


def parse_id(value) -> int | None:
    """
    Parse a path or body identifier ("12", 12, 12.0) into an int.

    Returns:
        The integer, or None when the value is not a whole number
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def is_positive_integer(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return value.is_integer() and value > 0
    return isinstance(value, int) and value > 0
