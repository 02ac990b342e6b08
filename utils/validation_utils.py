"""
utils/validation_utils.py

Purpose: Input validation

- Email format check
- Publication year range
- Input sanitization
"""

import re
from typing import Optional
from datetime import datetime

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_email(email: str) -> bool:
    """
    Validates an email address loosely (one @, a dot in the domain, no spaces).

    Args:
        email: Email string to validate

    Returns:
        True if valid, False otherwise
    """
    if not email:
        return False
    return bool(EMAIL_PATTERN.match(email.strip()))


def normalize_email(email: str) -> str:
    """
    Emails are matched case-insensitively.
    """
    return email.strip().lower()


def sanitize_input(text: Optional[str], max_length: int = 1000) -> str:
    """
    Sanitizes user input before it is stored.

    Args:
        text: Input text
        max_length: Maximum allowed length

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    # Trim to max length
    text = text[:max_length]

    # Remove markup characters
    text = re.sub(r"[<>{}\[\]]", "", text)

    # Normalize whitespace
    text = " ".join(text.split())

    return text.strip()


def is_valid_year(year: Optional[int]) -> bool:
    """
    Validates a publication year: not in the future, not before printing.

    Args:
        year: Year (e.g., 1943)

    Returns:
        True if plausible
    """
    try:
        year_int = int(year)
        return 1400 <= year_int <= datetime.now().year + 1
    except (ValueError, TypeError):
        return False
