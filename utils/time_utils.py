"""
utils/time_utils.py

Purpose: Time and expiry helpers

- Naive UTC timestamps (what Mongo hands back by default)
- Session expiry checks
- Due date formatting
"""

from datetime import datetime, timedelta
from typing import Optional

from utils.constants import DUE_DATE_FORMAT


def utcnow() -> datetime:
    """
    Current UTC time without tzinfo, comparable with stored timestamps.
    """
    return datetime.utcnow()


def calculate_session_expiry(created_at: datetime, timeout_minutes: int) -> datetime:
    """
    Calculates session expiry timestamp.
    """
    return created_at + timedelta(minutes=timeout_minutes)


def is_session_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """
    Checks if a session has expired. Sessions without expiry are treated as expired.
    """
    if not expires_at:
        return True
    return (now or utcnow()) >= expires_at


def format_due_date(dt: datetime) -> str:
    """
    Formats a due date the way it is shown to borrowers (dd/mm/YYYY).
    """
    return dt.strftime(DUE_DATE_FORMAT)


def format_timestamp(dt: Optional[datetime], format_str: str = "%Y-%m-%d %H:%M:%S") -> str:
    """
    Formats a datetime object to string.
    """
    if not dt:
        return "N/A"
    return dt.strftime(format_str)
