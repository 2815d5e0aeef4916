"""Human-readable date and time formats used in tool replies and indexed documents."""

from datetime import datetime


def format_clock_time(value: datetime) -> str:
    """9:30 AM"""
    return f"{value.strftime('%I').lstrip('0')}:{value.strftime('%M %p')}"


def format_event_datetime(value: datetime) -> str:
    """Mar 4, 2025 at 9:30 AM"""
    return f"{value.strftime('%b')} {value.day}, {value.year} at {format_clock_time(value)}"


def format_event_day(value: datetime) -> str:
    """Tuesday, Mar 4 at 9:30 AM"""
    return f"{value.strftime('%A, %b')} {value.day} at {format_clock_time(value)}"


def truncate_with_ellipsis(text: str, max_chars: int) -> str:
    """Cut text to ``max_chars`` and append "..." when it is longer."""
    return text if len(text) <= max_chars else text[:max_chars] + "..."
