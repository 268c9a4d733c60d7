"""
Display formatting for stored viva results.
"""
import math
from datetime import datetime
from zoneinfo import ZoneInfo


def format_timestamp(ts: datetime, timezone: str) -> str:
    """Format like "19 Oct 2026, 03:45 pm" in the given timezone."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(ZoneInfo(timezone))
    return ts.strftime("%d %b %Y, %I:%M %p").replace("AM", "am").replace("PM", "pm")


def format_score(percentage: float) -> str:
    """Score out of 100, rounded half up."""
    return f"{math.floor(percentage + 0.5)}/100"
