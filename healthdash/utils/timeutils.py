"""
Date/time helpers. Everything stored is naive UTC.
"""
import math
from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    return utcnow().date()


def week_start(day: date) -> date:
    """Sunday on or before the given day"""
    # date.weekday(): Monday=0 .. Sunday=6
    return day - timedelta(days=(day.weekday() + 1) % 7)


def isoformat(value: Optional[object]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat() + "Z"
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 string into naive UTC; None passes through"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def time_ago(created_at: datetime, now: Optional[datetime] = None) -> str:
    """Coarse 'time ago' label used by notifications"""
    now = now or utcnow()
    seconds = abs((now - created_at).total_seconds())
    diff_days = max(1, math.ceil(seconds / 86400))

    if diff_days == 1:
        return "Today"
    if diff_days == 2:
        return "Yesterday"
    if diff_days <= 7:
        return f"{diff_days - 1} days ago"
    if diff_days <= 30:
        return f"{math.ceil(diff_days / 7)} weeks ago"
    return f"{math.ceil(diff_days / 30)} months ago"
