# journal/date_utils.py
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional, Tuple

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
HOURS_PER_DAY = 24


def default_lookback_hours(now: Optional[datetime] = None) -> int:
    """On Mondays look back to Friday, otherwise to yesterday."""
    now = now or datetime.now().astimezone()
    return 72 if now.weekday() == 0 else HOURS_PER_DAY


def hours_since_weekday(weekday: int, now: Optional[datetime] = None) -> int:
    """Hours back to the most recent past occurrence of weekday (Monday=0)."""
    now = now or datetime.now().astimezone()
    days_ago = now.weekday() - weekday
    if days_ago <= 0:
        days_ago += 7
    return days_ago * HOURS_PER_DAY


def resolve_lookback_hours(spec: str, now: Optional[datetime] = None) -> int:
    """Convert auto/yesterday/week/<weekday>/<N>[h] to a number of hours."""
    s = (spec or "auto").strip().lower()

    if s == "auto":
        return default_lookback_hours(now)
    if s == "yesterday":
        return HOURS_PER_DAY
    if s == "week":
        return 7 * HOURS_PER_DAY
    if s in WEEKDAYS:
        return hours_since_weekday(WEEKDAYS.index(s), now)

    digits = s[:-1] if s.endswith("h") else s
    try:
        hours = int(digits)
    except ValueError:
        raise ValueError(
            f"Invalid time range {spec!r}. Use auto, yesterday, week, a weekday name, or a number of hours"
        ) from None
    if hours <= 0:
        raise ValueError(f"Number of hours must be positive, got {hours}")
    return hours


def resolve_cutoff(spec: str, now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now().astimezone()
    return now - timedelta(hours=resolve_lookback_hours(spec, now))


def week_bounds(now: Optional[datetime] = None, week_offset: int = 0) -> Tuple[date, date]:
    """Monday and Sunday of the week week_offset weeks before now's week."""
    if week_offset < 0:
        raise ValueError(f"week_offset must be non-negative, got {week_offset}")
    now = now or datetime.now().astimezone()
    target = now.date() - timedelta(weeks=week_offset)
    start = target - timedelta(days=target.weekday())
    return start, start + timedelta(days=6)
