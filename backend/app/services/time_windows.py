"""
Local-time day and week boundaries expressed as UTC instants.

Offsets follow the browser convention (Date.prototype.getTimezoneOffset):
minutes to add to local time to get UTC, so UTC+2 is -120. Local time is
derived as ``utc - offset``; a local boundary goes back to UTC as
``local + offset``. Weeks are ISO weeks starting on Monday.
"""

from datetime import datetime, timedelta, timezone

from app.db.base import utcnow


def _now(now: datetime | None) -> datetime:
    if now is None:
        return utcnow()
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def local_now(timezone_offset_minutes: int, now: datetime | None = None) -> datetime:
    """Wall-clock time of the user, carried on a UTC-tagged datetime."""
    return _now(now) - timedelta(minutes=timezone_offset_minutes)


def start_of_today_utc(timezone_offset_minutes: int, now: datetime | None = None) -> datetime:
    local = local_now(timezone_offset_minutes, now)
    local_midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return local_midnight + timedelta(minutes=timezone_offset_minutes)


def start_of_yesterday_utc(timezone_offset_minutes: int, now: datetime | None = None) -> datetime:
    return start_of_today_utc(timezone_offset_minutes, now) - timedelta(days=1)


def start_of_current_week_utc(timezone_offset_minutes: int, now: datetime | None = None) -> datetime:
    local = local_now(timezone_offset_minutes, now)
    local_monday = (local - timedelta(days=local.weekday())).replace(hour=0, minute=0, second=0, microsecond=0)
    return local_monday + timedelta(minutes=timezone_offset_minutes)


def start_of_previous_week_utc(timezone_offset_minutes: int, now: datetime | None = None) -> datetime:
    return start_of_current_week_utc(timezone_offset_minutes, now) - timedelta(days=7)


def days_before_utc(timezone_offset_minutes: int, days: int, now: datetime | None = None) -> datetime:
    """Local midnight ``days`` days before today, as a UTC instant."""
    return start_of_today_utc(timezone_offset_minutes, now) - timedelta(days=days)
