"""Reporting-timezone helpers: which calendar day a timestamp belongs to."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from backend.config import settings
from backend.database import utcnow


@lru_cache(maxsize=8)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def reporting_tz() -> ZoneInfo:
    return _zone(settings.REPORTING_TIMEZONE)


def normalize(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime.

    Naive input is read as wall-clock time in the reporting timezone.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=reporting_tz())
    return value.astimezone(timezone.utc)


def resolve_now(now: Optional[datetime]) -> datetime:
    return normalize(now) if now is not None else utcnow()


def local_date(value: datetime) -> date:
    """Calendar day of *value* in the reporting timezone."""
    return normalize(value).astimezone(reporting_tz()).date()


def expiry_threshold() -> timedelta:
    return timedelta(minutes=settings.ATTENDANCE_AUTO_EXPIRY_MINUTES)


def warning_window() -> timedelta:
    return timedelta(minutes=settings.ATTENDANCE_AUTO_EXPIRY_WARNING_MINUTES)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of a month."""
    first = date(year, month, 1)
    if month == 12:
        nxt = date(year + 1, 1, 1)
    else:
        nxt = date(year, month + 1, 1)
    return first, nxt - timedelta(days=1)
