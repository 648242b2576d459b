"""
Claim-day arithmetic in the reference timezone.

A claim day starts at `bonus_day_boundary_hour` local time and lasts 24h, so with the
default 20h Brasília boundary a claim at 19:59 and one at 20:01 fall on different days.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from app.core.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Naive datetimes come back from SQLite; they are stored as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _zone(tz_name: str | None) -> ZoneInfo:
    return ZoneInfo(tz_name or settings.bonus_timezone)


def _boundary(boundary_hour: int | None) -> int:
    return settings.bonus_day_boundary_hour if boundary_hour is None else boundary_hour


def bonus_day(
    moment: datetime,
    tz_name: str | None = None,
    boundary_hour: int | None = None,
) -> date:
    """Claim day that `moment` belongs to."""
    local = as_utc(moment).astimezone(_zone(tz_name))
    return (local - timedelta(hours=_boundary(boundary_hour))).date()


def day_bounds(
    moment: datetime,
    tz_name: str | None = None,
    boundary_hour: int | None = None,
) -> tuple[datetime, datetime]:
    """(start, end) of the claim day containing `moment`, both in UTC."""
    zone = _zone(tz_name)
    hour = _boundary(boundary_hour)
    day = bonus_day(moment, tz_name, hour)
    start = datetime.combine(day, time(hour=hour), tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time(hour=hour), tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def next_boundary(
    moment: datetime,
    tz_name: str | None = None,
    boundary_hour: int | None = None,
) -> datetime:
    """Next claim-day rollover strictly after `moment`, in UTC."""
    return day_bounds(moment, tz_name, boundary_hour)[1]
