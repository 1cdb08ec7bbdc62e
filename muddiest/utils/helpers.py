from datetime import date, datetime, time, timezone
from typing import Any
from zoneinfo import ZoneInfo

def utcnow() -> datetime:
    """Naive UTC now. All stored instants are naive UTC so SQLite and Postgres compare alike."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def local_today(tz_name: str, now: datetime | None = None) -> date:
    """Calendar day of `now` (naive UTC) in the given zone."""
    now = now or utcnow()
    return now.replace(tzinfo=timezone.utc).astimezone(ZoneInfo(tz_name)).date()

def end_of_day(day: date, tz_name: str) -> datetime:
    """23:59:59.999999 local time on `day`, returned as naive UTC."""
    local = datetime.combine(day, time.max, tzinfo=ZoneInfo(tz_name))
    return local.astimezone(timezone.utc).replace(tzinfo=None)

def iso(value: datetime | date | None) -> str | None:
    return value.isoformat() if value else None

def safe_int(value: Any, default: int | None = None) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
