"""
Date and time helpers.

All timestamps are stored as naive UTC. Business days (sale dates, expense
months, reservation dates) are plain calendar dates as entered at the
counter; filtering timestamps by such a day goes through day_window in the
configured BUSINESS_TIMEZONE.
"""
from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo
from zoneinfo import ZoneInfo

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into naive UTC.

    Naive input is taken as UTC; "Z" and explicit offsets are converted.
    None or blank gives None.
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        return dt
    return to_naive_utc(dt)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """'YYYY-MM-DD' (anything after the date part is ignored)."""
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    return date.fromisoformat(s[:10])


def to_naive_utc(dt: datetime) -> datetime:
    """Aware datetime -> naive UTC. Naive input is returned unchanged."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def day_window(day: date, tz_name: Optional[str] = None) -> tuple[datetime, datetime]:
    """
    [local midnight, next local midnight) of a business day, as naive UTC.

    tz_name is an IANA zone such as "Asia/Seoul"; None means the day is a
    UTC day.
    """
    zone = ZoneInfo(tz_name) if tz_name else timezone.utc
    start = datetime(day.year, day.month, day.day, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), datetime.min.time(), tzinfo=zone)
    return to_naive_utc(start), to_naive_utc(end)


def local_date(dt: datetime, tz_name: Optional[str] = None) -> date:
    """Business date of a naive-UTC timestamp in tz_name."""
    aware = dt.replace(tzinfo=timezone.utc)
    if tz_name:
        aware = aware.astimezone(ZoneInfo(tz_name))
    return aware.date()


def month_window(value: str) -> tuple[date, date]:
    """
    'YYYY-MM' -> (first day, first day of the next month).

    Raises ValueError on anything else.
    """
    match = _MONTH_RE.match((value or "").strip())
    if not match:
        raise ValueError(f"Invalid month: {value!r}")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {value!r}")
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Serialize as ISO-8601 with a trailing 'Z', to the second. Naive means UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def to_iso_date(d: Optional[date]) -> Optional[str]:
    return d.isoformat() if d is not None else None
