from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" is midnight UTC of that day
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        return dt

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Strict YYYY-MM-DD parsing. None / "" -> None; anything else malformed raises ValueError."""
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    if not _ISO_DATE_RE.match(s):
        raise ValueError("date must be in YYYY-MM-DD format")
    return date.fromisoformat(s)


def parse_checkout_date(value: Optional[str]) -> date:
    """
    Checkout forms send MM/DD/YYYY (US locale) or MM-DD-YYYY; API clients may send YYYY-MM-DD.
    Missing -> today (UTC).
    """
    if value is None or not str(value).strip():
        return utcnow().date()
    s = str(value).strip()
    if _ISO_DATE_RE.match(s):
        return date.fromisoformat(s)
    for fmt in ("%m/%d/%Y", "%m-%d-%Y"):
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    raise ValueError("checkout_date must be MM/DD/YYYY, MM-DD-YYYY or YYYY-MM-DD")


def to_iso_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def day_bounds(start: Optional[date], end: Optional[date]) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Inclusive calendar-day range -> half-open datetime range [start 00:00, end+1 00:00).
    """
    start_dt = datetime.combine(start, time.min) if start else None
    end_dt = datetime.combine(end + timedelta(days=1), time.min) if end else None
    return start_dt, end_dt


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """[first day 00:00, first day of next month 00:00)"""
    if month < 1 or month > 12:
        raise ValueError("month must be between 1 and 12")
    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return start, end


def parse_clock_time(value: Optional[str]) -> Optional[time]:
    """Parse "HH:MM" or "HH:MM:SS" wall-clock times."""
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    m = _CLOCK_RE.match(s)
    if not m:
        raise ValueError("time must be in HH:MM format")
    hour, minute, second = int(m.group(1)), int(m.group(2)), int(m.group(3) or 0)
    if hour > 23 or minute > 59 or second > 59:
        raise ValueError("time must be in HH:MM format")
    return time(hour, minute, second)


def format_clock_time(value: Optional[time]) -> Optional[str]:
    return value.strftime("%H:%M") if value is not None else None


def hours_between(start: time, end: time) -> float:
    """
    Hours from start to end, rounded to 2 decimals.

    An end earlier than the start means the session crossed midnight.
    """
    anchor = date(1970, 1, 1)
    start_dt = datetime.combine(anchor, start)
    end_dt = datetime.combine(anchor, end)
    if end_dt < start_dt:
        end_dt += timedelta(days=1)
    return round((end_dt - start_dt).total_seconds() / 3600.0, 2)
