# utils/dates.py
from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from dateutil import parser as dtparse

__all__ = ["utcnow", "format_hindi_date", "to_calendar_date"]

# hi-IN long month names, as rendered by "19 अक्टूबर 2026"
HI_MONTHS = (
    "जनवरी", "फ़रवरी", "मार्च", "अप्रैल", "मई", "जून",
    "जुलाई", "अगस्त", "सितंबर", "अक्टूबर", "नवंबर", "दिसंबर",
)


def utcnow() -> datetime:
    """Naive UTC now; every DateTime column is stored as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_hindi_date(value: date | datetime) -> str:
    return f"{value.day} {HI_MONTHS[value.month - 1]} {value.year}"


def to_calendar_date(raw, tz_name: str) -> date:
    """
    Normalize user input to the calendar day it names.

    - ``date`` objects and bare ``YYYY-MM-DD`` strings are taken as-is.
    - Timestamps with an offset (``2026-10-18T20:30:00Z``) are converted to
      ``tz_name`` first, so the day is the archive's local day.
    - Naive timestamps are read as already local.

    Raises ValueError for anything dateutil cannot parse.
    """
    if isinstance(raw, datetime):
        dt = raw
    elif isinstance(raw, date):
        return raw
    else:
        s = str(raw or "").strip()
        if not s:
            raise ValueError("empty date")
        try:
            dt = dtparse.isoparse(s)
        except ValueError:
            dt = dtparse.parse(s)
    if dt.tzinfo is not None:
        dt = dt.astimezone(ZoneInfo(tz_name))
    return dt.date()
