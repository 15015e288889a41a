"""Time-zone resolution and the single instant -> local calendar date conversion.

All date bucketing in the engine goes through :func:`to_local_date`. Raw UTC
instants are never compared against calendar-date window boundaries.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta

import pandas as pd
import pytz

from .config import TIMEZONE

_OFFSET_RE = re.compile(r"^(?:UTC|GMT)?\s*([+-])(\d{1,2})(?::?(\d{2}))?$", re.IGNORECASE)


def resolve_timezone(name: str | None = None):
    """Return a pytz zone for an IANA name or a fixed offset.

    Accepted forms: ``"Asia/Bangkok"``, ``"UTC"``, ``"UTC+7"``, ``"+07:00"``,
    ``"GMT-03:30"``. ``None`` or an empty string resolves to the configured
    default zone. Unknown names raise ``pytz.UnknownTimeZoneError``.
    """
    text = (name or TIMEZONE).strip()
    match = _OFFSET_RE.match(text)
    if match:
        sign, hours, minutes = match.groups()
        total = int(hours) * 60 + int(minutes or 0)
        if total == 0:
            return pytz.UTC
        return pytz.FixedOffset(total if sign == "+" else -total)
    return pytz.timezone(text)


def normalize_timestamp(value, target_tz) -> pd.Timestamp | None:
    """Normalize a timestamp-like value into ``target_tz``.

    Naive inputs are taken as UTC (the source service's zone). Returns None
    when the input cannot be parsed.
    """
    if value is None or value == "":
        return None
    ts = pd.to_datetime(value, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    try:
        if getattr(ts, "tzinfo", None) is None:
            ts = ts.tz_localize(pytz.UTC)
        return ts.tz_convert(target_tz)
    except (TypeError, ValueError):
        return None


def to_local_date(value, target_tz) -> date | None:
    """Convert an instant to its calendar date in ``target_tz``."""
    ts = normalize_timestamp(value, target_tz)
    if ts is None:
        return None
    return ts.date()


def parse_date(value) -> date | None:
    """Parse a ``YYYY-MM-DD`` string (or date/datetime) into a date.

    Placeholder values such as ``""`` or ``"-"`` and anything unparseable
    return None instead of raising.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text or text == "-":
        return None
    ts = pd.to_datetime(text, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return ts.date()


def local_now(target_tz) -> datetime:
    return datetime.now(tz=target_tz)


def to_local_naive(value, target_tz) -> datetime | None:
    """Return wall-clock time in ``target_tz`` without tzinfo.

    Plain dates map to local midnight so they can be compared against plan
    dates, which are calendar dates in the same zone.
    """
    if value is None:
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, datetime) and value.tzinfo is None:
        return value
    ts = normalize_timestamp(value, target_tz)
    if ts is None:
        return None
    return ts.tz_localize(None).to_pydatetime()


def week_start(day: date) -> date:
    """Monday on or before ``day``."""
    return day - timedelta(days=day.weekday())
