"""Age and date-interval helpers used by the candidate filters."""

from __future__ import annotations

import datetime
from typing import Optional

from dateutil import parser as dateparser

_MAX_AGE = 150

# Fills fields missing from a loosely written date, so "1990" is 1990-01-01.
_PARSE_DEFAULT = datetime.datetime(1970, 1, 1)


def _parse_datetime(value: object) -> Optional[datetime.datetime]:
    """Parse a date or datetime string. Naive values are taken as UTC.

    ISO 8601 is tried first; other common layouts such as ``01/15/1990`` or
    ``Jan 15 1990`` (month first) go through dateutil.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = dateparser.parse(text, default=_PARSE_DEFAULT)
        except (ValueError, OverflowError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def parse_epoch_ms(value: object) -> Optional[int]:
    """Convert a date string to epoch milliseconds, None if unparseable."""
    parsed = _parse_datetime(value)
    if parsed is None:
        return None
    return int(parsed.timestamp() * 1000)


def age(dob: object, today: Optional[datetime.date] = None) -> Optional[int]:
    """Whole years between ``dob`` and ``today``.

    Returns None for missing or unparseable dates, birth dates in the future,
    and ages above 150. Callers treat None as "skip this check".
    """
    parsed = _parse_datetime(dob)
    if parsed is None:
        return None
    born = parsed.date()
    today = today or datetime.date.today()

    years = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        years -= 1

    if years < 0 or years > _MAX_AGE:
        return None
    return years


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Inclusive interval overlap; intervals touching at one point overlap."""
    return a_start <= b_end and a_end >= b_start
