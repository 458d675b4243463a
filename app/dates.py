"""Lenient calendar date parsing for loosely structured markdown text."""

from __future__ import annotations

from datetime import date, datetime

WRITTEN_DATE_FORMATS = (
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
)


def parse_date(value: str | None) -> date | None:
    """Parse a date string, returning None when it is not a calendar date."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass

    for date_format in WRITTEN_DATE_FORMATS:
        try:
            return datetime.strptime(text, date_format).date()
        except ValueError:
            continue
    return None
