"""Date and year parsing for tag values.

Tag values come in many shapes (``1968``, ``1968-06``, ``1968-06-01``,
``1968-06-01T12:00:00``, ``1968/06/01``, ``06/01/1968``, ``June 1, 1968``).
Every parser here returns ``None`` instead of raising so the resolver can move
on to the next source.
"""

from __future__ import annotations

import re
from datetime import date, datetime

MIN_YEAR_EXCLUSIVE = 1800
FUTURE_YEAR_MARGIN = 5

# YYYY-MM[-DD] with -, / or . separators, optionally followed by a time part
_FULL_DATE_RE = re.compile(r"^(\d{4})[-/.](\d{1,2})(?:[-/.](\d{1,2}))?(?:[T ].*)?$")

# Month-first and written-out forms, tried when the ISO-like pattern fails
_FALLBACK_DATE_FORMATS = (
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%B %Y",
    "%b %Y",
)


def max_valid_year() -> int:
    """Latest year still accepted as an original release year."""
    return date.today().year + FUTURE_YEAR_MARGIN


def is_valid_year(year: int) -> bool:
    """Check ``1800 < year <= current year + 5``."""
    return MIN_YEAR_EXCLUSIVE < year <= max_valid_year()


def parse_full_date(text: str | None) -> date | None:
    """
    Parse a calendar date.

    Accepts ISO-like dates (``YYYY-MM[-DD]``) plus month-first
    (``06/01/1968``) and written-out (``June 1, 1968``) forms. A bare year is
    not a full date; a missing day defaults to the 1st.

    Args:
        text: Raw tag value

    Returns:
        Parsed date, or None if the text is not a recognisable date
    """
    if not text:
        return None
    stripped = text.strip()
    match = _FULL_DATE_RE.match(stripped)
    if match:
        year, month, day = match.groups()
        try:
            return date(int(year), int(month), int(day) if day else 1)
        except ValueError:
            return None

    for fmt in _FALLBACK_DATE_FORMATS:
        try:
            return datetime.strptime(stripped, fmt).date()
        except ValueError:
            continue
    return None


def parse_year(text: str | None) -> int | None:
    """Parse a whole value as a year within the validity bound."""
    if not text:
        return None
    stripped = text.strip()
    if not (stripped.isascii() and stripped.isdigit()):
        return None
    year = int(stripped)
    return year if is_valid_year(year) else None


def parse_leading_year(text: str | None) -> int | None:
    """Parse the first four characters as a year within the validity bound."""
    if not text:
        return None
    return parse_year(text.strip()[:4])


def year_to_date(year: int) -> date:
    return date(year, 1, 1)


def parse_date_or_year(text: str | None) -> date | None:
    """
    Two-stage parse: full date first, then the leading four characters as a year.

    Returns:
        The full date, January 1st of the leading year, or None
    """
    parsed = parse_full_date(text)
    if parsed is not None:
        return parsed
    year = parse_leading_year(text)
    return year_to_date(year) if year is not None else None
