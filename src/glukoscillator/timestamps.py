"""Locale-tolerant timestamp resolution for CGM exports.

Exports write dates as YYYY-MM-DD, DD-MM-YYYY, MM-DD-YYYY or YY-MM-DD with
``-``, ``/`` or ``.`` separators depending on the region of the account.
Day and month are told apart by range; when both are <= 12 the day-first
(European) reading wins, matching what LibreView itself emits by default.
"""

import logging
import re
from datetime import datetime
from typing import Optional, Tuple

from dateutil import parser as date_parser
from dateutil import tz

logger = logging.getLogger(__name__)

TIMESTAMP_PATTERN = re.compile(
    r"(\d{1,4})[-/.](\d{1,4})[-/.](\d{1,4})\s+(\d{1,2}):(\d{2})(?::(\d{2}))?"
)

MONTHS_PER_YEAR = 12
TWO_DIGIT_YEAR_BASE = 2000

# Two fill-in defaults that differ in year, month and day
_FILL_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def resolve_date_parts(first: str, second: str, third: str) -> Tuple[int, int, int]:
    """Order three numeric date groups as (year, month, day).

    Args:
        first: Leading digit group as written
        second: Middle digit group
        third: Trailing digit group

    Returns:
        Tuple of (year, month, day) with month 1-based
    """
    if len(first) == 4:
        return int(first), int(second), int(third)

    if len(third) == 4:
        a, b = int(first), int(second)
        if a > MONTHS_PER_YEAR:
            return int(third), b, a
        if b > MONTHS_PER_YEAR:
            return int(third), a, b
        # Both could be a month: day-first
        return int(third), b, a

    return TWO_DIGIT_YEAR_BASE + int(first), int(second), int(third)


def resolve_timestamp(text: str) -> Optional[datetime]:
    """Resolve an export timestamp string to a naive local datetime.

    Resolution is to the minute; a seconds group is accepted but ignored.
    Strings that do not match the numeric pattern go through a best-effort
    generic parse whose acceptance set is whatever dateutil accepts.

    Args:
        text: Timestamp text from the export

    Returns:
        Naive datetime, or None if the text cannot be resolved
    """
    if not text:
        return None

    match = TIMESTAMP_PATTERN.search(text)
    if match:
        first, second, third, hour, minute, _seconds = match.groups()
        year, month, day = resolve_date_parts(first, second, third)
        try:
            return datetime(year, month, day, int(hour), int(minute))
        except ValueError:
            logger.debug(f"Impossible calendar date in timestamp {text!r}")
            return None

    return _parse_generic(text)


def _parse_generic(text: str) -> Optional[datetime]:
    """Fallback parse for formats outside the numeric pattern (ISO with T, month names).

    Strict ISO 8601 is tried first; dayfirst would otherwise swap its month and day.
    """
    try:
        parsed = date_parser.isoparse(text)
    except (ValueError, OverflowError):
        try:
            parsed = date_parser.parse(text, dayfirst=True, default=_FILL_DEFAULTS[0])
            refill = date_parser.parse(text, dayfirst=True, default=_FILL_DEFAULTS[1])
        except (ValueError, OverflowError):
            logger.debug(f"Unresolvable timestamp {text!r}")
            return None

        # a date part taken from the defaults differs between the two parses
        if parsed.date() != refill.date():
            logger.debug(f"Timestamp without a full date {text!r}")
            return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(tz.tzlocal()).replace(tzinfo=None)
    return parsed
