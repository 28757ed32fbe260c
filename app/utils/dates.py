import logging
import math
import re
from datetime import date, timedelta
from typing import Iterator, Optional, Union

logger = logging.getLogger(__name__)


def parse_day(value: Union[str, date, None]) -> Optional[date]:
    """Parse an ISO ``YYYY-MM-DD`` string; empty or malformed input yields None."""
    if value is None or isinstance(value, date):
        return value
    value = value.strip()
    if not value:
        return None
    # Drop a trailing time part only; anything else after the day is malformed
    day = re.split(r"[T ]", value, maxsplit=1)[0]
    if len(day) != 10:
        logger.warning(f"Ignoring unparsable date {value!r}")
        return None
    try:
        return date.fromisoformat(day)
    except ValueError:
        logger.warning(f"Ignoring unparsable date {value!r}")
        return None


def format_day(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def day_range(start: date, end: date) -> Iterator[date]:
    """Every calendar day from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def is_weekday(day: date) -> bool:
    return day.weekday() < 5


def working_days(start: Optional[date], end: Optional[date]) -> int:
    """Count Mon-Fri days in [start, end]. Missing bounds or start > end give 0."""
    if start is None or end is None or start > end:
        return 0
    return sum(1 for d in day_range(start, end) if is_weekday(d))


def weekday_overlap(start: date, end: date, window_start: date, window_end: date) -> int:
    """Mon-Fri days shared by [start, end] and [window_start, window_end]."""
    lo = max(start, window_start)
    hi = min(end, window_end)
    return working_days(lo, hi)


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; percentages are displayed half-up
    return int(math.floor(value + 0.5))
