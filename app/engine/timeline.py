"""
Timeline window for the schedule view.

The window is the shared date axis every user row is drawn against. It is
padded on both sides and always contains ``today`` so the current day is
visible even when all work lies in the past or the future.
"""

import logging
from datetime import date, timedelta
from typing import Iterable, List

from app.models.entities import Assignment
from app.utils.dates import day_range

logger = logging.getLogger(__name__)

DEFAULT_PADDING_DAYS = 5


def build_timeline_window(
    assignments: Iterable[Assignment],
    today: date,
    padding_days: int = DEFAULT_PADDING_DAYS,
) -> List[date]:
    """
    Build the contiguous list of days covering all active assignments.

    Args:
        assignments: Active assignments; entries without both dates are ignored
        today: Current calendar day
        padding_days: Days added before the earliest and after the latest day

    Returns:
        Ordered list of consecutive dates, both ends inclusive

    Empty input yields ``[today - padding, today + padding]``.
    """
    pad = timedelta(days=padding_days)
    spans = [(a.start, a.end) for a in assignments if a.schedulable]
    if not spans:
        return list(day_range(today - pad, today + pad))

    first = min(min(s for s, _ in spans), today) - pad
    last = max(max(e for _, e in spans), today) + pad
    window = list(day_range(first, last))
    logger.debug(f"Timeline window {first} .. {last} ({len(window)} days) over {len(spans)} assignments")
    return window
