"""
Cross-project conflict detection.

A user is in conflict on a day when work from two or more different root
projects covers that day. Overlapping subtasks of one project are normal
workload and are never flagged.
"""

import logging
from datetime import date
from typing import Dict, Iterable, List, Set

from app.models.entities import Assignment
from app.models.views import ConflictReport

logger = logging.getLogger(__name__)


def roots_by_day(assignments: Iterable[Assignment], dates: Iterable[date]) -> Dict[date, Set[str]]:
    """Distinct root project ids covering each day."""
    spans = [a for a in assignments if a.schedulable]
    return {d: {a.root_id for a in spans if a.start <= d <= a.end} for d in dates}


def detect_conflicts(assignments: Iterable[Assignment], dates: Iterable[date]) -> ConflictReport:
    """
    Flag every day on which two or more distinct root projects overlap.

    Args:
        assignments: One user's assignments
        dates: Timeline window to evaluate

    Returns:
        ConflictReport with a flag per date and an overall ``has_conflict``
    """
    per_date = {d: len(roots) >= 2 for d, roots in roots_by_day(assignments, dates).items()}
    has_conflict = any(per_date.values())
    if has_conflict:
        logger.debug(f"{sum(per_date.values())} conflicting days found")
    return ConflictReport(per_date=per_date, has_conflict=has_conflict)


def count_conflicted_users(reports: List[ConflictReport]) -> int:
    """System-wide conflict count: users with at least one flagged day."""
    return sum(1 for r in reports if r.has_conflict)
