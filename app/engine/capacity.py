"""
Weekly team capacity.

Measures how many working days (Mon-Fri) each active user is booked in a
selected week, against a 5-day baseline. Overlapping commitments stack, so a
user can exceed 100%.
"""

import logging
from datetime import date, timedelta
from typing import Iterable, List, Tuple

from app.models.entities import Project, User, iter_assignments
from app.models.views import CapacityReport, UserCapacity
from app.utils.dates import round_half_up, weekday_overlap

logger = logging.getLogger(__name__)

WORK_DAYS_PER_WEEK = 5
MAX_WEEK_OFFSET = 4


def week_anchor(today: date) -> date:
    """Monday that starts week 0: this week's Monday, or next Monday on weekends."""
    weekday = today.weekday()
    if weekday == 5:
        return today + timedelta(days=2)
    if weekday == 6:
        return today + timedelta(days=1)
    return today - timedelta(days=weekday)


def clamp_week_offset(week_offset: int, max_offset: int = MAX_WEEK_OFFSET) -> int:
    clamped = max(0, min(max_offset, week_offset))
    if clamped != week_offset:
        logger.warning(f"Week offset {week_offset} outside [0, {max_offset}], using {clamped}")
    return clamped


def week_window(today: date, week_offset: int = 0) -> Tuple[date, date]:
    """Monday and Friday of the selected week, both inclusive."""
    monday = week_anchor(today) + timedelta(weeks=week_offset)
    return monday, monday + timedelta(days=WORK_DAYS_PER_WEEK - 1)


def week_range_label(start: date, end: date) -> str:
    return f"{start:%d/%m} - {end:%d/%m}"


def occupancy_percentage(occupied_days: int, available_days: int) -> int:
    if available_days <= 0:
        return 0
    return round_half_up(occupied_days / available_days * 100)


def compute_capacity(
    users: Iterable[User],
    projects: List[Project],
    week_offset: int,
    today: date,
    max_offset: int = MAX_WEEK_OFFSET,
) -> CapacityReport:
    """
    Compute per-user and team occupancy for one week.

    Args:
        users: All users; only active ones are counted
        projects: Projects with their subtasks
        week_offset: Weeks after the current week, clamped to [0, max_offset]
        today: Current calendar day

    Returns:
        CapacityReport. With no active users the percentage is 0 and
        ``per_user`` is empty.
    """
    offset = clamp_week_offset(week_offset, max_offset)
    start, end = week_window(today, offset)
    label = week_range_label(start, end)

    active_users = [u for u in users if u.is_active]
    if not active_users:
        return CapacityReport(
            percentage=0,
            occupied_days=0,
            total_available_days=0,
            per_user=[],
            week_start=start,
            week_end=end,
            week_range_label=label,
        )

    per_user: List[UserCapacity] = []
    total = 0
    for user in active_users:
        # Open subtasks count even when the parent project is closed
        assignments = iter_assignments(projects, assignee_id=user.id, require_active_parent=False)
        days = 0
        booked = 0
        for a in assignments:
            overlap = weekday_overlap(a.start, a.end, start, end)
            if overlap:
                days += overlap
                booked += 1
        total += days
        per_user.append(
            UserCapacity(
                user_id=user.id,
                name=user.name,
                occupied_days=days,
                percentage=occupancy_percentage(days, WORK_DAYS_PER_WEEK),
                assignment_count=booked,
            )
        )

    available = len(active_users) * WORK_DAYS_PER_WEEK
    report = CapacityReport(
        percentage=occupancy_percentage(total, available),
        occupied_days=total,
        total_available_days=available,
        per_user=per_user,
        week_start=start,
        week_end=end,
        week_range_label=label,
    )
    logger.debug(f"Capacity {label}: {total}/{available} days ({report.percentage}%)")
    return report
