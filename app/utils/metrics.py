from collections import Counter, defaultdict
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from app.config.settings import get_settings
from app.engine.capacity import compute_capacity
from app.engine.schedule_view import build_schedule_view
from app.models.entities import ACTIVE_STATUSES, Project, ProjectStatus, Snapshot
from app.models.views import DashboardReport
from app.utils.dates import round_half_up

UNASSIGNED = "Unassigned"
UNKNOWN_CLIENT = "Unknown client"
TOP_CLIENTS = 10
UPCOMING_DAYS = 7


def is_open(project: Project) -> bool:
    return project.status not in (ProjectStatus.DONE, ProjectStatus.CANCELED)


def is_overdue(project: Project, today: date) -> bool:
    # Delivery due today already counts as overdue
    return is_open(project) and project.end_date is not None and project.end_date <= today


def is_upcoming(project: Project, today: date, days: int = UPCOMING_DAYS) -> bool:
    return (
        is_open(project)
        and project.end_date is not None
        and today < project.end_date <= today + timedelta(days=days)
    )


def health_score(active_count: int, overdue_count: int) -> int:
    if active_count == 0:
        return 100
    return max(0, min(100, round_half_up((1 - overdue_count / active_count) * 100)))


def _ranked(counts: Counter, limit: Optional[int] = None) -> List[Tuple[str, int]]:
    # Counter.most_common keeps first-seen order for ties
    return counts.most_common(limit)


def user_performance(projects: List[Project], names: Dict[str, str]) -> List[Tuple[str, int]]:
    """Completed projects per assignee, most first."""
    counts = Counter(
        names.get(p.assignee_id, UNASSIGNED)
        for p in projects
        if p.status == ProjectStatus.DONE and p.assignee_id
    )
    return _ranked(counts)


def top_clients(projects: List[Project], names: Dict[str, str], limit: int = TOP_CLIENTS) -> List[Tuple[str, int]]:
    counts = Counter(names.get(p.client_id, UNKNOWN_CLIENT) for p in projects)
    return _ranked(counts, limit)


def status_matrix(projects: List[Project], names: Dict[str, str]) -> Dict[str, Dict[str, int]]:
    """Active projects per assignee, broken down by status."""
    matrix: Dict[str, Dict[str, int]] = defaultdict(lambda: {s.value: 0 for s in ProjectStatus if s in ACTIVE_STATUSES})
    for p in projects:
        if p.status.is_active and p.assignee_id:
            matrix[names.get(p.assignee_id, UNASSIGNED)][p.status.value] += 1
    return dict(matrix)


def avg_execution_days(projects: List[Project]) -> int:
    completed = [
        p for p in projects
        if p.status == ProjectStatus.DONE and p.start_date and p.end_date
    ]
    if not completed:
        return 0
    total = sum((p.end_date - p.start_date).days for p in completed)
    return round_half_up(total / len(completed))


def compute_dashboard(
    snapshot: Snapshot,
    today: date,
    week_offset: int = 0,
    max_week_offset: Optional[int] = None,
) -> DashboardReport:
    if max_week_offset is None:
        max_week_offset = get_settings().max_week_offset
    projects = snapshot.projects
    user_names = {u.id: u.name for u in snapshot.users}
    client_names = {c.id: c.name for c in snapshot.clients}

    active = [p for p in projects if p.status.is_active]
    overdue = [p for p in projects if is_overdue(p, today)]

    return DashboardReport(
        health=health_score(len(active), len(overdue)),
        active_count=len(active),
        overdue_count=len(overdue),
        upcoming=[p for p in projects if is_upcoming(p, today)],
        user_performance=user_performance(projects, user_names),
        top_clients=top_clients(projects, client_names),
        status_matrix=status_matrix(projects, user_names),
        avg_execution_days=avg_execution_days(projects),
        conflict_count=build_schedule_view(snapshot, today).conflict_count,
        capacity=compute_capacity(snapshot.users, projects, week_offset, today, max_week_offset),
    )
