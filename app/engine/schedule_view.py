import logging
from datetime import date
from typing import Optional

from app.config.settings import get_settings
from app.engine.conflicts import count_conflicted_users, detect_conflicts
from app.engine.lanes import allocate_lanes, peak_concurrency
from app.engine.timeline import build_timeline_window
from app.graph.conflict_graph import build_conflict_graph
from app.models.entities import Snapshot, active_assignments, user_assignments
from app.models.views import ScheduleView, UserRow

logger = logging.getLogger(__name__)


def build_schedule_view(snapshot: Snapshot, today: date, padding_days: Optional[int] = None) -> ScheduleView:
    """
    Build the Gantt view: shared date axis plus one row per user with work.

    The window is built once from every active assignment; lanes and
    conflicts are then computed per user against that window. Users are
    listed in snapshot order whether or not they are active.
    """
    if padding_days is None:
        padding_days = get_settings().timeline_padding_days

    dates = build_timeline_window(active_assignments(snapshot.projects), today, padding_days)

    rows = []
    for user in snapshot.users:
        assignments = user_assignments(snapshot.projects, user.id)
        if not assignments:
            continue
        rows.append(
            UserRow(
                user_id=user.id,
                name=user.name,
                is_active=user.is_active,
                layout=allocate_lanes(assignments),
                conflicts=detect_conflicts(assignments, dates),
                conflict_graph=build_conflict_graph(assignments),
                peak_load=peak_concurrency(assignments),
            )
        )

    conflict_count = count_conflicted_users([r.conflicts for r in rows])
    logger.info(f"Schedule view: {len(dates)} days, {len(rows)} user rows, {conflict_count} users in conflict")
    return ScheduleView(dates=dates, rows=rows, conflict_count=conflict_count)
