"""
Example: team capacity and schedule conflicts for a small office

Builds an in-memory snapshot and prints the weekly occupancy for the next
three weeks, then the users whose schedule has cross-project conflicts.
"""

from datetime import date

from app.engine.capacity import compute_capacity
from app.engine.schedule_view import build_schedule_view
from app.models.entities import Project, ProjectStatus, Snapshot, Subtask, User


today = date(2024, 1, 10)

users = [User("u1", "alice"), User("u2", "bruno"), User("u3", "carla", is_active=False)]
projects = [
    Project(
        id="p1", client_id="c1", code="ACME-001-24", name="Substation layout",
        status=ProjectStatus.IN_PROGRESS, assignee_id="u1",
        start_date=date(2024, 1, 1), end_date=date(2024, 1, 19),
        subtasks=(
            Subtask(id="s1", name="Site survey", status=ProjectStatus.IN_PROGRESS, assignee_id="u2",
                    start_date=date(2024, 1, 8), end_date=date(2024, 1, 11)),
        ),
    ),
    Project(
        id="p2", client_id="c2", code="GLOBEX-002-24", name="Pump station retrofit",
        status=ProjectStatus.QUEUED, assignee_id="u1",
        start_date=date(2024, 1, 15), end_date=date(2024, 1, 26),
    ),
]
snapshot = Snapshot(projects=projects, users=users)

for offset in range(3):
    report = compute_capacity(users, projects, offset, today)
    detail = ", ".join(f"{u.name} {u.percentage}%" for u in report.per_user)
    print(f"{report.week_range_label}: team {report.percentage}% ({detail})")

view = build_schedule_view(snapshot, today)
for row in view.rows:
    if row.conflicts.has_conflict:
        days = row.conflicts.conflict_dates
        print(f"{row.name}: {len(days)} conflicting days from {days[0]} to {days[-1]}")
