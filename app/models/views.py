from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Set, Tuple

from app.models.entities import Assignment, Project


@dataclass(frozen=True)
class LanePlacement:
    assignment: Assignment
    lane: int


@dataclass(frozen=True)
class LaneLayout:
    placements: List[LanePlacement] = field(default_factory=list)
    lane_count: int = 0


@dataclass(frozen=True)
class ConflictReport:
    per_date: Dict[date, bool] = field(default_factory=dict)
    has_conflict: bool = False

    @property
    def conflict_dates(self) -> List[date]:
        return [d for d, flagged in self.per_date.items() if flagged]


@dataclass(frozen=True)
class UserCapacity:
    user_id: str
    name: str
    occupied_days: int
    percentage: int
    assignment_count: int


@dataclass(frozen=True)
class CapacityReport:
    percentage: int
    occupied_days: int
    total_available_days: int
    per_user: List[UserCapacity]
    week_start: date
    week_end: date
    week_range_label: str


@dataclass(frozen=True)
class UserRow:
    user_id: str
    name: str
    is_active: bool
    layout: LaneLayout
    conflicts: ConflictReport
    conflict_graph: Dict[str, Set[str]]
    peak_load: int


@dataclass(frozen=True)
class ScheduleView:
    dates: List[date]
    rows: List[UserRow]
    conflict_count: int


@dataclass(frozen=True)
class DashboardReport:
    health: int
    active_count: int
    overdue_count: int
    upcoming: List[Project]
    user_performance: List[Tuple[str, int]]
    top_clients: List[Tuple[str, int]]
    status_matrix: Dict[str, Dict[str, int]]
    avg_execution_days: int
    conflict_count: int
    capacity: CapacityReport
