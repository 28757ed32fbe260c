from datetime import date
from typing import Annotated, Dict, List, Optional
import logging

from fastapi import APIRouter, HTTPException, Depends, Query
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.orm import Session

from app.config.settings import get_settings
from app.engine.capacity import compute_capacity
from app.engine.schedule_view import build_schedule_view
from app.engine.timeline import build_timeline_window
from app.models.entities import Client, Project, ProjectStatus, Snapshot, Subtask, User, active_assignments
from app.models.views import CapacityReport, ScheduleView
from app.storage.cache import ViewCache, get_cache
from app.storage.database import get_db
from app.storage.repositories import ProjectRepository, load_snapshot, save_snapshot
from app.utils.dates import working_days
from app.utils.metrics import compute_dashboard

router = APIRouter()
settings = get_settings()
logger = logging.getLogger(__name__)


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class SubtaskDTO(BaseModel):
    id: str
    name: str
    status: ProjectStatus = ProjectStatus.QUEUED
    assignee_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("assignee_id", "start_date", "end_date", mode="before")
    @classmethod
    def blank_is_missing(cls, v):
        """Empty form fields mean 'not set'."""
        return _blank_to_none(v)

    @model_validator(mode="after")
    def validate_range(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError(f"{self.id}: end_date must not be before start_date")
        return self

    def to_domain(self) -> Subtask:
        return Subtask(
            id=self.id,
            name=self.name,
            status=self.status,
            assignee_id=self.assignee_id,
            start_date=self.start_date,
            end_date=self.end_date,
        )

    @classmethod
    def from_domain(cls, s: Subtask) -> "SubtaskDTO":
        return cls(
            id=s.id, name=s.name, status=s.status, assignee_id=s.assignee_id,
            start_date=s.start_date, end_date=s.end_date,
        )


class ProjectDTO(BaseModel):
    id: str
    client_id: str
    code: str
    name: str
    status: ProjectStatus = ProjectStatus.QUEUED
    assignee_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = Field(None, description="Delivery date")
    subtasks: List[SubtaskDTO] = Field(default_factory=list)

    @field_validator("assignee_id", "start_date", "end_date", mode="before")
    @classmethod
    def blank_is_missing(cls, v):
        return _blank_to_none(v)

    @field_validator("subtasks", mode="before")
    @classmethod
    def null_subtasks(cls, v):
        return [] if v is None else v

    @model_validator(mode="after")
    def validate_range(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError(f"{self.id}: end_date must not be before start_date")
        return self

    def to_domain(self) -> Project:
        return Project(
            id=self.id,
            client_id=self.client_id,
            code=self.code,
            name=self.name,
            status=self.status,
            assignee_id=self.assignee_id,
            start_date=self.start_date,
            end_date=self.end_date,
            subtasks=tuple(s.to_domain() for s in self.subtasks),
        )

    @classmethod
    def from_domain(cls, p: Project) -> "ProjectDTO":
        return cls(
            id=p.id, client_id=p.client_id, code=p.code, name=p.name, status=p.status,
            assignee_id=p.assignee_id, start_date=p.start_date, end_date=p.end_date,
            subtasks=[SubtaskDTO.from_domain(s) for s in p.subtasks],
        )


class UserDTO(BaseModel):
    id: str
    name: str
    is_active: bool = True

    def to_domain(self) -> User:
        return User(id=self.id, name=self.name, is_active=self.is_active)


class ClientDTO(BaseModel):
    id: str
    code: str
    name: str

    def to_domain(self) -> Client:
        return Client(id=self.id, code=self.code, name=self.name)


class SnapshotDTO(BaseModel):
    projects: List[ProjectDTO] = Field(default_factory=list)
    users: List[UserDTO] = Field(default_factory=list)
    clients: List[ClientDTO] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_ids(self):
        """Reject duplicate ids; subtask ids share the project namespace."""
        groups = {
            "project/subtask": [p.id for p in self.projects] + [s.id for p in self.projects for s in p.subtasks],
            "user": [u.id for u in self.users],
            "client": [c.id for c in self.clients],
        }
        for kind, ids in groups.items():
            if len(ids) != len(set(ids)):
                raise ValueError(f"duplicate {kind} ids in snapshot")
        return self

    def to_domain(self) -> Snapshot:
        return Snapshot(
            projects=[p.to_domain() for p in self.projects],
            users=[u.to_domain() for u in self.users],
            clients=[c.to_domain() for c in self.clients],
        )

    @classmethod
    def from_domain(cls, snapshot: Snapshot) -> "SnapshotDTO":
        return cls(
            projects=[ProjectDTO.from_domain(p) for p in snapshot.projects],
            users=[UserDTO(id=u.id, name=u.name, is_active=u.is_active) for u in snapshot.users],
            clients=[ClientDTO(id=c.id, code=c.code, name=c.name) for c in snapshot.clients],
        )


class SnapshotSavedResponse(BaseModel):
    projects: int
    users: int
    clients: int


class WorkingDaysResponse(BaseModel):
    project_id: str
    working_days: int


class TimelineResponse(BaseModel):
    start: date
    end: date
    dates: List[date]


class LanePlacementDTO(BaseModel):
    assignment_id: str
    root_id: str
    name: str
    is_subtask: bool
    status: ProjectStatus
    start: date
    end: date
    lane: int


class UserRowDTO(BaseModel):
    user_id: str
    name: str
    is_active: bool
    lane_count: int
    peak_load: int
    placements: List[LanePlacementDTO]
    has_conflict: bool
    conflict_dates: List[date]
    conflicting: Dict[str, List[str]]


class ScheduleViewResponse(BaseModel):
    dates: List[date]
    rows: List[UserRowDTO]
    conflict_count: int
    cached: bool = False

    @classmethod
    def from_domain(cls, view: ScheduleView) -> "ScheduleViewResponse":
        rows = []
        for row in view.rows:
            rows.append(UserRowDTO(
                user_id=row.user_id,
                name=row.name,
                is_active=row.is_active,
                lane_count=row.layout.lane_count,
                peak_load=row.peak_load,
                placements=[
                    LanePlacementDTO(
                        assignment_id=p.assignment.id,
                        root_id=p.assignment.root_id,
                        name=p.assignment.name,
                        is_subtask=p.assignment.is_subtask,
                        status=p.assignment.status,
                        start=p.assignment.start,
                        end=p.assignment.end,
                        lane=p.lane,
                    )
                    for p in row.layout.placements
                ],
                has_conflict=row.conflicts.has_conflict,
                conflict_dates=row.conflicts.conflict_dates,
                conflicting={k: sorted(v) for k, v in row.conflict_graph.items()},
            ))
        return cls(dates=view.dates, rows=rows, conflict_count=view.conflict_count)


class UserCapacityDTO(BaseModel):
    user_id: str
    name: str
    occupied_days: int
    percentage: int
    assignment_count: int


class CapacityResponse(BaseModel):
    percentage: int
    occupied_days: int
    total_available_days: int
    per_user: List[UserCapacityDTO]
    week_start: date
    week_end: date
    week_range_label: str
    cached: bool = False

    @classmethod
    def from_domain(cls, report: CapacityReport) -> "CapacityResponse":
        return cls(
            percentage=report.percentage,
            occupied_days=report.occupied_days,
            total_available_days=report.total_available_days,
            per_user=[UserCapacityDTO(**vars(u)) for u in report.per_user],
            week_start=report.week_start,
            week_end=report.week_end,
            week_range_label=report.week_range_label,
        )


class RankedEntry(BaseModel):
    name: str
    count: int


class UpcomingDTO(BaseModel):
    id: str
    code: str
    name: str
    end_date: date


class DashboardResponse(BaseModel):
    health: int
    active_count: int
    overdue_count: int
    upcoming: List[UpcomingDTO]
    user_performance: List[RankedEntry]
    top_clients: List[RankedEntry]
    status_matrix: Dict[str, Dict[str, int]]
    avg_execution_days: int
    conflict_count: int
    capacity: CapacityResponse


def _today(today: Optional[date]) -> date:
    return today or date.today()


def _snapshot_hash(snapshot: Snapshot) -> str:
    return ViewCache.hash_snapshot(SnapshotDTO.from_domain(snapshot).model_dump(mode="json"))


WeekOffset = Annotated[int, Query(ge=0, le=settings.max_week_offset, description="Weeks after the current week")]
Today = Annotated[Optional[date], Query(description="Override the current date (YYYY-MM-DD)")]


@router.put("/snapshot", response_model=SnapshotSavedResponse, summary="Store entity snapshot")
def put_snapshot(req: SnapshotDTO, db: Session = Depends(get_db)):
    """
    Upsert projects (with subtasks), users and clients.

    Existing rows with the same id are overwritten; the last write wins.
    Subtasks left out of a project's new version are removed.
    """
    logger.info(f"Snapshot upsert: {len(req.projects)} projects, {len(req.users)} users, {len(req.clients)} clients")
    save_snapshot(db, req.to_domain())
    return {"projects": len(req.projects), "users": len(req.users), "clients": len(req.clients)}


@router.get("/projects/{project_id}/working-days", response_model=WorkingDaysResponse, summary="Working days of a project")
def project_working_days(project_id: str, db: Session = Depends(get_db)):
    project = ProjectRepository(db).get_by_id(project_id)
    if project is None:
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
    return {"project_id": project_id, "working_days": working_days(project.start_date, project.end_date)}


@router.get("/schedule/timeline", response_model=TimelineResponse, summary="Visible date range")
def timeline(today: Today = None, db: Session = Depends(get_db)):
    snapshot = load_snapshot(db)
    dates = build_timeline_window(active_assignments(snapshot.projects), _today(today), settings.timeline_padding_days)
    return {"start": dates[0], "end": dates[-1], "dates": dates}


@router.get("/schedule/view", response_model=ScheduleViewResponse, summary="Gantt lanes and conflicts per user")
def schedule_view(
    today: Today = None,
    db: Session = Depends(get_db),
    cache: Optional[ViewCache] = Depends(get_cache),
):
    """
    Build the per-user schedule view.

    **Returns:**
    - `dates`: shared timeline window
    - `rows`: one row per user with assigned work: lane placements, lane
      count, conflicting days and the cross-project overlaps behind them
    - `conflict_count`: users with at least one conflicting day
    """
    day = _today(today)
    snapshot = load_snapshot(db)
    key = ViewCache.make_key("schedule", _snapshot_hash(snapshot), today=day)
    if cache is not None:
        cached = cache.get(key)
        if cached:
            logger.info("Cache hit")
            return {**cached, "cached": True}

    response = ScheduleViewResponse.from_domain(build_schedule_view(snapshot, day, settings.timeline_padding_days))
    if cache is not None:
        cache.set(key, response.model_dump(mode="json"))
    return response


@router.get("/capacity", response_model=CapacityResponse, summary="Weekly team capacity")
def capacity(
    week_offset: WeekOffset = 0,
    today: Today = None,
    db: Session = Depends(get_db),
    cache: Optional[ViewCache] = Depends(get_cache),
):
    day = _today(today)
    snapshot = load_snapshot(db)
    key = ViewCache.make_key("capacity", _snapshot_hash(snapshot), today=day, week=week_offset)
    if cache is not None:
        cached = cache.get(key)
        if cached:
            logger.info("Cache hit")
            return {**cached, "cached": True}

    report = compute_capacity(snapshot.users, snapshot.projects, week_offset, day, settings.max_week_offset)
    logger.info(f"Capacity {report.week_range_label}: {report.percentage}%")
    response = CapacityResponse.from_domain(report)
    if cache is not None:
        cache.set(key, response.model_dump(mode="json"))
    return response


@router.get("/dashboard", response_model=DashboardResponse, summary="Office KPIs")
def dashboard(
    week_offset: WeekOffset = 0,
    today: Today = None,
    db: Session = Depends(get_db),
):
    report = compute_dashboard(load_snapshot(db), _today(today), week_offset, settings.max_week_offset)
    return DashboardResponse(
        health=report.health,
        active_count=report.active_count,
        overdue_count=report.overdue_count,
        upcoming=[UpcomingDTO(id=p.id, code=p.code, name=p.name, end_date=p.end_date) for p in report.upcoming],
        user_performance=[RankedEntry(name=n, count=c) for n, c in report.user_performance],
        top_clients=[RankedEntry(name=n, count=c) for n, c in report.top_clients],
        status_matrix=report.status_matrix,
        avg_execution_days=report.avg_execution_days,
        conflict_count=report.conflict_count,
        capacity=CapacityResponse.from_domain(report.capacity),
    )
