from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Tuple


class ProjectStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    DONE = "done"
    CANCELED = "canceled"

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_STATUSES


ACTIVE_STATUSES = frozenset({ProjectStatus.QUEUED, ProjectStatus.IN_PROGRESS, ProjectStatus.PAUSED})


@dataclass(frozen=True)
class User:
    id: str
    name: str
    is_active: bool = True


@dataclass(frozen=True)
class Client:
    id: str
    code: str
    name: str


@dataclass(frozen=True)
class Subtask:
    id: str
    name: str
    status: ProjectStatus = ProjectStatus.QUEUED
    assignee_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass(frozen=True)
class Project:
    id: str
    client_id: str
    code: str
    name: str
    status: ProjectStatus = ProjectStatus.QUEUED
    assignee_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None  # delivery date
    subtasks: Tuple[Subtask, ...] = ()


@dataclass(frozen=True)
class Assignment:
    """A Project or one of its Subtasks, flattened for scheduling.

    ``root_id`` is the owning project's id; a project is its own root.
    """

    id: str
    root_id: str
    name: str
    status: ProjectStatus
    assignee_id: Optional[str] = None
    start: Optional[date] = None
    end: Optional[date] = None
    is_subtask: bool = False

    @property
    def schedulable(self) -> bool:
        return self.start is not None and self.end is not None and self.end >= self.start

    def covers(self, day: date) -> bool:
        return self.schedulable and self.start <= day <= self.end

    @classmethod
    def from_project(cls, project: Project) -> "Assignment":
        return cls(
            id=project.id,
            root_id=project.id,
            name=project.name,
            status=project.status,
            assignee_id=project.assignee_id,
            start=project.start_date,
            end=project.end_date,
        )

    @classmethod
    def from_subtask(cls, project: Project, subtask: Subtask) -> "Assignment":
        return cls(
            id=subtask.id,
            root_id=project.id,
            name=subtask.name,
            status=subtask.status,
            assignee_id=subtask.assignee_id,
            start=subtask.start_date,
            end=subtask.end_date,
            is_subtask=True,
        )


@dataclass(frozen=True)
class Snapshot:
    projects: List[Project] = field(default_factory=list)
    users: List[User] = field(default_factory=list)
    clients: List[Client] = field(default_factory=list)


def iter_assignments(
    projects: List[Project],
    assignee_id: Optional[str] = None,
    require_active_parent: bool = True,
) -> List[Assignment]:
    """Flatten active projects and their active subtasks, in input order.

    Only schedulable entries are returned. With ``assignee_id`` set, only
    entries assigned to that user are kept. With ``require_active_parent``
    off, open subtasks of a closed project are still yielded.
    """
    out: List[Assignment] = []
    for project in projects:
        candidates = []
        if project.status.is_active:
            candidates.append(Assignment.from_project(project))
        elif require_active_parent:
            continue
        candidates.extend(
            Assignment.from_subtask(project, s) for s in project.subtasks if s.status.is_active
        )
        for a in candidates:
            if not a.schedulable:
                continue
            if assignee_id is not None and a.assignee_id != assignee_id:
                continue
            out.append(a)
    return out


def active_assignments(projects: List[Project]) -> List[Assignment]:
    return iter_assignments(projects)


def user_assignments(projects: List[Project], user_id: str) -> List[Assignment]:
    return iter_assignments(projects, assignee_id=user_id)
