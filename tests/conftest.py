import json
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.models.entities import Client, Project, ProjectStatus, Snapshot, Subtask, User
from app.storage.cache import get_cache
from app.storage.database import get_db, init_db


def d(value: str) -> date:
    return date.fromisoformat(value)


@pytest.fixture
def single_project():
    """One project assigned to u1, no subtasks."""
    return Project(
        id="p1",
        client_id="c1",
        code="ACME-001-24",
        name="Substation layout",
        status=ProjectStatus.IN_PROGRESS,
        assignee_id="u1",
        start_date=d("2024-01-01"),
        end_date=d("2024-01-10"),
    )


@pytest.fixture
def overlapping_projects(single_project):
    """Two projects for u1 from different roots, overlapping 01-05..01-10."""
    other = Project(
        id="p2",
        client_id="c2",
        code="GLOBEX-002-24",
        name="Pump station retrofit",
        status=ProjectStatus.QUEUED,
        assignee_id="u1",
        start_date=d("2024-01-05"),
        end_date=d("2024-01-15"),
    )
    return [single_project, other]


@pytest.fixture
def project_with_subtasks():
    """Two overlapping subtasks of one project, both assigned to u1."""
    return Project(
        id="p1",
        client_id="c1",
        code="ACME-001-24",
        name="Substation layout",
        status=ProjectStatus.IN_PROGRESS,
        start_date=d("2024-01-01"),
        end_date=d("2024-01-10"),
        subtasks=(
            Subtask(id="s1", name="Survey", status=ProjectStatus.IN_PROGRESS, assignee_id="u1",
                    start_date=d("2024-01-01"), end_date=d("2024-01-05")),
            Subtask(id="s2", name="Drawings", status=ProjectStatus.QUEUED, assignee_id="u1",
                    start_date=d("2024-01-03"), end_date=d("2024-01-07")),
        ),
    )


@pytest.fixture
def team():
    return [
        User(id="u1", name="alice"),
        User(id="u2", name="bruno"),
        User(id="u3", name="carla", is_active=False),
    ]


@pytest.fixture
def office_snapshot(overlapping_projects, team):
    """Small office: two live projects, one done, one canceled."""
    done = Project(
        id="p3",
        client_id="c1",
        code="ACME-003-23",
        name="Cable schedule",
        status=ProjectStatus.DONE,
        assignee_id="u2",
        start_date=d("2023-11-01"),
        end_date=d("2023-11-11"),
    )
    canceled = Project(
        id="p4",
        client_id="c3",
        code="INITECH-004-23",
        name="Lighting study",
        status=ProjectStatus.CANCELED,
        assignee_id="u2",
        start_date=d("2024-01-08"),
        end_date=d("2024-01-12"),
    )
    clients = [
        Client(id="c1", code="ACME", name="Acme Power"),
        Client(id="c2", code="GLOBEX", name="Globex Water"),
    ]
    return Snapshot(projects=overlapping_projects + [done, canceled], users=team, clients=clients)


class InMemoryCache:
    """Stands in for ViewCache; stores JSON round-tripped payloads."""

    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, view, ttl_seconds=None):
        self.store[key] = json.loads(json.dumps(view, default=str))


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def view_cache():
    return InMemoryCache()


@pytest.fixture
def client(db_session, view_cache):
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_cache] = lambda: view_cache
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
