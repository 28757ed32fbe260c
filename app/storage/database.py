from sqlalchemy import create_engine, Column, String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from datetime import datetime, timezone
from app.config.settings import get_settings

settings = get_settings()


def _utcnow():
    return datetime.now(timezone.utc)


def make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, pool_pre_ping=True, echo=False, connect_args=connect_args)


engine = make_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


class ClientModel(Base):
    __tablename__ = "clients"

    id = Column(String, primary_key=True)
    code = Column(String, nullable=False)
    name = Column(String, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    position = Column(Integer, nullable=False, default=0)  # snapshot order
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class ProjectModel(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True)
    client_id = Column(String, nullable=False)
    code = Column(String, nullable=False)
    name = Column(String, nullable=False)
    status = Column(String, nullable=False)
    assignee_id = Column(String, nullable=True)
    start_date = Column(String, nullable=True)  # YYYY-MM-DD
    end_date = Column(String, nullable=True)  # delivery date, YYYY-MM-DD
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    subtasks = relationship(
        "SubtaskModel",
        order_by="SubtaskModel.position",
        cascade="all, delete-orphan",
        back_populates="project",
    )


class SubtaskModel(Base):
    __tablename__ = "subtasks"

    id = Column(String, primary_key=True)
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String, nullable=False)
    status = Column(String, nullable=False)
    assignee_id = Column(String, nullable=True)
    start_date = Column(String, nullable=True)
    end_date = Column(String, nullable=True)

    project = relationship("ProjectModel", back_populates="subtasks")


def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
