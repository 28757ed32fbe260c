from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.entities import Client, Project, ProjectStatus, Snapshot, Subtask, User
from app.storage.database import ClientModel, ProjectModel, SubtaskModel, UserModel
from app.utils.dates import format_day, parse_day


class ProjectRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, project_id: str) -> Optional[Project]:
        model = self.db.query(ProjectModel).filter(ProjectModel.id == project_id).first()
        if not model:
            return None
        return self._model_to_project(model)

    def list_all(self) -> List[Project]:
        models = self.db.query(ProjectModel).order_by(ProjectModel.created_at, ProjectModel.id).all()
        return [self._model_to_project(m) for m in models]

    def save(self, project: Project, commit: bool = True) -> None:
        """Upsert a project and its subtasks; the last write wins."""
        model = self.db.query(ProjectModel).filter(ProjectModel.id == project.id).first()
        if not model:
            model = ProjectModel(id=project.id)
            self.db.add(model)
        model.client_id = project.client_id
        model.code = project.code
        model.name = project.name
        model.status = project.status.value
        model.assignee_id = project.assignee_id
        model.start_date = format_day(project.start_date)
        model.end_date = format_day(project.end_date)

        existing = {s.id: s for s in model.subtasks}
        kept = []
        for position, subtask in enumerate(project.subtasks):
            # A subtask may move here from another project; reuse its row
            sub = existing.pop(subtask.id, None) or self.db.get(SubtaskModel, subtask.id) or SubtaskModel(id=subtask.id)
            sub.position = position
            sub.name = subtask.name
            sub.status = subtask.status.value
            sub.assignee_id = subtask.assignee_id
            sub.start_date = format_day(subtask.start_date)
            sub.end_date = format_day(subtask.end_date)
            kept.append(sub)
        # Subtasks missing from the new version are removed as orphans
        model.subtasks = kept
        if commit:
            self.db.commit()
        else:
            # Later saves in the same transaction must see the re-parented rows
            self.db.flush()

    def delete(self, project_id: str) -> None:
        model = self.db.query(ProjectModel).filter(ProjectModel.id == project_id).first()
        if model:
            self.db.delete(model)
            self.db.commit()

    @staticmethod
    def _model_to_project(model: ProjectModel) -> Project:
        return Project(
            id=model.id,
            client_id=model.client_id,
            code=model.code,
            name=model.name,
            status=ProjectStatus(model.status),
            assignee_id=model.assignee_id,
            start_date=parse_day(model.start_date),
            end_date=parse_day(model.end_date),
            subtasks=tuple(
                Subtask(
                    id=s.id,
                    name=s.name,
                    status=ProjectStatus(s.status),
                    assignee_id=s.assignee_id,
                    start_date=parse_day(s.start_date),
                    end_date=parse_day(s.end_date),
                )
                for s in model.subtasks
            ),
        )


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: str) -> Optional[User]:
        model = self.db.query(UserModel).filter(UserModel.id == user_id).first()
        if not model:
            return None
        return self._model_to_user(model)

    def list_all(self) -> List[User]:
        models = self.db.query(UserModel).order_by(UserModel.position, UserModel.id).all()
        return [self._model_to_user(m) for m in models]

    def save(self, user: User, position: Optional[int] = None, commit: bool = True) -> None:
        """Upsert a user. ``position`` is the user's place in snapshot order."""
        existing = self.db.query(UserModel).filter(UserModel.id == user.id).first()
        if not existing:
            existing = UserModel(id=user.id)
            self.db.add(existing)
        existing.name = user.name
        existing.is_active = user.is_active
        if position is not None:
            existing.position = position
        if commit:
            self.db.commit()

    def delete(self, user_id: str) -> None:
        self.db.query(UserModel).filter(UserModel.id == user_id).delete()
        self.db.commit()

    @staticmethod
    def _model_to_user(model: UserModel) -> User:
        return User(id=model.id, name=model.name, is_active=model.is_active)


class ClientRepository:
    def __init__(self, db: Session):
        self.db = db

    def list_all(self) -> List[Client]:
        models = self.db.query(ClientModel).order_by(ClientModel.code).all()
        return [Client(id=m.id, code=m.code, name=m.name) for m in models]

    def save(self, client: Client, commit: bool = True) -> None:
        existing = self.db.query(ClientModel).filter(ClientModel.id == client.id).first()
        if existing:
            existing.code = client.code
            existing.name = client.name
        else:
            self.db.add(ClientModel(id=client.id, code=client.code, name=client.name))
        if commit:
            self.db.commit()

    def delete(self, client_id: str) -> None:
        self.db.query(ClientModel).filter(ClientModel.id == client_id).delete()
        self.db.commit()


def load_snapshot(db: Session) -> Snapshot:
    return Snapshot(
        projects=ProjectRepository(db).list_all(),
        users=UserRepository(db).list_all(),
        clients=ClientRepository(db).list_all(),
    )


def save_snapshot(db: Session, snapshot: Snapshot) -> None:
    """Upsert every entity of the snapshot in one transaction."""
    projects = ProjectRepository(db)
    users = UserRepository(db)
    clients = ClientRepository(db)
    for client in snapshot.clients:
        clients.save(client, commit=False)
    for position, user in enumerate(snapshot.users):
        users.save(user, position=position, commit=False)
    for project in snapshot.projects:
        projects.save(project, commit=False)
    db.commit()
