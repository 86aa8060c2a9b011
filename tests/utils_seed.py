from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from qtrack.auth.identity import Identity
from qtrack.models.enums import GlobalRole, ProjectRole, QuestionStatus
from qtrack.models.tables import (
    Answer,
    AnswerForm,
    AnswerFormField,
    MediaFile,
    Project,
    ProjectMember,
    Question,
    User,
)
from qtrack.util.ids import new_uuid
from qtrack.util.time import now_utc


def set_test_env(monkeypatch) -> None:
    """Minimal env for Settings() to load during import."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///:memory:")
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
    monkeypatch.setenv("MINIO_ENDPOINT", "localhost:9000")
    monkeypatch.setenv("MINIO_ACCESS_KEY", "minioadmin")
    monkeypatch.setenv("MINIO_SECRET_KEY", "minioadmin")
    monkeypatch.setenv("ENSURE_EXTERNAL_DEPS_ON_STARTUP", "0")


def create_schema() -> None:
    from qtrack.core.db import engine
    from qtrack.models.base import Base

    # SQLite tests don't run Alembic.
    Base.metadata.create_all(bind=engine)


def seed_user(db: Session, *, role: GlobalRole = GlobalRole.USER, name: str | None = None) -> User:
    uid = new_uuid()
    u = User(id=uid, email=f"{uid}@example.com", name=name, role=role.value, created_at=now_utc())
    db.add(u)
    db.commit()
    return u


def ident(u: User) -> Identity:
    return Identity(id=u.id, email=u.email, role=GlobalRole(u.role))


def headers(u: User) -> dict[str, str]:
    return {"X-User-Id": u.id, "X-User-Email": u.email, "X-User-Role": u.role}


def seed_project(db: Session, *, creator: User, name: str = "Project") -> Project:
    now = now_utc()
    p = Project(id=new_uuid(), creator_id=creator.id, name=name, description=None, created_at=now, updated_at=now)
    db.add(p)
    db.flush()
    db.add(ProjectMember(id=new_uuid(), project_id=p.id, user_id=creator.id, role=ProjectRole.MANAGER.value, created_at=now))
    db.commit()
    return p


def seed_member(db: Session, *, project: Project, user: User, role: ProjectRole = ProjectRole.MEMBER) -> ProjectMember:
    m = ProjectMember(id=new_uuid(), project_id=project.id, user_id=user.id, role=role.value, created_at=now_utc())
    db.add(m)
    db.commit()
    db.expire(project)
    return m


def seed_question(
    db: Session,
    *,
    project: Project,
    creator: User,
    assignee: User,
    status: QuestionStatus = QuestionStatus.NEW,
    deadline: datetime | None = None,
    title: str = "Question",
) -> Question:
    now = now_utc()
    q = Question(
        id=new_uuid(),
        project_id=project.id,
        creator_id=creator.id,
        assignee_id=assignee.id,
        title=title,
        content="What is the answer?",
        priority="MEDIUM",
        deadline=deadline,
        status=status.value,
        is_deadline_notified=False,
        created_at=now,
        updated_at=now,
    )
    db.add(q)
    db.commit()
    return q


def seed_form(db: Session, *, question: Question, fields: list[tuple[str, str, bool]]) -> AnswerForm:
    now = now_utc()
    form = AnswerForm(id=new_uuid(), question_id=question.id, created_at=now, updated_at=now)
    db.add(form)
    db.flush()
    for i, (label, field_type, required) in enumerate(fields):
        db.add(
            AnswerFormField(
                id=new_uuid(),
                answer_form_id=form.id,
                label=label,
                field_type=field_type,
                options=["a", "b"] if field_type == "RADIO" else [],
                is_required=required,
                order=i,
            )
        )
    db.commit()
    return form


def seed_answer(db: Session, *, question: Question, creator: User, content: str = "42") -> Answer:
    now = now_utc()
    a = Answer(id=new_uuid(), question_id=question.id, creator_id=creator.id, content=content, created_at=now, updated_at=now)
    db.add(a)
    db.commit()
    return a


def seed_media(db: Session, *, uploader: User, url: str | None = None) -> MediaFile:
    mid = new_uuid()
    m = MediaFile(
        id=mid,
        uploader_id=uploader.id,
        file_name="photo.png",
        storage_url=url or f"http://localhost:9000/qtrack/uploads/{uploader.id}/{mid}-photo.png",
        file_type="image/png",
        file_size=1234,
        created_at=now_utc(),
    )
    db.add(m)
    db.commit()
    return m
