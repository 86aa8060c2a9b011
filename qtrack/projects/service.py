from __future__ import annotations

import logging

from sqlalchemy import delete, exists, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from qtrack.auth.authorizer import can_access_project, can_manage_project
from qtrack.auth.identity import Identity
from qtrack.core.audit import audit
from qtrack.core.errors import Conflict, Forbidden, NotFound, Unauthenticated
from qtrack.models.enums import ProjectRole
from qtrack.models.tables import Invitation, Project, ProjectMember, ProjectTag, Question, QuestionTag, User
from qtrack.questions.service import purge_questions
from qtrack.schemas.common import validate_payload
from qtrack.schemas.projects import MemberAdd, MemberRoleUpdate, ProjectCreate, ProjectUpdate, TagCreate
from qtrack.util.ids import new_uuid
from qtrack.util.time import now_utc

log = logging.getLogger("qtrack.projects")


# --- projects -----------------------------------------------------------------


def create_project(identity: Identity | None, payload: dict, *, db: Session) -> Project:
    if identity is None:
        raise Unauthenticated()
    data = validate_payload(ProjectCreate, payload)

    now = now_utc()
    p = Project(
        id=new_uuid(),
        creator_id=identity.id,
        name=data.name,
        description=data.description,
        created_at=now,
        updated_at=now,
    )
    try:
        db.add(p)
        db.flush()
        db.add(
            ProjectMember(
                id=new_uuid(), project_id=p.id, user_id=identity.id, role=ProjectRole.MANAGER.value, created_at=now
            )
        )
        db.commit()
    except IntegrityError as e:
        db.rollback()
        # creator_id must reference an existing users row
        raise NotFound("Creator user not found") from e
    except Exception:
        db.rollback()
        raise

    db.refresh(p)
    log.info("Project %s created by %s", p.id, identity.id)
    return p


def list_projects(identity: Identity | None, *, db: Session) -> list[Project]:
    if identity is None:
        raise Unauthenticated()
    stmt = select(Project)
    if not identity.is_admin:
        stmt = stmt.where(
            or_(
                Project.creator_id == identity.id,
                exists().where(ProjectMember.project_id == Project.id, ProjectMember.user_id == identity.id),
            )
        )
    return list(db.execute(stmt.order_by(Project.created_at.desc())).unique().scalars().all())


def get_project(identity: Identity | None, project_id: str, *, db: Session) -> Project:
    return can_access_project(identity, project_id, db=db).require().project


def update_project(identity: Identity | None, project_id: str, payload: dict, *, db: Session) -> Project:
    project = can_manage_project(identity, project_id, db=db).require().project
    data = validate_payload(ProjectUpdate, payload)

    try:
        if data.name is not None:
            project.name = data.name
        if "description" in data.model_fields_set:
            project.description = data.description
        project.updated_at = now_utc()
        db.commit()
    except Exception:
        db.rollback()
        raise
    return project


def delete_project(identity: Identity | None, project_id: str, *, db: Session) -> None:
    """Remove a project with its questions, tags, invitations and memberships."""

    can_manage_project(identity, project_id, db=db).require()

    try:
        purge_questions(db, select(Question.id).where(Question.project_id == project_id))
        tag_ids = select(ProjectTag.id).where(ProjectTag.project_id == project_id)
        for stmt in (
            delete(QuestionTag).where(QuestionTag.tag_id.in_(tag_ids)),
            delete(ProjectTag).where(ProjectTag.project_id == project_id),
            delete(Invitation).where(Invitation.project_id == project_id),
            delete(ProjectMember).where(ProjectMember.project_id == project_id),
            delete(Project).where(Project.id == project_id),
        ):
            db.execute(stmt.execution_options(synchronize_session=False))
        audit(
            db,
            user_id=identity.id,
            event_type="PROJECT_DELETED",
            message=f"project={project_id}",
            context={"project_id": project_id},
            severity="WARN",
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.expire_all()
    log.info("Project %s deleted by %s", project_id, identity.id)


# --- members ------------------------------------------------------------------


def list_members(identity: Identity | None, project_id: str, *, db: Session) -> list[ProjectMember]:
    return list(can_access_project(identity, project_id, db=db).require().project.members)


def add_member(identity: Identity | None, project_id: str, payload: dict, *, db: Session) -> ProjectMember:
    project = can_manage_project(identity, project_id, db=db).require().project
    data = validate_payload(MemberAdd, payload)

    if db.get(User, data.user_id) is None:
        raise NotFound("User not found")

    m = ProjectMember(
        id=new_uuid(), project_id=project.id, user_id=data.user_id, role=data.role.value, created_at=now_utc()
    )
    try:
        db.add(m)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise Conflict("The user is already a member of this project") from e
    except Exception:
        db.rollback()
        raise
    db.refresh(m)
    return m


def _member_in_project(db: Session, project: Project, member_id: str) -> ProjectMember:
    m = db.get(ProjectMember, member_id)
    if m is None or m.project_id != project.id:
        raise NotFound("Member not found in this project")
    if m.user_id == project.creator_id:
        raise Forbidden("The project creator's membership cannot be changed or removed")
    return m


def update_member_role(
    identity: Identity | None, project_id: str, member_id: str, payload: dict, *, db: Session
) -> ProjectMember:
    project = can_manage_project(identity, project_id, db=db).require().project
    m = _member_in_project(db, project, member_id)
    data = validate_payload(MemberRoleUpdate, payload)

    previous = m.role
    try:
        m.role = data.role.value
        audit(
            db,
            user_id=identity.id,
            event_type="MEMBER_ROLE_CHANGED",
            message=f"project={project_id} member={m.id} {previous}->{m.role}",
            context={"project_id": project_id, "member_id": m.id, "user_id": m.user_id, "role": m.role},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return m


def remove_member(identity: Identity | None, project_id: str, member_id: str, *, db: Session) -> None:
    project = can_manage_project(identity, project_id, db=db).require().project
    m = _member_in_project(db, project, member_id)
    if m.user_id == identity.id:
        raise Forbidden("You cannot remove yourself from the project")

    try:
        db.execute(delete(ProjectMember).where(ProjectMember.id == m.id))
        audit(
            db,
            user_id=identity.id,
            event_type="MEMBER_REMOVED",
            message=f"project={project_id} user={m.user_id}",
            context={"project_id": project_id, "member_id": m.id, "user_id": m.user_id},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.expire_all()


# --- tags ---------------------------------------------------------------------


def list_tags(identity: Identity | None, project_id: str, *, db: Session) -> list[ProjectTag]:
    can_access_project(identity, project_id, db=db).require()
    return list(
        db.execute(select(ProjectTag).where(ProjectTag.project_id == project_id).order_by(ProjectTag.name.asc()))
        .scalars()
        .all()
    )


def create_tag(identity: Identity | None, project_id: str, payload: dict, *, db: Session) -> ProjectTag:
    can_manage_project(identity, project_id, db=db).require()
    data = validate_payload(TagCreate, payload)

    tag = ProjectTag(id=new_uuid(), project_id=project_id, name=data.name.strip(), created_at=now_utc())
    try:
        db.add(tag)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise Conflict(f'A tag named "{tag.name}" already exists in this project') from e
    except Exception:
        db.rollback()
        raise
    return tag


def delete_tag(identity: Identity | None, project_id: str, tag_id: str, *, db: Session) -> None:
    can_manage_project(identity, project_id, db=db).require()
    tag = db.get(ProjectTag, tag_id)
    if tag is None:
        raise NotFound("Tag not found")
    if tag.project_id != project_id:
        raise Forbidden("The tag does not belong to this project")

    try:
        deleted = db.execute(
            delete(ProjectTag)
            .where(ProjectTag.id == tag_id, ~exists().where(QuestionTag.tag_id == tag_id))
            .execution_options(synchronize_session=False)
        ).rowcount
        if deleted == 0:
            raise Conflict("The tag is still attached to questions")
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.expire_all()
