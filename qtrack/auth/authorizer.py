"""Project-level authorization.

Every mutating operation on projects, members, invitations, tags and questions
goes through exactly one of ``can_access_project`` / ``can_manage_project``.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from qtrack.auth.identity import Identity
from qtrack.core.errors import Forbidden, NotFound, ServiceError, Unauthenticated
from qtrack.models.enums import ProjectRole
from qtrack.models.tables import Project, ProjectMember


@dataclass(frozen=True)
class AccessResult:
    ok: bool
    project: Project | None = None
    membership: ProjectMember | None = None
    error: ServiceError | None = None

    def require(self) -> "AccessResult":
        if not self.ok:
            raise self.error or Forbidden()
        return self


def _denied(error: ServiceError) -> AccessResult:
    return AccessResult(ok=False, error=error)


def _load_project(db: Session, project_id: str) -> Project | None:
    # creator is joined and members are select-in loaded (see Project mapping)
    return db.get(Project, project_id)


def _find_membership(project: Project, user_id: str) -> ProjectMember | None:
    for m in project.members:
        if m.user_id == user_id:
            return m
    return None


def can_access_project(identity: Identity | None, project_id: str, *, db: Session) -> AccessResult:
    if identity is None:
        return _denied(Unauthenticated())

    project = _load_project(db, project_id)
    if project is None:
        return _denied(NotFound("Project not found"))

    if identity.is_admin:
        return AccessResult(ok=True, project=project, membership=None)

    membership = _find_membership(project, identity.id)
    if membership is None:
        return _denied(Forbidden("You do not have access to this project"))
    return AccessResult(ok=True, project=project, membership=membership)


def can_manage_project(identity: Identity | None, project_id: str, *, db: Session) -> AccessResult:
    if identity is None:
        return _denied(Unauthenticated())

    project = _load_project(db, project_id)
    if project is None:
        return _denied(NotFound("Project not found"))

    if identity.is_admin:
        return AccessResult(ok=True, project=project, membership=None)

    membership = _find_membership(project, identity.id)
    if project.creator_id == identity.id:
        return AccessResult(ok=True, project=project, membership=membership)
    if membership is not None and membership.role == ProjectRole.MANAGER.value:
        return AccessResult(ok=True, project=project, membership=membership)
    return _denied(Forbidden("You do not have permission to manage this project"))


def is_project_manager(identity: Identity, project: Project) -> bool:
    """Creator, MANAGER member or ADMIN, evaluated against an already loaded project."""
    if identity.is_admin or project.creator_id == identity.id:
        return True
    membership = _find_membership(project, identity.id)
    return membership is not None and membership.role == ProjectRole.MANAGER.value
