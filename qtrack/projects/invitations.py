"""Project invitations.

Email invitations stay PENDING until the invitee responds or the TTL passes.
Expiry is applied lazily: any read of a PENDING row past ``expires_at`` flips
it to EXPIRED before the row is returned.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from qtrack.auth.authorizer import can_access_project, can_manage_project, is_project_manager
from qtrack.auth.identity import Identity
from qtrack.core.config import settings
from qtrack.core.errors import Conflict, Forbidden, NotFound, Unauthenticated, ValidationFailed
from qtrack.models.enums import InvitationStatus, ProjectRole
from qtrack.models.tables import Invitation, Project, ProjectMember, User
from qtrack.schemas.common import validate_payload
from qtrack.schemas.projects import EmailInvite, InvitationResponse, InviteRequest
from qtrack.util.ids import new_token, new_uuid
from qtrack.util.time import as_utc, now_utc

log = logging.getLogger("qtrack.invitations")


def expire_stale(db: Session, invitations: list[Invitation]) -> list[Invitation]:
    now = now_utc()
    changed = False
    for inv in invitations:
        if inv.status == InvitationStatus.PENDING.value and as_utc(inv.expires_at) < now:
            inv.status = InvitationStatus.EXPIRED.value
            changed = True
    if changed:
        db.commit()
    return invitations


def _is_member(project: Project, user_id: str) -> bool:
    return any(m.user_id == user_id for m in project.members)


def _has_pending(db: Session, project_id: str, email: str) -> bool:
    rows = db.execute(
        select(Invitation).where(
            Invitation.project_id == project_id,
            func.lower(Invitation.email) == email.lower(),
            Invitation.status == InvitationStatus.PENDING.value,
        )
    ).scalars().all()
    return any(i.status == InvitationStatus.PENDING.value for i in expire_stale(db, list(rows)))


def list_invitations(identity: Identity | None, project_id: str, *, db: Session) -> list[Invitation]:
    access = can_access_project(identity, project_id, db=db).require()
    stmt = select(Invitation).where(Invitation.project_id == project_id)
    if not is_project_manager(identity, access.project):
        stmt = stmt.where(Invitation.inviter_id == identity.id)
    rows = db.execute(stmt.order_by(Invitation.created_at.desc())).scalars().all()
    return expire_stale(db, list(rows))


def create_invitation(identity: Identity | None, project_id: str, payload: dict, *, db: Session) -> Invitation:
    """Invite by email (PENDING) or add an existing user directly (ACCEPTED + membership)."""

    project = can_manage_project(identity, project_id, db=db).require().project
    req = validate_payload(InviteRequest, payload)

    now = now_utc()
    if isinstance(req, EmailInvite):
        email = req.email.strip()
        existing = db.execute(select(User).where(func.lower(User.email) == email.lower())).scalars().first()
        if existing is not None and _is_member(project, existing.id):
            raise Conflict("The user is already a member of this project")
        if _has_pending(db, project_id, email):
            raise Conflict("A pending invitation already exists for this email")
        inv = Invitation(
            id=new_uuid(),
            project_id=project_id,
            email=email,
            inviter_id=identity.id,
            status=InvitationStatus.PENDING.value,
            token=new_token(),
            expires_at=now + timedelta(days=settings.INVITATION_TTL_DAYS),
            created_at=now,
        )
        member = None
    else:
        user = db.get(User, req.user_id)
        if user is None:
            raise NotFound("User not found")
        if _is_member(project, user.id):
            raise Conflict("The user is already a member of this project")
        if _has_pending(db, project_id, user.email):
            raise Conflict("A pending invitation already exists for this user")
        inv = Invitation(
            id=new_uuid(),
            project_id=project_id,
            email=user.email,
            inviter_id=identity.id,
            status=InvitationStatus.ACCEPTED.value,
            token=new_token(),
            expires_at=now + timedelta(days=settings.INVITATION_TTL_DAYS),
            created_at=now,
        )
        member = ProjectMember(
            id=new_uuid(), project_id=project_id, user_id=user.id, role=ProjectRole.MEMBER.value, created_at=now
        )

    try:
        db.add(inv)
        if member is not None:
            db.add(member)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise Conflict("The invitation conflicts with an existing membership") from e
    except Exception:
        db.rollback()
        raise

    log.info("Invitation %s (%s) created for project %s", inv.id, inv.status, project_id)
    return inv


def cancel_invitation(identity: Identity | None, project_id: str, invitation_id: str, *, db: Session) -> None:
    access = can_access_project(identity, project_id, db=db).require()
    inv = db.get(Invitation, invitation_id)
    if inv is None or inv.project_id != project_id:
        raise NotFound("Invitation not found")
    if inv.inviter_id != identity.id and not is_project_manager(identity, access.project):
        raise Forbidden("Only the inviter or a project manager can cancel this invitation")
    expire_stale(db, [inv])
    if inv.status != InvitationStatus.PENDING.value:
        raise ValidationFailed("Only pending invitations can be cancelled")

    try:
        db.delete(inv)
        db.commit()
    except Exception:
        db.rollback()
        raise


def get_by_token(token: str, *, db: Session) -> Invitation:
    inv = db.execute(select(Invitation).where(Invitation.token == token)).scalars().first()
    if inv is None:
        raise NotFound("Invitation not found")
    expire_stale(db, [inv])
    return inv


def respond(identity: Identity | None, payload: dict, *, db: Session) -> Invitation:
    if identity is None:
        raise Unauthenticated()
    data = validate_payload(InvitationResponse, payload)
    inv = get_by_token(data.token, db=db)

    if inv.email.strip().lower() != identity.email.strip().lower():
        raise Forbidden("This invitation was sent to a different email address")
    if inv.status == InvitationStatus.EXPIRED.value:
        raise ValidationFailed("The invitation has expired")
    if inv.status != InvitationStatus.PENDING.value:
        raise ValidationFailed(f"The invitation was already {inv.status.lower()}")

    try:
        if data.accept:
            already = db.execute(
                select(ProjectMember.id).where(
                    ProjectMember.project_id == inv.project_id, ProjectMember.user_id == identity.id
                )
            ).first()
            if already is None:
                db.add(
                    ProjectMember(
                        id=new_uuid(),
                        project_id=inv.project_id,
                        user_id=identity.id,
                        role=ProjectRole.MEMBER.value,
                        created_at=now_utc(),
                    )
                )
            inv.status = InvitationStatus.ACCEPTED.value
        else:
            inv.status = InvitationStatus.DECLINED.value
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise Conflict("Could not accept the invitation") from e
    except Exception:
        db.rollback()
        raise

    log.info("Invitation %s %s by %s", inv.id, inv.status, identity.id)
    return inv
