from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from qtrack.api.deps import get_db, require_identity
from qtrack.api.serializers import invitation_dict
from qtrack.auth.identity import Identity
from qtrack.models.tables import Project
from qtrack.projects import invitations

router = APIRouter()


@router.post("/respond")
def respond(payload: dict, identity: Identity = Depends(require_identity), db: Session = Depends(get_db)) -> dict:
    inv = invitations.respond(identity, payload, db=db)
    return invitation_dict(inv, include_token=False)


@router.get("/{token}")
def get_invitation(token: str, db: Session = Depends(get_db)) -> dict:
    """Public view used by the invite landing page; the token is the credential."""

    inv = invitations.get_by_token(token, db=db)
    project = db.get(Project, inv.project_id)
    out = invitation_dict(inv, include_token=False)
    out["project"] = {"id": project.id, "name": project.name} if project else None
    return out
