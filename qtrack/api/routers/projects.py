from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from qtrack.api.deps import get_db, get_identity
from qtrack.api.serializers import invitation_dict, member_dict, project_dict, tag_dict
from qtrack.auth.identity import Identity
from qtrack.projects import invitations, service

router = APIRouter()


@router.post("", status_code=201)
def create_project(payload: dict, identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)) -> dict:
    return project_dict(service.create_project(identity, payload, db=db))


@router.get("")
def list_projects(identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)) -> dict:
    return {"projects": [project_dict(p) for p in service.list_projects(identity, db=db)]}


@router.get("/{project_id}")
def get_project(project_id: str, identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)) -> dict:
    p = service.get_project(identity, project_id, db=db)
    out = project_dict(p)
    out["members"] = [member_dict(m) for m in p.members]
    return out


@router.patch("/{project_id}")
def update_project(
    project_id: str, payload: dict, identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)
) -> dict:
    return project_dict(service.update_project(identity, project_id, payload, db=db))


@router.delete("/{project_id}")
def delete_project(project_id: str, identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)) -> dict:
    service.delete_project(identity, project_id, db=db)
    return {"ok": True, "id": project_id}


# members


@router.get("/{project_id}/members")
def list_members(project_id: str, identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)) -> dict:
    return {"members": [member_dict(m) for m in service.list_members(identity, project_id, db=db)]}


@router.post("/{project_id}/members", status_code=201)
def add_member(
    project_id: str, payload: dict, identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)
) -> dict:
    return member_dict(service.add_member(identity, project_id, payload, db=db))


@router.patch("/{project_id}/members/{member_id}")
def update_member(
    project_id: str,
    member_id: str,
    payload: dict,
    identity: Identity | None = Depends(get_identity),
    db: Session = Depends(get_db),
) -> dict:
    return member_dict(service.update_member_role(identity, project_id, member_id, payload, db=db))


@router.delete("/{project_id}/members/{member_id}")
def remove_member(
    project_id: str, member_id: str, identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)
) -> dict:
    service.remove_member(identity, project_id, member_id, db=db)
    return {"ok": True, "id": member_id}


# invitations


@router.get("/{project_id}/invitations")
def list_invitations(
    project_id: str, identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)
) -> dict:
    return {"invitations": [invitation_dict(i) for i in invitations.list_invitations(identity, project_id, db=db)]}


@router.post("/{project_id}/invitations", status_code=201)
def create_invitation(
    project_id: str, payload: dict, identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)
) -> dict:
    return invitation_dict(invitations.create_invitation(identity, project_id, payload, db=db))


@router.delete("/{project_id}/invitations/{invitation_id}")
def cancel_invitation(
    project_id: str, invitation_id: str, identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)
) -> dict:
    invitations.cancel_invitation(identity, project_id, invitation_id, db=db)
    return {"ok": True, "id": invitation_id}


# tags


@router.get("/{project_id}/tags")
def list_tags(project_id: str, identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)) -> dict:
    return {"tags": [tag_dict(t) for t in service.list_tags(identity, project_id, db=db)]}


@router.post("/{project_id}/tags", status_code=201)
def create_tag(
    project_id: str, payload: dict, identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)
) -> dict:
    return tag_dict(service.create_tag(identity, project_id, payload, db=db))


@router.delete("/{project_id}/tags/{tag_id}")
def delete_tag(
    project_id: str, tag_id: str, identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)
) -> dict:
    service.delete_tag(identity, project_id, tag_id, db=db)
    return {"ok": True, "id": tag_id}
