from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from qtrack.api.deps import get_db, require_identity
from qtrack.api.serializers import template_dict
from qtrack.auth.identity import Identity
from qtrack.questions import templates

router = APIRouter()


@router.get("")
def list_templates(
    search: str | None = None, identity: Identity = Depends(require_identity), db: Session = Depends(get_db)
) -> dict:
    return {"templates": [template_dict(t) for t in templates.list_templates(identity, search=search, db=db)]}


@router.post("", status_code=201)
def create_template(payload: dict, identity: Identity = Depends(require_identity), db: Session = Depends(get_db)) -> dict:
    return template_dict(templates.create_template(identity, payload, db=db))


@router.get("/{template_id}")
def get_template(template_id: str, identity: Identity = Depends(require_identity), db: Session = Depends(get_db)) -> dict:
    return template_dict(templates.get_template(identity, template_id, db=db))


@router.patch("/{template_id}")
def update_template(
    template_id: str, payload: dict, identity: Identity = Depends(require_identity), db: Session = Depends(get_db)
) -> dict:
    return template_dict(templates.update_template(identity, template_id, payload, db=db))


@router.delete("/{template_id}")
def delete_template(template_id: str, identity: Identity = Depends(require_identity), db: Session = Depends(get_db)) -> dict:
    templates.delete_template(identity, template_id, db=db)
    return {"ok": True, "id": template_id}
