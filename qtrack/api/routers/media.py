from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from qtrack.api.deps import get_db, require_identity
from qtrack.api.serializers import media_dict
from qtrack.auth.identity import Identity
from qtrack.media import service

router = APIRouter()


@router.get("")
def list_media(
    limit: int = 50,
    cursor: str | None = None,
    type: str | None = None,
    identity: Identity = Depends(require_identity),
    db: Session = Depends(get_db),
) -> dict:
    files, next_cursor = service.list_media(identity, limit=limit, cursor=cursor, type_prefix=type, db=db)
    return {"files": [media_dict(f) for f in files], "next_cursor": next_cursor}


@router.post("", status_code=201)
def register_media(payload: dict, identity: Identity = Depends(require_identity), db: Session = Depends(get_db)) -> dict:
    return media_dict(service.register_media(identity, payload, db=db))


@router.post("/upload-url")
def create_upload_url(payload: dict, identity: Identity = Depends(require_identity)) -> dict:
    return service.create_upload_url(identity, payload)


@router.get("/{file_id}")
def get_media(file_id: str, identity: Identity = Depends(require_identity), db: Session = Depends(get_db)) -> dict:
    return media_dict(service.get_media(identity, file_id, db=db))


@router.delete("/{file_id}")
def delete_media(file_id: str, identity: Identity = Depends(require_identity), db: Session = Depends(get_db)) -> dict:
    res = service.delete_media_file(identity, file_id, db=db)
    return {"ok": True, **res}
