from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from qtrack.api.deps import get_db, require_identity
from qtrack.api.serializers import notification_dict
from qtrack.auth.identity import Identity
from qtrack.notifications import service

router = APIRouter()


@router.get("")
def list_notifications(
    unread: bool = False,
    limit: int = 50,
    cursor: str | None = None,
    identity: Identity = Depends(require_identity),
    db: Session = Depends(get_db),
) -> dict:
    page = service.list_notifications(identity, unread_only=unread, limit=limit, cursor=cursor, db=db)
    return {
        "notifications": [notification_dict(n) for n in page["items"]],
        "next_cursor": page["next_cursor"],
        "total_unread": page["total_unread"],
    }


@router.post("/read-all")
def read_all(identity: Identity = Depends(require_identity), db: Session = Depends(get_db)) -> dict:
    return {"ok": True, "updated": service.mark_all_read(identity, db=db)}


@router.patch("/{notification_id}")
def mark(
    notification_id: str, payload: dict, identity: Identity = Depends(require_identity), db: Session = Depends(get_db)
) -> dict:
    return notification_dict(service.mark(identity, notification_id, payload, db=db))


@router.delete("/{notification_id}")
def delete(notification_id: str, identity: Identity = Depends(require_identity), db: Session = Depends(get_db)) -> dict:
    service.delete_notification(identity, notification_id, db=db)
    return {"ok": True, "id": notification_id}
