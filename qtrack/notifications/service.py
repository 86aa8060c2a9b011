from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from qtrack.auth.identity import Identity
from qtrack.core.errors import Forbidden, NotFound, Unauthenticated, ValidationFailed
from qtrack.models.tables import Notification
from qtrack.util.pagination import keyset_page


def _require(identity: Identity | None) -> Identity:
    if identity is None:
        raise Unauthenticated()
    return identity


def _own(identity: Identity, notification_id: str, db: Session) -> Notification:
    n = db.get(Notification, notification_id)
    if n is None:
        raise NotFound("Notification not found")
    if n.user_id != identity.id:
        raise Forbidden("You do not have access to this notification")
    return n


def unread_count(db: Session, user_id: str) -> int:
    return db.execute(
        select(func.count()).select_from(Notification).where(Notification.user_id == user_id, Notification.is_read.is_(False))
    ).scalar_one()


def list_notifications(
    identity: Identity | None, *, unread_only: bool = False, limit: int = 50, cursor: str | None = None, db: Session
) -> dict:
    identity = _require(identity)
    stmt = select(Notification).where(Notification.user_id == identity.id)
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    rows, next_cursor = keyset_page(db, stmt, Notification, cursor=cursor, limit=limit)
    return {"items": rows, "next_cursor": next_cursor, "total_unread": unread_count(db, identity.id)}


def mark(identity: Identity | None, notification_id: str, payload: dict, *, db: Session) -> Notification:
    identity = _require(identity)
    is_read = (payload or {}).get("is_read", (payload or {}).get("isRead"))
    if not isinstance(is_read, bool):
        raise ValidationFailed("is_read must be a boolean")
    n = _own(identity, notification_id, db)

    try:
        n.is_read = is_read
        db.commit()
    except Exception:
        db.rollback()
        raise
    return n


def mark_all_read(identity: Identity | None, *, db: Session) -> int:
    identity = _require(identity)
    try:
        updated = db.execute(
            update(Notification)
            .where(Notification.user_id == identity.id, Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        ).rowcount
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.expire_all()
    return updated


def delete_notification(identity: Identity | None, notification_id: str, *, db: Session) -> None:
    identity = _require(identity)
    n = _own(identity, notification_id, db)
    try:
        db.delete(n)
        db.commit()
    except Exception:
        db.rollback()
        raise
