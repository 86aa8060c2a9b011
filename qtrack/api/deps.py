from __future__ import annotations

from fastapi import Depends, Header

from qtrack.auth.identity import Identity, resolve_identity
from qtrack.core.db import SessionLocal
from qtrack.core.errors import Unauthenticated


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_identity(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_user_email: str | None = Header(default=None, alias="X-User-Email"),
    x_user_role: str | None = Header(default=None, alias="X-User-Role"),
) -> Identity | None:
    return resolve_identity(x_user_id, x_user_email, x_user_role)


def require_identity(identity: Identity | None = Depends(get_identity)) -> Identity:
    if identity is None:
        raise Unauthenticated()
    return identity
