"""Media file registry and its deletion guard.

A MediaFile may be removed only while no answer attachment and no answer form
value points at it. The check and the delete are one conditional statement, so
an answer committed concurrently either blocks the delete or fails on its FK.
"""

from __future__ import annotations

import logging
import mimetypes
import secrets
import time

from sqlalchemy import delete, exists, or_, select
from sqlalchemy.orm import Session

from qtrack.auth.identity import Identity
from qtrack.core.audit import audit
from qtrack.core.config import settings
from qtrack.core.errors import Conflict, Forbidden, NotFound, Unauthenticated, ValidationFailed
from qtrack.media import object_store
from qtrack.models.tables import AnswerFormData, AnswerMediaFile, MediaFile
from qtrack.schemas.common import validate_payload
from qtrack.schemas.media import MediaRegister, UploadUrlRequest
from qtrack.util.ids import new_uuid
from qtrack.util.pagination import keyset_page
from qtrack.util.time import now_utc

log = logging.getLogger("qtrack.media")

GENERIC_CONTENT_TYPE = "application/octet-stream"


def _require(identity: Identity | None) -> Identity:
    if identity is None:
        raise Unauthenticated()
    return identity


def _owned_file(identity: Identity, file_id: str, db: Session) -> MediaFile:
    f = db.get(MediaFile, file_id)
    if f is None:
        raise NotFound("Media file not found")
    if not identity.is_admin and f.uploader_id != identity.id:
        raise Forbidden("You do not have access to this media file")
    return f


def _referenced(file_id: str):
    return or_(
        exists().where(AnswerMediaFile.media_file_id == file_id),
        exists().where(AnswerFormData.media_file_id == file_id),
    )


def list_media(
    identity: Identity | None, *, limit: int = 50, cursor: str | None = None, type_prefix: str | None = None, db: Session
) -> tuple[list[MediaFile], str | None]:
    identity = _require(identity)
    stmt = select(MediaFile)
    if not identity.is_admin:
        stmt = stmt.where(MediaFile.uploader_id == identity.id)
    if type_prefix:
        stmt = stmt.where(MediaFile.file_type.startswith(type_prefix))
    return keyset_page(db, stmt, MediaFile, cursor=cursor, limit=limit)


def register_media(identity: Identity | None, payload: dict, *, db: Session) -> MediaFile:
    identity = _require(identity)
    data = validate_payload(MediaRegister, payload)
    if data.file_size > settings.UPLOAD_MAX_BYTES:
        raise ValidationFailed(f"File is larger than {settings.UPLOAD_MAX_BYTES} bytes")

    f = MediaFile(
        id=new_uuid(),
        uploader_id=identity.id,
        file_name=data.file_name,
        storage_url=data.storage_url,
        file_type=data.file_type,
        file_size=data.file_size,
        created_at=now_utc(),
    )
    try:
        db.add(f)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return f


def get_media(identity: Identity | None, file_id: str, *, db: Session) -> MediaFile:
    return _owned_file(_require(identity), file_id, db)


def delete_media_file(identity: Identity | None, file_id: str, *, db: Session) -> dict:
    """Delete an unreferenced media file, then its blob (best effort).

    Returns ``{"id", "blob_deleted"}``.
    """

    identity = _require(identity)
    f = _owned_file(identity, file_id, db)
    if db.execute(select(_referenced(file_id))).scalar():
        raise Conflict("The media file is used by an answer and cannot be deleted")

    storage_url = f.storage_url
    try:
        deleted = db.execute(
            delete(MediaFile)
            .where(MediaFile.id == file_id, ~_referenced(file_id))
            .execution_options(synchronize_session=False)
        ).rowcount
        if deleted == 0:
            raise Conflict("The media file is used by an answer and cannot be deleted")
        audit(
            db,
            user_id=identity.id,
            event_type="MEDIA_DELETED",
            message=f"media={file_id}",
            context={"media_file_id": file_id, "storage_url": storage_url},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.expire_all()

    blob_deleted = False
    try:
        blob_deleted = object_store.delete_object(storage_url)
    except Exception:
        log.exception("Blob delete failed for media %s (%s)", file_id, storage_url)
    return {"id": file_id, "blob_deleted": blob_deleted}


def create_upload_url(identity: Identity | None, payload: dict) -> dict:
    identity = _require(identity)
    data = validate_payload(UploadUrlRequest, payload)

    expected, _ = mimetypes.guess_type(data.file_name)
    if data.content_type != GENERIC_CONTENT_TYPE and expected != data.content_type:
        raise ValidationFailed("Invalid content type for this file name")

    directory = (data.directory or "uploads").strip("/") or "uploads"
    unique_name = f"{int(time.time() * 1000)}-{secrets.token_hex(6)}-{data.file_name}"
    object_key = f"{directory}/{identity.id}/{unique_name}"

    upload_url = object_store.presigned_upload_url(object_key=object_key, expires_s=settings.UPLOAD_URL_TTL_SECONDS)
    return {
        "upload_url": upload_url,
        "url": object_store.public_url_for(object_key),
        "object_key": object_key,
        "file_name": data.file_name,
        "file_type": data.content_type,
        "expires_in": settings.UPLOAD_URL_TTL_SECONDS,
        "max_bytes": settings.UPLOAD_MAX_BYTES,
    }
