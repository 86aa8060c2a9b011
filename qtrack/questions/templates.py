"""Per-user answer form templates.

A template is a named, validated field list stored as JSON. It can seed a
question's answer form at creation time. Templates are private to their
creator; nobody else can read or change them, admins included.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from qtrack.auth.identity import Identity
from qtrack.core.errors import Forbidden, NotFound, Unauthenticated, ValidationFailed
from qtrack.models.tables import AnswerFormTemplate
from qtrack.questions import forms
from qtrack.schemas.common import validate_payload
from qtrack.schemas.questions import FormFieldIn, TemplateCreate, TemplateUpdate
from qtrack.util.ids import new_uuid
from qtrack.util.time import now_utc

log = logging.getLogger("qtrack.templates")


def fields_json(fields: list[FormFieldIn]) -> list[dict]:
    return [
        {
            "label": f.label,
            "field_type": f.field_type.value,
            "options": list(f.options),
            "is_required": f.is_required,
            "order": position,
        }
        for position, f in enumerate(fields)
    ]


def new_template(
    *, creator_id: str, name: str, description: str | None, fields: list[FormFieldIn], now: datetime
) -> AnswerFormTemplate:
    return AnswerFormTemplate(
        id=new_uuid(),
        creator_id=creator_id,
        name=name,
        description=description,
        fields_json=fields_json(fields),
        created_at=now,
        updated_at=now,
    )


def _owned(identity: Identity | None, template_id: str, db: Session) -> AnswerFormTemplate:
    if identity is None:
        raise Unauthenticated()
    template = db.get(AnswerFormTemplate, template_id)
    if template is None:
        raise NotFound("Template not found")
    if template.creator_id != identity.id:
        raise Forbidden("You do not have access to this template")
    return template


def list_templates(identity: Identity | None, *, search: str | None = None, db: Session) -> list[AnswerFormTemplate]:
    if identity is None:
        raise Unauthenticated()
    stmt = select(AnswerFormTemplate).where(AnswerFormTemplate.creator_id == identity.id)
    if search:
        like = f"%{search}%"
        stmt = stmt.where(or_(AnswerFormTemplate.name.ilike(like), AnswerFormTemplate.description.ilike(like)))
    stmt = stmt.order_by(AnswerFormTemplate.created_at.desc(), AnswerFormTemplate.id.desc())
    return list(db.execute(stmt).scalars().all())


def create_template(identity: Identity | None, payload: dict, *, db: Session) -> AnswerFormTemplate:
    if identity is None:
        raise Unauthenticated()
    data = validate_payload(TemplateCreate, payload)

    template = new_template(
        creator_id=identity.id, name=data.name, description=data.description, fields=data.fields, now=now_utc()
    )
    try:
        db.add(template)
        db.commit()
    except Exception:
        db.rollback()
        raise
    log.info("Template %s created by %s (%s fields)", template.id, identity.id, len(data.fields))
    return template


def get_template(identity: Identity | None, template_id: str, *, db: Session) -> AnswerFormTemplate:
    return _owned(identity, template_id, db)


def update_template(identity: Identity | None, template_id: str, payload: dict, *, db: Session) -> AnswerFormTemplate:
    template = _owned(identity, template_id, db)
    data = validate_payload(TemplateUpdate, payload)

    try:
        if data.name is not None:
            template.name = data.name
        if "description" in data.model_fields_set:
            template.description = data.description
        if data.fields is not None:
            template.fields_json = fields_json(data.fields)
        template.updated_at = now_utc()
        db.commit()
    except Exception:
        db.rollback()
        raise
    return template


def delete_template(identity: Identity | None, template_id: str, *, db: Session) -> None:
    template = _owned(identity, template_id, db)
    try:
        db.delete(template)
        db.commit()
    except Exception:
        db.rollback()
        raise


def template_fields(identity: Identity, template_id: str, *, db: Session) -> list[FormFieldIn]:
    """Fields of one of the caller's templates, re-validated for use in a new form."""

    template = db.get(AnswerFormTemplate, template_id)
    if template is None or template.creator_id != identity.id:
        raise ValidationFailed("The answer form template does not exist")
    return forms.parse_fields(list(template.fields_json or []))
