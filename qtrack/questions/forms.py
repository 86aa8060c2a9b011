"""Answer form schema engine.

A question has at most one form. Editing a form always replaces the complete
field list: existing fields are deleted and the submitted ones inserted, in
one transaction, with ``order`` taken from the submission position. Field ids
therefore change on every replace.

Once a question has answers, or is CLOSED, its form is frozen.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from qtrack.auth.identity import Identity
from qtrack.core.audit import audit
from qtrack.core.errors import Conflict, Forbidden, NotFound, Unauthenticated, ValidationFailed
from qtrack.models.enums import QuestionStatus
from qtrack.models.tables import Answer, AnswerForm, AnswerFormField, Question
from qtrack.schemas.common import validate_payload
from qtrack.schemas.questions import FormFieldIn, form_fields_adapter
from qtrack.util.ids import new_uuid
from qtrack.util.time import now_utc

log = logging.getLogger("qtrack.forms")


def count_answers(db: Session, question_id: str) -> int:
    return db.execute(select(func.count()).select_from(Answer).where(Answer.question_id == question_id)).scalar_one()


def find_form(db: Session, question_id: str) -> AnswerForm | None:
    return db.query(AnswerForm).filter(AnswerForm.question_id == question_id).one_or_none()


def parse_fields(fields: object) -> list[FormFieldIn]:
    """Structural validation of a submitted field list (non-empty, typed, RADIO has options)."""
    if not isinstance(fields, list):
        raise ValidationFailed("fields must be a non-empty list")
    return validate_payload(form_fields_adapter, fields)


def add_fields(db: Session, *, form_id: str, fields: list[FormFieldIn]) -> list[AnswerFormField]:
    rows = []
    for position, f in enumerate(fields):
        row = AnswerFormField(
            id=new_uuid(),
            answer_form_id=form_id,
            label=f.label,
            field_type=f.field_type.value,
            options=list(f.options),
            is_required=f.is_required,
            order=position,
        )
        db.add(row)
        rows.append(row)
    return rows


def _load_question(db: Session, question_id: str) -> Question:
    question = db.get(Question, question_id)
    if question is None:
        raise NotFound("Question not found")
    return question


def _require_form_editor(identity: Identity | None, question: Question) -> Identity:
    if identity is None:
        raise Unauthenticated()
    if not identity.is_admin and question.creator_id != identity.id:
        raise Forbidden("Only the question creator or an admin can change its answer form")
    return identity


def _require_mutable(db: Session, question: Question) -> None:
    if question.status == QuestionStatus.CLOSED.value:
        raise ValidationFailed("The answer form of a closed question cannot be changed")
    if count_answers(db, question.id) > 0:
        raise ValidationFailed("The question already has answers; its answer form cannot be changed")


def get_form(question_id: str, *, db: Session) -> AnswerForm:
    _load_question(db, question_id)
    form = find_form(db, question_id)
    if form is None:
        raise NotFound("This question has no answer form")
    return form


def put_form(identity: Identity | None, question_id: str, fields: object, *, db: Session) -> AnswerForm:
    """Create the form, or replace all of its fields, atomically."""

    if identity is None:
        raise Unauthenticated()
    question = _load_question(db, question_id)
    _require_form_editor(identity, question)
    _require_mutable(db, question)
    parsed = parse_fields(fields)

    now = now_utc()
    try:
        form = find_form(db, question_id)
        replaced = 0
        if form is None:
            form = AnswerForm(id=new_uuid(), question_id=question_id, created_at=now, updated_at=now)
            db.add(form)
            db.flush()
        else:
            replaced = db.execute(
                delete(AnswerFormField).where(AnswerFormField.answer_form_id == form.id)
            ).rowcount
            form.updated_at = now
        add_fields(db, form_id=form.id, fields=parsed)
        audit(
            db,
            user_id=identity.id,
            event_type="ANSWER_FORM_REPLACED" if replaced else "ANSWER_FORM_CREATED",
            message=f"question={question_id} fields={len(parsed)} replaced={replaced}",
            context={"question_id": question_id, "form_id": form.id, "replaced_fields": replaced},
        )
        db.commit()
    except IntegrityError as e:
        # Another request created the form, or an answer referencing a field landed meanwhile.
        db.rollback()
        log.warning("put_form conflict question=%s: %s", question_id, str(e))
        raise Conflict("The answer form was modified concurrently; retry") from e
    except Exception:
        db.rollback()
        raise

    return form


def delete_form(identity: Identity | None, question_id: str, *, db: Session) -> None:
    if identity is None:
        raise Unauthenticated()
    question = _load_question(db, question_id)
    _require_form_editor(identity, question)

    form = find_form(db, question_id)
    if form is None:
        raise NotFound("This question has no answer form")
    _require_mutable(db, question)

    form_id = form.id
    try:
        db.execute(delete(AnswerFormField).where(AnswerFormField.answer_form_id == form_id))
        db.execute(delete(AnswerForm).where(AnswerForm.id == form_id))
        audit(
            db,
            user_id=identity.id,
            event_type="ANSWER_FORM_DELETED",
            message=f"question={question_id}",
            context={"question_id": question_id, "form_id": form_id},
        )
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise Conflict("The answer form is in use and cannot be deleted") from e
    except Exception:
        db.rollback()
        raise
