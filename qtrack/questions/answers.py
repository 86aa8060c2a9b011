from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from qtrack.auth.authorizer import can_access_project, is_project_manager
from qtrack.auth.identity import Identity
from qtrack.core.audit import audit
from qtrack.core.errors import Forbidden, NotFound, ValidationFailed
from qtrack.models.enums import FieldType, QuestionStatus
from qtrack.models.tables import Answer, AnswerFormData, AnswerFormField, AnswerMediaFile, MediaFile, Question
from qtrack.notifications import dispatcher
from qtrack.questions import forms
from qtrack.questions.service import get_question, question_in_project
from qtrack.schemas.common import validate_payload
from qtrack.schemas.questions import AnswerCreate, AnswerUpdate, FormDataIn
from qtrack.util.ids import new_uuid
from qtrack.util.time import now_utc

log = logging.getLogger("qtrack.answers")


def _check_form_data(fields: list[AnswerFormField], submitted: list[FormDataIn]) -> None:
    by_id = {f.id: f for f in fields}
    seen: set[str] = set()
    for item in submitted:
        if item.form_field_id not in by_id:
            raise ValidationFailed(f"Form field {item.form_field_id} does not belong to this question's form")
        if item.form_field_id in seen:
            raise ValidationFailed(f"Form field {item.form_field_id} was submitted more than once")
        seen.add(item.form_field_id)
        field = by_id[item.form_field_id]
        if field.field_type == FieldType.RADIO.value and item.value and item.value not in field.options:
            raise ValidationFailed(f'"{item.value}" is not a valid option for "{field.label}"')

    provided = {i.form_field_id: i for i in submitted}
    for f in fields:
        if not f.is_required:
            continue
        item = provided.get(f.id)
        if f.field_type == FieldType.FILE.value:
            ok = item is not None and bool(item.media_file_id)
        else:
            ok = item is not None and item.value is not None and item.value.strip() != ""
        if not ok:
            raise ValidationFailed(f'Required field "{f.label}" is missing')


def _check_media(db: Session, identity: Identity, media_ids: set[str]) -> None:
    if not media_ids:
        return
    owned = db.execute(
        select(MediaFile.id).where(MediaFile.id.in_(media_ids), MediaFile.uploader_id == identity.id)
    ).scalars().all()
    if len(owned) != len(media_ids):
        raise ValidationFailed("Some media files do not exist or were not uploaded by you")


def create_answer(
    identity: Identity | None, project_id: str, question_id: str, payload: dict, *, db: Session
) -> Answer:
    """Post an answer.

    Free-form questions need non-blank content. When the question has a form,
    every required field must be filled and submitted field ids must belong to
    that form. The first answer moves a NEW question to IN_PROGRESS.
    """

    can_access_project(identity, project_id, db=db).require()
    question = question_in_project(db, project_id=project_id, question_id=question_id)
    if question.status == QuestionStatus.CLOSED.value:
        raise ValidationFailed("A closed question cannot be answered")
    if not identity.is_admin and question.assignee_id != identity.id:
        raise Forbidden("Only the assignee can answer this question")

    data = validate_payload(AnswerCreate, payload)
    form = forms.find_form(db, question.id)
    if form is None:
        if not data.content.strip():
            raise ValidationFailed("Answer content is required")
        if data.form_data:
            raise ValidationFailed("This question has no answer form")
    else:
        _check_form_data(list(form.fields), data.form_data)

    media_ids = set(data.media_file_ids) | {i.media_file_id for i in data.form_data if i.media_file_id}
    _check_media(db, identity, media_ids)

    now = now_utc()
    answer = Answer(
        id=new_uuid(),
        question_id=question.id,
        creator_id=identity.id,
        content=data.content,
        created_at=now,
        updated_at=now,
    )
    try:
        db.add(answer)
        db.flush()
        for mid in dict.fromkeys(data.media_file_ids):
            db.add(AnswerMediaFile(answer_id=answer.id, media_file_id=mid))
        for item in data.form_data:
            db.add(
                AnswerFormData(
                    id=new_uuid(),
                    answer_id=answer.id,
                    form_field_id=item.form_field_id,
                    value=item.value,
                    media_file_id=item.media_file_id,
                )
            )
        if question.status == QuestionStatus.NEW.value:
            question.status = QuestionStatus.IN_PROGRESS.value
        question.updated_at = now
        db.commit()
    except Exception:
        db.rollback()
        raise

    log.info("Answer %s posted to question %s by %s", answer.id, question.id, identity.id)
    dispatcher.dispatch(
        db, [dispatcher.answer_posted(creator_id=question.creator_id, question_id=question.id, title=question.title)]
    )
    return answer


def _answer_in_question(db: Session, question: Question, answer_id: str) -> Answer:
    answer = db.get(Answer, answer_id)
    if answer is None:
        raise NotFound("Answer not found")
    if answer.question_id != question.id:
        raise ValidationFailed("The answer does not belong to this question")
    return answer


def _load_for_change(
    identity: Identity | None, project_id: str, question_id: str, answer_id: str, db: Session, *, action: str
) -> tuple[Question, Answer]:
    """Resolve a question/answer pair the caller may change: answer creator, manager or admin, never on CLOSED."""

    access = can_access_project(identity, project_id, db=db).require()
    question = question_in_project(db, project_id=project_id, question_id=question_id)
    answer = _answer_in_question(db, question, answer_id)
    if not is_project_manager(identity, access.project) and answer.creator_id != identity.id:
        raise Forbidden(f"You do not have permission to {action} this answer")
    if question.status == QuestionStatus.CLOSED.value:
        raise ValidationFailed(f"Answers of a closed question cannot be {action}d")
    return question, answer


def get_answer(identity: Identity | None, project_id: str, question_id: str, answer_id: str, *, db: Session) -> Answer:
    access = can_access_project(identity, project_id, db=db).require()
    question = question_in_project(db, project_id=project_id, question_id=question_id)
    answer = _answer_in_question(db, question, answer_id)
    if not is_project_manager(identity, access.project) and identity.id not in (
        question.creator_id,
        question.assignee_id,
        answer.creator_id,
    ):
        raise Forbidden("You do not have access to this answer")
    return answer


def update_answer(
    identity: Identity | None, project_id: str, question_id: str, answer_id: str, payload: dict, *, db: Session
) -> Answer:
    """Edit an answer. Given ``media_file_ids`` / ``form_data`` lists replace the stored ones."""

    question, answer = _load_for_change(identity, project_id, question_id, answer_id, db, action="update")
    data = validate_payload(AnswerUpdate, payload)

    form = forms.find_form(db, question.id)
    if form is None:
        if data.content is not None and not data.content.strip():
            raise ValidationFailed("Answer content is required")
        if data.form_data:
            raise ValidationFailed("This question has no answer form")
    elif data.form_data is not None:
        _check_form_data(list(form.fields), data.form_data)

    media_ids = set(data.media_file_ids or []) | {i.media_file_id for i in data.form_data or [] if i.media_file_id}
    _check_media(db, identity, media_ids)

    try:
        if data.content is not None:
            answer.content = data.content
        if data.media_file_ids is not None:
            db.execute(
                delete(AnswerMediaFile)
                .where(AnswerMediaFile.answer_id == answer.id)
                .execution_options(synchronize_session=False)
            )
            for mid in dict.fromkeys(data.media_file_ids):
                db.add(AnswerMediaFile(answer_id=answer.id, media_file_id=mid))
        if data.form_data is not None:
            db.execute(
                delete(AnswerFormData)
                .where(AnswerFormData.answer_id == answer.id)
                .execution_options(synchronize_session=False)
            )
            for item in data.form_data:
                db.add(
                    AnswerFormData(
                        id=new_uuid(),
                        answer_id=answer.id,
                        form_field_id=item.form_field_id,
                        value=item.value,
                        media_file_id=item.media_file_id,
                    )
                )
        answer.updated_at = now_utc()
        db.commit()
    except Exception:
        db.rollback()
        raise
    return answer


def delete_answer(
    identity: Identity | None, project_id: str, question_id: str, answer_id: str, *, db: Session
) -> Question:
    """Delete an answer with its form values and attachment links.

    Removing the last answer of an IN_PROGRESS question moves it back to NEW,
    which also unfreezes its answer form. Returns the question.
    """

    question, answer = _load_for_change(identity, project_id, question_id, answer_id, db, action="delete")

    try:
        for stmt in (
            delete(AnswerFormData).where(AnswerFormData.answer_id == answer.id),
            delete(AnswerMediaFile).where(AnswerMediaFile.answer_id == answer.id),
            delete(Answer).where(Answer.id == answer.id),
        ):
            db.execute(stmt.execution_options(synchronize_session=False))
        if forms.count_answers(db, question.id) == 0 and question.status == QuestionStatus.IN_PROGRESS.value:
            question.status = QuestionStatus.NEW.value
            question.updated_at = now_utc()
        audit(
            db,
            user_id=identity.id,
            event_type="ANSWER_DELETED",
            message=f"answer={answer.id} question={question.id}",
            context={"answer_id": answer.id, "question_id": question.id, "answer_creator_id": answer.creator_id},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.expire_all()
    log.info("Answer %s deleted from question %s by %s", answer_id, question.id, identity.id)
    return question


def list_answers(identity: Identity | None, project_id: str, question_id: str, *, db: Session) -> list[Answer]:
    question = get_question(identity, project_id, question_id, db=db)
    return answers_for(db, question)


def answers_for(db: Session, question: Question) -> list[Answer]:
    return list(
        db.execute(
            select(Answer).where(Answer.question_id == question.id).order_by(Answer.created_at.asc(), Answer.id.asc())
        ).scalars().all()
    )


def attachments_by_answer(db: Session, answer_ids: list[str]) -> dict[str, list[MediaFile]]:
    out: dict[str, list[MediaFile]] = {aid: [] for aid in answer_ids}
    if not answer_ids:
        return out
    rows = db.execute(
        select(AnswerMediaFile.answer_id, MediaFile)
        .join(MediaFile, MediaFile.id == AnswerMediaFile.media_file_id)
        .where(AnswerMediaFile.answer_id.in_(answer_ids))
    ).all()
    for aid, media in rows:
        out[aid].append(media)
    return out


def form_data_by_answer(db: Session, answer_ids: list[str]) -> dict[str, list[AnswerFormData]]:
    out: dict[str, list[AnswerFormData]] = {aid: [] for aid in answer_ids}
    if not answer_ids:
        return out
    rows = db.execute(select(AnswerFormData).where(AnswerFormData.answer_id.in_(answer_ids))).scalars().all()
    for row in rows:
        out[row.answer_id].append(row)
    return out
