from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import Select, and_, case, delete, exists, or_, select
from sqlalchemy.orm import Session

from qtrack.auth.authorizer import can_access_project, is_project_manager
from qtrack.auth.identity import Identity
from qtrack.core.audit import audit
from qtrack.core.errors import Forbidden, NotFound, ValidationFailed
from qtrack.models.enums import PRIORITY_RANK, QuestionStatus
from qtrack.models.tables import (
    Answer,
    AnswerForm,
    AnswerFormData,
    AnswerFormField,
    AnswerMediaFile,
    Notification,
    Project,
    ProjectTag,
    Question,
    QuestionTag,
    User,
)
from qtrack.notifications import dispatcher
from qtrack.questions import forms, templates
from qtrack.schemas.common import validate_payload
from qtrack.schemas.questions import QuestionCreate, QuestionUpdate, StatusChange
from qtrack.util.ids import new_uuid
from qtrack.util.time import now_utc

log = logging.getLogger("qtrack.questions")


@dataclass(frozen=True)
class QuestionFilters:
    status: str | None = None
    assignee_id: str | None = None
    creator_id: str | None = None
    priority: str | None = None
    tag: str | None = None
    overdue: bool = False
    search: str | None = None


def question_in_project(db: Session, *, project_id: str, question_id: str) -> Question:
    question = db.get(Question, question_id)
    if question is None:
        raise NotFound("Question not found")
    if question.project_id != project_id:
        raise ValidationFailed("The question does not belong to this project")
    return question


def tags_by_question(db: Session, question_ids: list[str]) -> dict[str, list[ProjectTag]]:
    out: dict[str, list[ProjectTag]] = {qid: [] for qid in question_ids}
    if not question_ids:
        return out
    rows = db.execute(
        select(QuestionTag.question_id, ProjectTag)
        .join(ProjectTag, ProjectTag.id == QuestionTag.tag_id)
        .where(QuestionTag.question_id.in_(question_ids))
        .order_by(ProjectTag.name.asc())
    ).all()
    for qid, tag in rows:
        out[qid].append(tag)
    return out


def _require_assignee(db: Session, project: Project, assignee_id: str) -> User:
    user = db.get(User, assignee_id)
    if user is None:
        raise NotFound("Assignee not found")
    if not any(m.user_id == assignee_id for m in project.members):
        raise ValidationFailed("The assignee is not a member of this project")
    return user


def _require_tags(db: Session, project_id: str, tag_ids: list[str]) -> list[str]:
    wanted = list(dict.fromkeys(tag_ids))
    if not wanted:
        return []
    found = db.execute(
        select(ProjectTag.id).where(ProjectTag.id.in_(wanted), ProjectTag.project_id == project_id)
    ).scalars().all()
    if len(found) != len(wanted):
        raise ValidationFailed("Some tags do not exist or do not belong to this project")
    return wanted


def _can_edit(identity: Identity, project: Project, question: Question) -> bool:
    return is_project_manager(identity, project) or question.creator_id == identity.id


def create_question(identity: Identity | None, project_id: str, payload: dict, *, db: Session) -> Question:
    """Any project member may ask; the assignee is notified after commit."""

    access = can_access_project(identity, project_id, db=db).require()
    data = validate_payload(QuestionCreate, payload)
    project = access.project

    _require_assignee(db, project, data.assignee_id)
    tag_ids = _require_tags(db, project_id, data.tag_ids)
    # A template, when given, takes precedence over an inline form.
    if data.answer_form_template_id:
        form_fields = templates.template_fields(identity, data.answer_form_template_id, db=db)
    else:
        form_fields = data.answer_form.fields if data.answer_form is not None else []

    now = now_utc()
    q = Question(
        id=new_uuid(),
        project_id=project_id,
        creator_id=identity.id,
        assignee_id=data.assignee_id,
        title=data.title,
        content=data.content,
        priority=data.priority.value,
        deadline=data.deadline,
        status=QuestionStatus.NEW.value,
        is_deadline_notified=False,
        created_at=now,
        updated_at=now,
    )
    try:
        db.add(q)
        db.flush()
        for tid in tag_ids:
            db.add(QuestionTag(question_id=q.id, tag_id=tid))
        if form_fields:
            form = AnswerForm(id=new_uuid(), question_id=q.id, created_at=now, updated_at=now)
            db.add(form)
            db.flush()
            forms.add_fields(db, form_id=form.id, fields=form_fields)
        if data.save_as_template and data.template_name and data.answer_form is not None:
            db.add(
                templates.new_template(
                    creator_id=identity.id,
                    name=data.template_name,
                    description=f'Created from question "{data.title}"',
                    fields=data.answer_form.fields,
                    now=now,
                )
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    log.info("Question %s created in project %s by %s", q.id, project_id, identity.id)
    dispatcher.dispatch(
        db, [dispatcher.question_assigned(assignee_id=q.assignee_id, question_id=q.id, title=q.title)]
    )
    return q


def list_questions(
    identity: Identity | None, project_id: str, filters: QuestionFilters, *, db: Session
) -> list[Question]:
    access = can_access_project(identity, project_id, db=db).require()

    stmt = select(Question).where(Question.project_id == project_id)
    if filters.status:
        stmt = stmt.where(Question.status == filters.status)
    if filters.assignee_id:
        stmt = stmt.where(Question.assignee_id == filters.assignee_id)
    if filters.creator_id:
        stmt = stmt.where(Question.creator_id == filters.creator_id)
    if filters.priority:
        stmt = stmt.where(Question.priority == filters.priority)
    if filters.tag:
        stmt = stmt.where(
            exists()
            .where(QuestionTag.question_id == Question.id)
            .where(QuestionTag.tag_id == ProjectTag.id)
            .where(ProjectTag.name == filters.tag)
        )
    if filters.overdue:
        stmt = stmt.where(
            and_(Question.deadline.is_not(None), Question.deadline < now_utc()),
            Question.status != QuestionStatus.CLOSED.value,
        )
    if filters.search:
        like = f"%{filters.search}%"
        stmt = stmt.where(
            or_(
                Question.title.ilike(like),
                Question.content.ilike(like),
                exists().where(Answer.question_id == Question.id, Answer.content.ilike(like)),
            )
        )
    if not is_project_manager(identity, access.project):
        stmt = stmt.where(or_(Question.creator_id == identity.id, Question.assignee_id == identity.id))

    stmt = stmt.order_by(case(PRIORITY_RANK, value=Question.priority, else_=-1).desc(), Question.updated_at.desc())
    return list(db.execute(stmt).scalars().all())


def get_question(identity: Identity | None, project_id: str, question_id: str, *, db: Session) -> Question:
    access = can_access_project(identity, project_id, db=db).require()
    question = question_in_project(db, project_id=project_id, question_id=question_id)
    if not is_project_manager(identity, access.project) and identity.id not in (
        question.creator_id,
        question.assignee_id,
    ):
        raise Forbidden("You do not have access to this question")
    return question


def update_question(
    identity: Identity | None, project_id: str, question_id: str, payload: dict, *, db: Session
) -> Question:
    access = can_access_project(identity, project_id, db=db).require()
    question = question_in_project(db, project_id=project_id, question_id=question_id)
    if not _can_edit(identity, access.project, question):
        raise Forbidden("You do not have permission to edit this question")
    if question.status == QuestionStatus.CLOSED.value:
        raise ValidationFailed("A closed question cannot be edited")

    data = validate_payload(QuestionUpdate, payload)
    provided = data.model_fields_set

    reassigned = False
    if data.assignee_id and data.assignee_id != question.assignee_id:
        _require_assignee(db, access.project, data.assignee_id)
        reassigned = True
    tag_ids = _require_tags(db, project_id, data.tag_ids) if data.tag_ids is not None else None

    try:
        if data.title is not None:
            question.title = data.title
        if data.content is not None:
            question.content = data.content
        if reassigned:
            question.assignee_id = data.assignee_id
        if "deadline" in provided:
            question.deadline = data.deadline
            question.is_deadline_notified = False
        if data.priority is not None:
            question.priority = data.priority.value
        if tag_ids is not None:
            db.execute(delete(QuestionTag).where(QuestionTag.question_id == question.id))
            for tid in tag_ids:
                db.add(QuestionTag(question_id=question.id, tag_id=tid))
        question.updated_at = now_utc()
        db.commit()
    except Exception:
        db.rollback()
        raise

    if reassigned:
        dispatcher.dispatch(
            db,
            [dispatcher.question_assigned(assignee_id=question.assignee_id, question_id=question.id, title=question.title)],
        )
    return question


def change_status(
    identity: Identity | None, project_id: str, question_id: str, payload: dict, *, db: Session
) -> Question:
    """Move a question between states.

    - NEW is never a target.
    - IN_PROGRESS / PENDING_APPROVAL: the assignee, a project manager or an admin.
    - CLOSED: the question creator, a project manager or an admin.
    - PENDING_APPROVAL and CLOSED need at least one answer.
    """

    access = can_access_project(identity, project_id, db=db).require()
    question = question_in_project(db, project_id=project_id, question_id=question_id)
    status = validate_payload(StatusChange, payload).status

    manager = is_project_manager(identity, access.project)
    if status == QuestionStatus.NEW:
        raise ValidationFailed("A question cannot be moved back to NEW")
    if status in (QuestionStatus.IN_PROGRESS, QuestionStatus.PENDING_APPROVAL):
        if not manager and question.assignee_id != identity.id:
            raise Forbidden(f"Only the assignee can move the question to {status.value}")
    elif status == QuestionStatus.CLOSED:
        if not manager and question.creator_id != identity.id:
            raise Forbidden("Only the question creator can close the question")
    if status in (QuestionStatus.PENDING_APPROVAL, QuestionStatus.CLOSED):
        if forms.count_answers(db, question.id) == 0:
            raise ValidationFailed(f"The question needs at least one answer before moving to {status.value}")

    previous = question.status
    try:
        question.status = status.value
        question.updated_at = now_utc()
        db.commit()
    except Exception:
        db.rollback()
        raise

    log.info("Question %s status %s -> %s by %s", question.id, previous, status.value, identity.id)
    notices = []
    if status == QuestionStatus.CLOSED:
        notices.append(
            dispatcher.question_closed(assignee_id=question.assignee_id, question_id=question.id, title=question.title)
        )
    elif status == QuestionStatus.PENDING_APPROVAL:
        notices.append(
            dispatcher.answer_pending_approval(
                creator_id=question.creator_id, question_id=question.id, title=question.title
            )
        )
    dispatcher.dispatch(db, notices)
    return question


def purge_questions(db: Session, question_ids: Select) -> None:
    """Stage deletion of the selected questions and every row hanging off them."""

    answer_ids = select(Answer.id).where(Answer.question_id.in_(question_ids))
    form_ids = select(AnswerForm.id).where(AnswerForm.question_id.in_(question_ids))
    for stmt in (
        delete(AnswerFormData).where(AnswerFormData.answer_id.in_(answer_ids)),
        delete(AnswerMediaFile).where(AnswerMediaFile.answer_id.in_(answer_ids)),
        delete(Answer).where(Answer.question_id.in_(question_ids)),
        delete(AnswerFormField).where(AnswerFormField.answer_form_id.in_(form_ids)),
        delete(AnswerForm).where(AnswerForm.question_id.in_(question_ids)),
        delete(QuestionTag).where(QuestionTag.question_id.in_(question_ids)),
        delete(Notification).where(Notification.related_id.in_(question_ids)),
        delete(Question).where(Question.id.in_(question_ids)),
    ):
        db.execute(stmt.execution_options(synchronize_session=False))


def delete_question(identity: Identity | None, project_id: str, question_id: str, *, db: Session) -> None:
    access = can_access_project(identity, project_id, db=db).require()
    question = question_in_project(db, project_id=project_id, question_id=question_id)
    if not _can_edit(identity, access.project, question):
        raise Forbidden("You do not have permission to delete this question")

    try:
        purge_questions(db, select(Question.id).where(Question.id == question.id))
        audit(
            db,
            user_id=identity.id,
            event_type="QUESTION_DELETED",
            message=f"question={question.id} project={project_id}",
            context={"question_id": question.id, "project_id": project_id},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
