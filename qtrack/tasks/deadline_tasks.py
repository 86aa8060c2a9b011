from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from qtrack.core.celery_app import celery
from qtrack.core.db import SessionLocal
from qtrack.models.enums import QuestionStatus
from qtrack.models.tables import Project, Question
from qtrack.notifications import dispatcher
from qtrack.util.time import now_utc

log = logging.getLogger("qtrack.deadlines")

OPEN_STATUSES = (QuestionStatus.NEW.value, QuestionStatus.IN_PROGRESS.value)


def notify_overdue_questions(db: Session, now: datetime | None = None) -> dict:
    """Notify assignee and creator once per overdue open question.

    Each question is handled in its own transaction: both notifications and
    the ``is_deadline_notified`` flag commit together or not at all.
    """

    now = now or now_utc()
    rows = db.execute(
        select(Question, Project.name)
        .join(Project, Project.id == Question.project_id)
        .where(
            Question.status.in_(OPEN_STATUSES),
            Question.deadline.is_not(None),
            Question.deadline < now,
            Question.is_deadline_notified.is_(False),
        )
        .order_by(Question.deadline.asc())
    ).all()

    notified = 0
    failed = 0
    for q, project_name in rows:
        try:
            dispatcher.stage(
                db,
                dispatcher.assignee_deadline_exceeded(
                    assignee_id=q.assignee_id, question_id=q.id, title=q.title, project_name=project_name
                ),
            )
            dispatcher.stage(
                db,
                dispatcher.requester_deadline_exceeded(
                    creator_id=q.creator_id, question_id=q.id, title=q.title, project_name=project_name
                ),
            )
            q.is_deadline_notified = True
            db.commit()
            notified += 1
        except Exception as e:
            db.rollback()
            log.exception("Deadline notification failed for question %s: %s", q.id, str(e))
            failed += 1

    if notified or failed:
        log.info("Deadline check: notified=%s failed=%s", notified, failed)
    return {"ok": True, "checked": len(rows), "notified": notified, "failed": failed}


@celery.task(name="qtrack.tasks.deadline_tasks.check_deadlines")
def check_deadlines() -> dict:
    db = SessionLocal()
    try:
        return notify_overdue_questions(db)
    finally:
        db.close()
