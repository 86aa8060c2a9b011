"""Best-effort notification writer.

Callers build ``Notice`` values while handling a request and hand them to
``dispatch`` only after their own transaction has committed. A failure here is
logged and rolled back on its own; it never reaches the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from qtrack.models.enums import NotificationType
from qtrack.models.tables import Notification
from qtrack.util.ids import new_uuid
from qtrack.util.time import now_utc

log = logging.getLogger("qtrack.notifications")


@dataclass(frozen=True)
class Notice:
    user_id: str
    type: NotificationType
    message: str
    related_id: str | None = None


def question_assigned(*, assignee_id: str, question_id: str, title: str) -> Notice:
    return Notice(
        user_id=assignee_id,
        type=NotificationType.NEW_QUESTION_ASSIGNED,
        message=f'The question "{title}" has been assigned to you',
        related_id=question_id,
    )


def answer_posted(*, creator_id: str, question_id: str, title: str) -> Notice:
    return Notice(
        user_id=creator_id,
        type=NotificationType.NEW_ANSWER_POSTED,
        message=f'A new answer was posted to your question "{title}"',
        related_id=question_id,
    )


def answer_pending_approval(*, creator_id: str, question_id: str, title: str) -> Notice:
    return Notice(
        user_id=creator_id,
        type=NotificationType.NEW_ANSWER_POSTED,
        message=f'The question "{title}" has an answer awaiting your approval',
        related_id=question_id,
    )


def question_closed(*, assignee_id: str, question_id: str, title: str) -> Notice:
    return Notice(
        user_id=assignee_id,
        type=NotificationType.ANSWERED_QUESTION_CLOSED,
        message=f'The question "{title}" you answered has been closed',
        related_id=question_id,
    )


def assignee_deadline_exceeded(*, assignee_id: str, question_id: str, title: str, project_name: str) -> Notice:
    return Notice(
        user_id=assignee_id,
        type=NotificationType.ASSIGNEE_DEADLINE_EXCEEDED,
        message=f'The deadline for answering "{title}" has passed (project: {project_name})',
        related_id=question_id,
    )


def requester_deadline_exceeded(*, creator_id: str, question_id: str, title: str, project_name: str) -> Notice:
    return Notice(
        user_id=creator_id,
        type=NotificationType.REQUESTER_DEADLINE_EXCEEDED,
        message=f'The deadline of your question "{title}" has passed (project: {project_name})',
        related_id=question_id,
    )


def stage(db: Session, notice: Notice) -> Notification:
    """Add a notification row to the current transaction (no commit)."""
    row = Notification(
        id=new_uuid(),
        user_id=notice.user_id,
        type=notice.type.value,
        message=notice.message,
        related_id=notice.related_id,
        is_read=False,
        created_at=now_utc(),
    )
    db.add(row)
    return row


def dispatch(db: Session, notices: list[Notice]) -> int:
    """Write notices after the primary commit. Returns how many were stored."""

    if not notices:
        return 0
    try:
        for n in notices:
            stage(db, n)
        db.commit()
        return len(notices)
    except Exception:
        db.rollback()
        log.exception("Notification dispatch failed (%s notices)", len(notices))
        return 0
