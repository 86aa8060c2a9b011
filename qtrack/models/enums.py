from __future__ import annotations

import enum


class GlobalRole(str, enum.Enum):
    ADMIN = "ADMIN"
    USER = "USER"


class ProjectRole(str, enum.Enum):
    MANAGER = "MANAGER"
    MEMBER = "MEMBER"


class InvitationStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    EXPIRED = "EXPIRED"


class QuestionStatus(str, enum.Enum):
    NEW = "NEW"
    IN_PROGRESS = "IN_PROGRESS"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    CLOSED = "CLOSED"


class QuestionPriority(str, enum.Enum):
    LOWEST = "LOWEST"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    HIGHEST = "HIGHEST"


# Sort key for "highest priority first" listings.
PRIORITY_RANK = {
    QuestionPriority.LOWEST.value: 0,
    QuestionPriority.LOW.value: 1,
    QuestionPriority.MEDIUM.value: 2,
    QuestionPriority.HIGH.value: 3,
    QuestionPriority.HIGHEST.value: 4,
}


class FieldType(str, enum.Enum):
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    TEXTAREA = "TEXTAREA"
    RADIO = "RADIO"
    FILE = "FILE"


class NotificationType(str, enum.Enum):
    NEW_QUESTION_ASSIGNED = "NEW_QUESTION_ASSIGNED"
    NEW_ANSWER_POSTED = "NEW_ANSWER_POSTED"
    ANSWERED_QUESTION_CLOSED = "ANSWERED_QUESTION_CLOSED"
    ASSIGNEE_DEADLINE_EXCEEDED = "ASSIGNEE_DEADLINE_EXCEEDED"
    REQUESTER_DEADLINE_EXCEEDED = "REQUESTER_DEADLINE_EXCEEDED"
