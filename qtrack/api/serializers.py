"""Row -> JSON dict conversion for the HTTP layer."""

from __future__ import annotations

from sqlalchemy.orm import Session

from qtrack.models.tables import (
    Answer,
    AnswerForm,
    AnswerFormData,
    AnswerFormTemplate,
    Invitation,
    MediaFile,
    Notification,
    Project,
    ProjectMember,
    ProjectTag,
    Question,
    User,
)
from qtrack.questions import answers as answers_mod
from qtrack.questions import forms
from qtrack.questions.service import tags_by_question


def user_dict(u: User | None) -> dict | None:
    if u is None:
        return None
    return {"id": u.id, "email": u.email, "name": u.name}


def project_dict(p: Project) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "creator": user_dict(p.creator),
        "created_at": p.created_at,
        "updated_at": p.updated_at,
        "member_count": len(p.members),
    }


def member_dict(m: ProjectMember) -> dict:
    return {
        "id": m.id,
        "project_id": m.project_id,
        "user_id": m.user_id,
        "role": m.role,
        "user": user_dict(m.user),
        "created_at": m.created_at,
    }


def invitation_dict(inv: Invitation, *, include_token: bool = True) -> dict:
    out = {
        "id": inv.id,
        "project_id": inv.project_id,
        "email": inv.email,
        "inviter_id": inv.inviter_id,
        "status": inv.status,
        "expires_at": inv.expires_at,
        "created_at": inv.created_at,
    }
    if include_token:
        out["token"] = inv.token
    return out


def tag_dict(t: ProjectTag) -> dict:
    return {"id": t.id, "project_id": t.project_id, "name": t.name}


def form_dict(form: AnswerForm | None) -> dict | None:
    if form is None:
        return None
    return {
        "id": form.id,
        "question_id": form.question_id,
        "fields": [
            {
                "id": f.id,
                "label": f.label,
                "field_type": f.field_type,
                "options": list(f.options or []),
                "is_required": f.is_required,
                "order": f.order,
            }
            for f in form.fields
        ],
        "created_at": form.created_at,
        "updated_at": form.updated_at,
    }


def template_dict(t: AnswerFormTemplate) -> dict:
    return {
        "id": t.id,
        "creator_id": t.creator_id,
        "name": t.name,
        "description": t.description,
        "fields": list(t.fields_json or []),
        "created_at": t.created_at,
        "updated_at": t.updated_at,
    }


def media_dict(m: MediaFile) -> dict:
    return {
        "id": m.id,
        "uploader_id": m.uploader_id,
        "file_name": m.file_name,
        "storage_url": m.storage_url,
        "file_type": m.file_type,
        "file_size": m.file_size,
        "created_at": m.created_at,
    }


def _form_value_dict(d: AnswerFormData) -> dict:
    return {"form_field_id": d.form_field_id, "value": d.value, "media_file_id": d.media_file_id}


def answers_list(db: Session, answers: list[Answer]) -> list[dict]:
    ids = [a.id for a in answers]
    media = answers_mod.attachments_by_answer(db, ids)
    values = answers_mod.form_data_by_answer(db, ids)
    return [
        {
            "id": a.id,
            "question_id": a.question_id,
            "creator_id": a.creator_id,
            "content": a.content,
            "media_files": [media_dict(m) for m in media[a.id]],
            "form_data": [_form_value_dict(v) for v in values[a.id]],
            "created_at": a.created_at,
            "updated_at": a.updated_at,
        }
        for a in answers
    ]


def _question_base(q: Question, tags: list[ProjectTag]) -> dict:
    return {
        "id": q.id,
        "project_id": q.project_id,
        "creator_id": q.creator_id,
        "assignee_id": q.assignee_id,
        "title": q.title,
        "content": q.content,
        "priority": q.priority,
        "deadline": q.deadline,
        "status": q.status,
        "tags": [tag_dict(t) for t in tags],
        "created_at": q.created_at,
        "updated_at": q.updated_at,
    }


def questions_list(db: Session, questions: list[Question]) -> list[dict]:
    tags = tags_by_question(db, [q.id for q in questions])
    return [_question_base(q, tags[q.id]) for q in questions]


def question_detail(db: Session, q: Question) -> dict:
    out = _question_base(q, tags_by_question(db, [q.id])[q.id])
    out["answer_form"] = form_dict(forms.find_form(db, q.id))
    out["answers"] = answers_list(db, answers_mod.answers_for(db, q))
    return out


def notification_dict(n: Notification) -> dict:
    return {
        "id": n.id,
        "type": n.type,
        "message": n.message,
        "related_id": n.related_id,
        "is_read": n.is_read,
        "created_at": n.created_at,
    }
