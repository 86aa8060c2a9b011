from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from qtrack.api.deps import get_db, get_identity
from qtrack.api.serializers import answers_list, form_dict, question_detail, questions_list
from qtrack.auth.authorizer import can_access_project
from qtrack.auth.identity import Identity
from qtrack.questions import answers, forms, service
from qtrack.questions.service import QuestionFilters

router = APIRouter()


@router.get("/{project_id}/questions")
def list_questions(
    project_id: str,
    status: str | None = None,
    assignee_id: str | None = None,
    creator_id: str | None = None,
    priority: str | None = None,
    tag: str | None = None,
    overdue: bool = False,
    search: str | None = None,
    identity: Identity | None = Depends(get_identity),
    db: Session = Depends(get_db),
) -> dict:
    filters = QuestionFilters(
        status=status,
        assignee_id=assignee_id,
        creator_id=creator_id,
        priority=priority,
        tag=tag,
        overdue=overdue,
        search=search,
    )
    items = service.list_questions(identity, project_id, filters, db=db)
    return {"questions": questions_list(db, items)}


@router.post("/{project_id}/questions", status_code=201)
def create_question(
    project_id: str, payload: dict, identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)
) -> dict:
    q = service.create_question(identity, project_id, payload, db=db)
    return question_detail(db, q)


@router.get("/{project_id}/questions/{question_id}")
def get_question(
    project_id: str, question_id: str, identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)
) -> dict:
    return question_detail(db, service.get_question(identity, project_id, question_id, db=db))


@router.patch("/{project_id}/questions/{question_id}")
def update_question(
    project_id: str,
    question_id: str,
    payload: dict,
    identity: Identity | None = Depends(get_identity),
    db: Session = Depends(get_db),
) -> dict:
    return question_detail(db, service.update_question(identity, project_id, question_id, payload, db=db))


@router.delete("/{project_id}/questions/{question_id}")
def delete_question(
    project_id: str, question_id: str, identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)
) -> dict:
    service.delete_question(identity, project_id, question_id, db=db)
    return {"ok": True, "id": question_id}


@router.patch("/{project_id}/questions/{question_id}/status")
def change_status(
    project_id: str,
    question_id: str,
    payload: dict,
    identity: Identity | None = Depends(get_identity),
    db: Session = Depends(get_db),
) -> dict:
    q = service.change_status(identity, project_id, question_id, payload, db=db)
    return {"id": q.id, "status": q.status, "updated_at": q.updated_at}


# answers


@router.get("/{project_id}/questions/{question_id}/answers")
def list_answers(
    project_id: str, question_id: str, identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)
) -> dict:
    return {"answers": answers_list(db, answers.list_answers(identity, project_id, question_id, db=db))}


@router.post("/{project_id}/questions/{question_id}/answers", status_code=201)
def create_answer(
    project_id: str,
    question_id: str,
    payload: dict,
    identity: Identity | None = Depends(get_identity),
    db: Session = Depends(get_db),
) -> dict:
    a = answers.create_answer(identity, project_id, question_id, payload, db=db)
    return answers_list(db, [a])[0]


@router.get("/{project_id}/questions/{question_id}/answers/{answer_id}")
def get_answer(
    project_id: str,
    question_id: str,
    answer_id: str,
    identity: Identity | None = Depends(get_identity),
    db: Session = Depends(get_db),
) -> dict:
    return answers_list(db, [answers.get_answer(identity, project_id, question_id, answer_id, db=db)])[0]


@router.patch("/{project_id}/questions/{question_id}/answers/{answer_id}")
def update_answer(
    project_id: str,
    question_id: str,
    answer_id: str,
    payload: dict,
    identity: Identity | None = Depends(get_identity),
    db: Session = Depends(get_db),
) -> dict:
    a = answers.update_answer(identity, project_id, question_id, answer_id, payload, db=db)
    return answers_list(db, [a])[0]


@router.delete("/{project_id}/questions/{question_id}/answers/{answer_id}")
def delete_answer(
    project_id: str,
    question_id: str,
    answer_id: str,
    identity: Identity | None = Depends(get_identity),
    db: Session = Depends(get_db),
) -> dict:
    q = answers.delete_answer(identity, project_id, question_id, answer_id, db=db)
    return {"ok": True, "id": answer_id, "question_status": q.status}


# answer form


def _scoped_question(identity: Identity | None, project_id: str, question_id: str, db: Session) -> None:
    # Form operations are addressed through the project; reject mismatches first.
    can_access_project(identity, project_id, db=db).require()
    service.question_in_project(db, project_id=project_id, question_id=question_id)


@router.get("/{project_id}/questions/{question_id}/form")
def get_form(
    project_id: str, question_id: str, identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)
) -> dict:
    _scoped_question(identity, project_id, question_id, db)
    return form_dict(forms.get_form(question_id, db=db))


@router.post("/{project_id}/questions/{question_id}/form", status_code=201)
@router.put("/{project_id}/questions/{question_id}/form", status_code=201)
def put_form(
    project_id: str,
    question_id: str,
    payload: dict,
    identity: Identity | None = Depends(get_identity),
    db: Session = Depends(get_db),
) -> dict:
    _scoped_question(identity, project_id, question_id, db)
    return form_dict(forms.put_form(identity, question_id, payload.get("fields"), db=db))


@router.delete("/{project_id}/questions/{question_id}/form")
def delete_form(
    project_id: str, question_id: str, identity: Identity | None = Depends(get_identity), db: Session = Depends(get_db)
) -> dict:
    _scoped_question(identity, project_id, question_id, db)
    forms.delete_form(identity, question_id, db=db)
    return {"ok": True, "question_id": question_id}
