from __future__ import annotations

import pytest

FIELDS = [
    {"label": "Name", "fieldType": "TEXT", "isRequired": True},
    {"label": "Size", "field_type": "RADIO", "options": ["S", "M", ""], "order": 9},
    {"label": "Attachment", "field_type": "FILE"},
]


def _setup(monkeypatch):
    from tests.utils_seed import create_schema, set_test_env

    set_test_env(monkeypatch)
    create_schema()


def test_put_form_creates_then_fully_replaces(monkeypatch):
    _setup(monkeypatch)
    from tests.utils_seed import ident, seed_member, seed_project, seed_question, seed_user

    from qtrack.core.db import SessionLocal
    from qtrack.models.tables import AnswerFormField, AuditLog
    from qtrack.questions.forms import get_form, put_form

    with SessionLocal() as db:
        creator = seed_user(db)
        assignee = seed_user(db)
        p = seed_project(db, creator=creator)
        seed_member(db, project=p, user=assignee)
        q = seed_question(db, project=p, creator=creator, assignee=assignee)

        form = put_form(ident(creator), q.id, FIELDS, db=db)
        first_ids = {f.id for f in form.fields}
        assert [f.label for f in form.fields] == ["Name", "Size", "Attachment"]
        assert [f.order for f in form.fields] == [0, 1, 2]
        assert form.fields[1].options == ["S", "M"]
        assert form.fields[0].is_required is True

        form2 = put_form(ident(creator), q.id, [{"label": "Only", "fieldType": "NUMBER"}], db=db)
        assert form2.id == form.id
        db.expire_all()
        rows = db.query(AnswerFormField).filter(AnswerFormField.answer_form_id == form.id).all()
        assert [r.label for r in rows] == ["Only"]
        assert not first_ids & {r.id for r in rows}

        assert [f.label for f in get_form(q.id, db=db).fields] == ["Only"]
        events = {a.event_type for a in db.query(AuditLog).filter(AuditLog.user_id == creator.id).all()}
        assert {"ANSWER_FORM_CREATED", "ANSWER_FORM_REPLACED"} <= events


def test_put_form_is_idempotent(monkeypatch):
    _setup(monkeypatch)
    from tests.utils_seed import ident, seed_project, seed_question, seed_user

    from qtrack.core.db import SessionLocal
    from qtrack.questions.forms import put_form

    def shape(form):
        return [(f.label, f.field_type, list(f.options), f.is_required, f.order) for f in form.fields]

    with SessionLocal() as db:
        creator = seed_user(db)
        p = seed_project(db, creator=creator)
        q = seed_question(db, project=p, creator=creator, assignee=creator)

        a = shape(put_form(ident(creator), q.id, FIELDS, db=db))
        db.expire_all()
        b = shape(put_form(ident(creator), q.id, FIELDS, db=db))
        assert a == b


@pytest.mark.parametrize(
    "fields",
    [
        [],
        "not-a-list",
        [{"label": "", "fieldType": "TEXT"}],
        [{"label": "x" * 101, "fieldType": "TEXT"}],
        [{"label": "Pick", "fieldType": "RADIO", "options": []}],
        [{"label": "Odd", "fieldType": "COLOR"}],
    ],
)
def test_put_form_rejects_bad_fields_without_writing(monkeypatch, fields):
    _setup(monkeypatch)
    from tests.utils_seed import ident, seed_project, seed_question, seed_user

    from qtrack.core.db import SessionLocal
    from qtrack.core.errors import ValidationFailed
    from qtrack.questions.forms import find_form, put_form

    with SessionLocal() as db:
        creator = seed_user(db)
        p = seed_project(db, creator=creator)
        q = seed_question(db, project=p, creator=creator, assignee=creator)

        with pytest.raises(ValidationFailed):
            put_form(ident(creator), q.id, fields, db=db)
        assert find_form(db, q.id) is None


def test_form_frozen_once_answered_or_closed(monkeypatch):
    _setup(monkeypatch)
    from tests.utils_seed import ident, seed_answer, seed_form, seed_project, seed_question, seed_user

    from qtrack.core.db import SessionLocal
    from qtrack.core.errors import ValidationFailed
    from qtrack.models.enums import QuestionStatus
    from qtrack.questions.forms import delete_form, get_form, put_form

    with SessionLocal() as db:
        creator = seed_user(db)
        p = seed_project(db, creator=creator)
        q = seed_question(db, project=p, creator=creator, assignee=creator)
        seed_form(db, question=q, fields=[("Name", "TEXT", True)])
        seed_answer(db, question=q, creator=creator)

        with pytest.raises(ValidationFailed):
            put_form(ident(creator), q.id, FIELDS, db=db)
        with pytest.raises(ValidationFailed):
            delete_form(ident(creator), q.id, db=db)
        assert [f.label for f in get_form(q.id, db=db).fields] == ["Name"]

        closed = seed_question(db, project=p, creator=creator, assignee=creator, status=QuestionStatus.CLOSED)
        with pytest.raises(ValidationFailed):
            put_form(ident(creator), closed.id, FIELDS, db=db)


def test_form_editor_permissions(monkeypatch):
    _setup(monkeypatch)
    from tests.utils_seed import ident, seed_member, seed_project, seed_question, seed_user

    from qtrack.core.db import SessionLocal
    from qtrack.core.errors import Forbidden, NotFound, Unauthenticated
    from qtrack.models.enums import GlobalRole, ProjectRole
    from qtrack.questions.forms import delete_form, get_form, put_form
    from qtrack.util.ids import new_uuid

    with SessionLocal() as db:
        creator = seed_user(db)
        manager = seed_user(db)
        admin = seed_user(db, role=GlobalRole.ADMIN)
        p = seed_project(db, creator=creator)
        seed_member(db, project=p, user=manager, role=ProjectRole.MANAGER)
        q = seed_question(db, project=p, creator=creator, assignee=manager)

        with pytest.raises(Unauthenticated):
            put_form(None, q.id, FIELDS, db=db)
        with pytest.raises(NotFound):
            put_form(ident(creator), new_uuid(), FIELDS, db=db)
        with pytest.raises(Forbidden):
            put_form(ident(manager), q.id, FIELDS, db=db)

        put_form(ident(admin), q.id, FIELDS, db=db)
        delete_form(ident(creator), q.id, db=db)
        with pytest.raises(NotFound):
            get_form(q.id, db=db)
        with pytest.raises(NotFound):
            delete_form(ident(creator), q.id, db=db)
