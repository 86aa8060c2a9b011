from __future__ import annotations

import pytest
from fastapi.testclient import TestClient


@pytest.fixture()
def env(monkeypatch):
    from tests.utils_seed import create_schema, seed_member, seed_project, seed_user, set_test_env

    set_test_env(monkeypatch)

    import qtrack.main
    from qtrack.core.db import SessionLocal
    from qtrack.models.enums import GlobalRole

    create_schema()

    with SessionLocal() as db:
        creator = seed_user(db)
        assignee = seed_user(db)
        other = seed_user(db)
        admin = seed_user(db, role=GlobalRole.ADMIN)
        p = seed_project(db, creator=creator)
        seed_member(db, project=p, user=assignee)
        seed_member(db, project=p, user=other)
        ids = {
            "creator": creator,
            "assignee": assignee,
            "other": other,
            "admin": admin,
            "project_id": p.id,
        }
        for u in (creator, assignee, other, admin):
            db.refresh(u)
        db.expunge_all()

    return TestClient(qtrack.main.app), ids


def _notifications(user_id: str) -> list:
    from qtrack.core.db import SessionLocal
    from qtrack.models.tables import Notification

    with SessionLocal() as db:
        return db.query(Notification).filter(Notification.user_id == user_id).all()


def test_create_question_with_form_notifies_assignee(env):
    from tests.utils_seed import headers

    client, ids = env
    pid = ids["project_id"]

    r = client.post(
        f"/projects/{pid}/questions",
        json={
            "title": "Headcount?",
            "content": "How many people join in Q3?",
            "assigneeId": ids["assignee"].id,
            "priority": "HIGH",
            "answerForm": {"fields": [{"label": "Amount", "fieldType": "NUMBER", "isRequired": True}]},
        },
        headers=headers(ids["creator"]),
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["status"] == "NEW"
    assert body["priority"] == "HIGH"
    assert [f["label"] for f in body["answer_form"]["fields"]] == ["Amount"]

    notes = _notifications(ids["assignee"].id)
    assert len(notes) == 1
    assert notes[0].type == "NEW_QUESTION_ASSIGNED"
    assert "Headcount?" in notes[0].message
    assert notes[0].related_id == body["id"]


def test_create_question_assignee_checks(env):
    from tests.utils_seed import headers
    from qtrack.util.ids import new_uuid

    client, ids = env
    pid = ids["project_id"]
    base = {"title": "T", "content": "C"}

    r = client.post(f"/projects/{pid}/questions", json={**base, "assignee_id": new_uuid()}, headers=headers(ids["creator"]))
    assert r.status_code == 404

    r = client.post(f"/projects/{pid}/questions", json={**base, "assignee_id": ids["admin"].id}, headers=headers(ids["creator"]))
    assert r.status_code == 400

    r = client.post(f"/projects/{pid}/questions", json={**base, "assignee_id": ids["assignee"].id})
    assert r.status_code == 401
    assert "error" in r.json()


def test_status_machine(env):
    from tests.utils_seed import headers

    client, ids = env
    pid = ids["project_id"]
    r = client.post(
        f"/projects/{pid}/questions",
        json={"title": "T", "content": "C", "assignee_id": ids["assignee"].id},
        headers=headers(ids["creator"]),
    )
    qid = r.json()["id"]
    url = f"/projects/{pid}/questions/{qid}/status"

    assert client.patch(url, json={"status": "NEW"}, headers=headers(ids["assignee"])).status_code == 400
    assert client.patch(url, json={"status": "DONE"}, headers=headers(ids["assignee"])).status_code == 400
    assert client.patch(url, json={"status": "IN_PROGRESS"}, headers=headers(ids["other"])).status_code == 403
    assert client.patch(url, json={"status": "PENDING_APPROVAL"}, headers=headers(ids["assignee"])).status_code == 400

    r = client.patch(url, json={"status": "IN_PROGRESS"}, headers=headers(ids["assignee"]))
    assert r.status_code == 200 and r.json()["status"] == "IN_PROGRESS"

    r = client.post(f"/projects/{pid}/questions/{qid}/answers", json={"content": "42"}, headers=headers(ids["assignee"]))
    assert r.status_code == 201, r.text

    assert client.patch(url, json={"status": "CLOSED"}, headers=headers(ids["assignee"])).status_code == 403
    r = client.patch(url, json={"status": "PENDING_APPROVAL"}, headers=headers(ids["assignee"]))
    assert r.status_code == 200
    r = client.patch(url, json={"status": "CLOSED"}, headers=headers(ids["creator"]))
    assert r.status_code == 200 and r.json()["status"] == "CLOSED"

    types = sorted(n.type for n in _notifications(ids["assignee"].id))
    assert types == ["ANSWERED_QUESTION_CLOSED", "NEW_QUESTION_ASSIGNED"]

    # Closed questions are frozen.
    r = client.patch(f"/projects/{pid}/questions/{qid}", json={"title": "New"}, headers=headers(ids["creator"]))
    assert r.status_code == 400
    r = client.put(
        f"/projects/{pid}/questions/{qid}/form",
        json={"fields": [{"label": "X", "fieldType": "TEXT"}]},
        headers=headers(ids["creator"]),
    )
    assert r.status_code == 400
    r = client.post(f"/projects/{pid}/questions/{qid}/answers", json={"content": "late"}, headers=headers(ids["assignee"]))
    assert r.status_code == 400


def test_list_visibility_and_priority_order(env):
    from tests.utils_seed import headers

    client, ids = env
    pid = ids["project_id"]
    for title, prio, assignee in [("low", "LOW", "assignee"), ("top", "HIGHEST", "assignee"), ("mine", "MEDIUM", "other")]:
        r = client.post(
            f"/projects/{pid}/questions",
            json={"title": title, "content": "c", "assignee_id": ids[assignee].id, "priority": prio},
            headers=headers(ids["creator"]),
        )
        assert r.status_code == 201

    r = client.get(f"/projects/{pid}/questions", headers=headers(ids["creator"]))
    assert [q["title"] for q in r.json()["questions"]] == ["top", "mine", "low"]

    r = client.get(f"/projects/{pid}/questions", headers=headers(ids["assignee"]))
    assert [q["title"] for q in r.json()["questions"]] == ["top", "low"]

    r = client.get(f"/projects/{pid}/questions", params={"search": "mi"}, headers=headers(ids["admin"]))
    assert [q["title"] for q in r.json()["questions"]] == ["mine"]

    other_q = r.json()["questions"][0]["id"]
    r = client.get(f"/projects/{pid}/questions/{other_q}", headers=headers(ids["assignee"]))
    assert r.status_code == 403


def test_question_must_belong_to_project(env):
    from tests.utils_seed import headers, seed_project, seed_question

    client, ids = env
    from qtrack.core.db import SessionLocal

    with SessionLocal() as db:
        other_project = seed_project(db, creator=ids["creator"], name="Other")
        q = seed_question(db, project=other_project, creator=ids["creator"], assignee=ids["creator"])
        qid = q.id

    r = client.get(f"/projects/{ids['project_id']}/questions/{qid}", headers=headers(ids["creator"]))
    assert r.status_code == 400


def test_update_reassign_and_delete(env):
    from tests.utils_seed import headers

    client, ids = env
    pid = ids["project_id"]
    tag = client.post(f"/projects/{pid}/tags", json={"name": "finance"}, headers=headers(ids["creator"])).json()

    r = client.post(
        f"/projects/{pid}/questions",
        json={"title": "T", "content": "C", "assignee_id": ids["assignee"].id, "tag_ids": [tag["id"]]},
        headers=headers(ids["creator"]),
    )
    qid = r.json()["id"]
    assert [t["name"] for t in r.json()["tags"]] == ["finance"]

    r = client.patch(f"/projects/{pid}/questions/{qid}", json={"assignee_id": ids["other"].id}, headers=headers(ids["assignee"]))
    assert r.status_code == 403

    r = client.patch(
        f"/projects/{pid}/questions/{qid}",
        json={"assignee_id": ids["other"].id, "tag_ids": []},
        headers=headers(ids["creator"]),
    )
    assert r.status_code == 200
    assert r.json()["assignee_id"] == ids["other"].id
    assert r.json()["tags"] == []
    assert [n.type for n in _notifications(ids["other"].id)] == ["NEW_QUESTION_ASSIGNED"]

    r = client.delete(f"/projects/{pid}/questions/{qid}", headers=headers(ids["creator"]))
    assert r.status_code == 200
    assert client.get(f"/projects/{pid}/questions/{qid}", headers=headers(ids["creator"])).status_code == 404
    assert _notifications(ids["other"].id) == []


def test_post_form_replaces_existing_and_respects_freeze(env):
    from tests.utils_seed import headers

    client, ids = env
    pid = ids["project_id"]
    qid = client.post(
        f"/projects/{pid}/questions",
        json={
            "title": "T",
            "content": "C",
            "assignee_id": ids["assignee"].id,
            "answerForm": {
                "fields": [{"label": "Amount", "fieldType": "NUMBER"}, {"label": "Why", "fieldType": "TEXTAREA"}]
            },
        },
        headers=headers(ids["creator"]),
    ).json()["id"]
    url = f"/projects/{pid}/questions/{qid}/form"

    r = client.post(url, json={"fields": [{"label": "Name", "fieldType": "TEXT", "isRequired": True}]}, headers=headers(ids["creator"]))
    assert r.status_code == 201, r.text
    assert [(f["label"], f["order"]) for f in r.json()["fields"]] == [("Name", 0)]

    r = client.put(url, json={"fields": [{"label": "Only", "fieldType": "NUMBER"}]}, headers=headers(ids["creator"]))
    assert r.status_code == 201
    assert [f["label"] for f in client.get(url, headers=headers(ids["creator"])).json()["fields"]] == ["Only"]

    assert client.post(url, json={"fields": [{"label": "X", "fieldType": "TEXT"}]}, headers=headers(ids["assignee"])).status_code == 403

    field_id = client.get(url, headers=headers(ids["creator"])).json()["fields"][0]["id"]
    r = client.post(
        f"/projects/{pid}/questions/{qid}/answers",
        json={"form_data": [{"form_field_id": field_id, "value": "3"}]},
        headers=headers(ids["assignee"]),
    )
    assert r.status_code == 201, r.text
    r = client.patch(f"/projects/{pid}/questions/{qid}/status", json={"status": "CLOSED"}, headers=headers(ids["creator"]))
    assert r.json()["status"] == "CLOSED"

    r = client.post(url, json={"fields": [{"label": "Late", "fieldType": "TEXT"}]}, headers=headers(ids["creator"]))
    assert r.status_code == 400
    assert [f["label"] for f in client.get(url, headers=headers(ids["creator"])).json()["fields"]] == ["Only"]


def test_any_member_can_read_the_form(env):
    from tests.utils_seed import headers

    client, ids = env
    pid = ids["project_id"]
    qid = client.post(
        f"/projects/{pid}/questions",
        json={
            "title": "T",
            "content": "C",
            "assignee_id": ids["assignee"].id,
            "answer_form": {"fields": [{"label": "Amount", "field_type": "NUMBER"}]},
        },
        headers=headers(ids["creator"]),
    ).json()["id"]

    # "other" is a plain member: neither creator nor assignee of the question.
    r = client.get(f"/projects/{pid}/questions/{qid}/form", headers=headers(ids["other"]))
    assert r.status_code == 200
    assert [f["label"] for f in r.json()["fields"]] == ["Amount"]
    assert client.get(f"/projects/{pid}/questions/{qid}", headers=headers(ids["other"])).status_code == 403
