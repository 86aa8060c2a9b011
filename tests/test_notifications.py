from __future__ import annotations

import pytest
from fastapi.testclient import TestClient


@pytest.fixture()
def client(monkeypatch):
    from tests.utils_seed import create_schema, set_test_env

    set_test_env(monkeypatch)

    import qtrack.main

    create_schema()
    return TestClient(qtrack.main.app)


def _seed_inbox(n: int):
    from tests.utils_seed import seed_user

    from qtrack.core.db import SessionLocal
    from qtrack.models.enums import NotificationType
    from qtrack.notifications.dispatcher import Notice, dispatch

    with SessionLocal() as db:
        owner = seed_user(db)
        stranger = seed_user(db)
        for i in range(n):
            dispatch(db, [Notice(user_id=owner.id, type=NotificationType.NEW_ANSWER_POSTED, message=f"m{i}")])
        for u in (owner, stranger):
            db.refresh(u)
        db.expunge_all()
    return owner, stranger


def test_inbox_pagination_and_unread_count(client: TestClient):
    from tests.utils_seed import headers

    owner, _ = _seed_inbox(5)

    r = client.get("/notifications", params={"limit": 2}, headers=headers(owner))
    body = r.json()
    assert r.status_code == 200
    assert len(body["notifications"]) == 2
    assert body["total_unread"] == 5
    assert body["next_cursor"] == body["notifications"][-1]["id"]

    seen = [n["id"] for n in body["notifications"]]
    cursor = body["next_cursor"]
    while cursor:
        page = client.get("/notifications", params={"limit": 2, "cursor": cursor}, headers=headers(owner)).json()
        seen += [n["id"] for n in page["notifications"]]
        cursor = page["next_cursor"]
    assert len(seen) == len(set(seen)) == 5

    assert client.get("/notifications", params={"cursor": "bogus"}, headers=headers(owner)).status_code == 400


def test_mark_read_ownership_and_read_all(client: TestClient):
    from tests.utils_seed import headers

    owner, stranger = _seed_inbox(3)
    first = client.get("/notifications", headers=headers(owner)).json()["notifications"][0]["id"]

    assert client.patch(f"/notifications/{first}", json={"is_read": True}, headers=headers(stranger)).status_code == 403
    assert client.patch(f"/notifications/{first}", json={"is_read": "yes"}, headers=headers(owner)).status_code == 400
    r = client.patch(f"/notifications/{first}", json={"isRead": True}, headers=headers(owner))
    assert r.status_code == 200 and r.json()["is_read"] is True

    r = client.get("/notifications", params={"unread": "true"}, headers=headers(owner))
    assert len(r.json()["notifications"]) == 2

    assert client.post("/notifications/read-all", headers=headers(owner)).json()["updated"] == 2
    assert client.get("/notifications", headers=headers(owner)).json()["total_unread"] == 0

    assert client.delete(f"/notifications/{first}", headers=headers(stranger)).status_code == 403
    assert client.delete(f"/notifications/{first}", headers=headers(owner)).status_code == 200
    assert client.delete(f"/notifications/{first}", headers=headers(owner)).status_code == 404
    assert client.get("/notifications").status_code == 401


def test_dispatch_failure_is_swallowed(monkeypatch):
    from tests.utils_seed import create_schema, set_test_env

    set_test_env(monkeypatch)

    from qtrack.core.db import SessionLocal
    from qtrack.models.enums import NotificationType
    from qtrack.notifications.dispatcher import Notice, dispatch
    from qtrack.util.ids import new_uuid

    create_schema()

    with SessionLocal() as db:
        # Unknown user violates the FK; dispatch must log and return 0, not raise.
        n = dispatch(db, [Notice(user_id=new_uuid(), type=NotificationType.NEW_QUESTION_ASSIGNED, message="x")])
        assert n == 0
