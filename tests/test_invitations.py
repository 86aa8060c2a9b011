from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient


@pytest.fixture()
def env(monkeypatch):
    from tests.utils_seed import create_schema, seed_project, seed_user, set_test_env

    set_test_env(monkeypatch)

    import qtrack.main
    from qtrack.core.db import SessionLocal

    create_schema()

    with SessionLocal() as db:
        creator = seed_user(db)
        invitee = seed_user(db)
        p = seed_project(db, creator=creator)
        out = {"creator": creator, "invitee": invitee, "project_id": p.id}
        for u in (creator, invitee):
            db.refresh(u)
        db.expunge_all()

    return TestClient(qtrack.main.app), out


def test_email_invitation_accept_flow(env):
    from tests.utils_seed import headers

    client, ids = env
    pid = ids["project_id"]
    invitee = ids["invitee"]

    r = client.post(f"/projects/{pid}/invitations", json={"type": "email", "email": invitee.email}, headers=headers(ids["creator"]))
    assert r.status_code == 201, r.text
    inv = r.json()
    assert inv["status"] == "PENDING"
    assert len(inv["token"]) == 64

    r = client.post(f"/projects/{pid}/invitations", json={"type": "email", "email": invitee.email.upper()}, headers=headers(ids["creator"]))
    assert r.status_code == 409

    public = client.get(f"/invitations/{inv['token']}")
    assert public.status_code == 200
    assert "token" not in public.json()
    assert public.json()["project"]["id"] == pid

    r = client.post("/invitations/respond", json={"token": inv["token"], "accept": True}, headers=headers(ids["creator"]))
    assert r.status_code == 403

    r = client.post("/invitations/respond", json={"token": inv["token"], "accept": True}, headers=headers(invitee))
    assert r.status_code == 200 and r.json()["status"] == "ACCEPTED"
    assert client.get(f"/projects/{pid}", headers=headers(invitee)).status_code == 200

    r = client.post("/invitations/respond", json={"token": inv["token"], "accept": False}, headers=headers(invitee))
    assert r.status_code == 400


def test_user_invitation_adds_member_atomically(env):
    from tests.utils_seed import headers

    client, ids = env
    pid = ids["project_id"]

    r = client.post(f"/projects/{pid}/invitations", json={"type": "userId", "userId": ids["invitee"].id}, headers=headers(ids["creator"]))
    assert r.status_code == 201
    assert r.json()["status"] == "ACCEPTED"

    members = client.get(f"/projects/{pid}/members", headers=headers(ids["creator"])).json()["members"]
    assert ids["invitee"].id in [m["user_id"] for m in members]

    r = client.post(f"/projects/{pid}/invitations", json={"type": "userId", "user_id": ids["invitee"].id}, headers=headers(ids["creator"]))
    assert r.status_code == 409
    r = client.post(f"/projects/{pid}/invitations", json={"type": "userId", "user_id": "ghost"}, headers=headers(ids["creator"]))
    assert r.status_code == 404
    r = client.post(f"/projects/{pid}/invitations", json={"type": "sms", "phone": "1"}, headers=headers(ids["creator"]))
    assert r.status_code == 400

    # Members cannot invite.
    r = client.post(f"/projects/{pid}/invitations", json={"type": "email", "email": "z@example.com"}, headers=headers(ids["invitee"]))
    assert r.status_code == 403


def test_expired_invitation_and_decline_and_cancel(env):
    from tests.utils_seed import headers

    from qtrack.core.db import SessionLocal
    from qtrack.models.tables import Invitation
    from qtrack.util.time import now_utc

    client, ids = env
    pid = ids["project_id"]
    invitee = ids["invitee"]

    token = client.post(f"/projects/{pid}/invitations", json={"type": "email", "email": invitee.email}, headers=headers(ids["creator"])).json()["token"]
    with SessionLocal() as db:
        inv = db.query(Invitation).filter(Invitation.token == token).one()
        inv.expires_at = now_utc() - timedelta(minutes=1)
        db.commit()

    assert client.get(f"/invitations/{token}").json()["status"] == "EXPIRED"
    r = client.post("/invitations/respond", json={"token": token, "accept": True}, headers=headers(invitee))
    assert r.status_code == 400

    # Expired rows no longer block a fresh invitation.
    r = client.post(f"/projects/{pid}/invitations", json={"type": "email", "email": invitee.email}, headers=headers(ids["creator"]))
    assert r.status_code == 201
    fresh = r.json()

    r = client.post("/invitations/respond", json={"token": fresh["token"], "accept": False}, headers=headers(invitee))
    assert r.json()["status"] == "DECLINED"
    assert client.get(f"/projects/{pid}", headers=headers(invitee)).status_code == 403

    r = client.delete(f"/projects/{pid}/invitations/{fresh['id']}", headers=headers(ids["creator"]))
    assert r.status_code == 400

    pending = client.post(f"/projects/{pid}/invitations", json={"type": "email", "email": "p@example.com"}, headers=headers(ids["creator"])).json()
    assert client.delete(f"/projects/{pid}/invitations/{pending['id']}", headers=headers(ids["creator"])).status_code == 200
    assert client.get(f"/invitations/{pending['token']}").status_code == 404
