from marketplace.models.user import User
from marketplace.services import accounts
from tests.conftest import auth_header, create_user, login, token_for

ALICE = {"username": "alice", "email": "alice@example.com", "phone": "+77011112233", "password": "pw-alice"}


def test_register_creates_seller(client, db):
    resp = client.post("/auth/register", json=ALICE)
    assert resp.status_code == 201
    user = resp.json()["user"]
    assert user["username"] == "alice"
    assert user["role"] == "seller"
    assert user["is_banned"] is False
    assert "password" not in user and "password_hash" not in user

    stored = db.query(User).filter_by(username="alice").one()
    assert stored.password_hash != "pw-alice"


def test_register_ignores_requested_role(client):
    resp = client.post("/auth/register", json=dict(ALICE, role="admin"))
    assert resp.status_code == 201
    assert resp.json()["user"]["role"] == "seller"


def test_register_duplicate_email(client, db):
    assert client.post("/auth/register", json=ALICE).status_code == 201

    resp = client.post("/auth/register", json=dict(ALICE, username="alice2"))
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "DuplicateCredential"

    # first registration is intact
    users = db.query(User).all()
    assert [u.username for u in users] == ["alice"]
    resp = client.post("/auth/login", json={"email": "alice@example.com", "password": "pw-alice"})
    assert resp.status_code == 200


def test_register_duplicate_username(client):
    client.post("/auth/register", json=ALICE)
    resp = client.post("/auth/register", json=dict(ALICE, email="other@example.com"))
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "DuplicateCredential"


def test_register_validation(client):
    resp = client.post("/auth/register", json={"username": "x", "email": "not-an-email", "phone": "1", "password": "p"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "ValidationFailed"

    resp = client.post("/auth/register", json={"username": "x", "email": "x@example.com"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "ValidationFailed"


def test_login_returns_tokens_and_user(client):
    create_user(client, "alice")
    body = login(client, "alice")
    assert body["access_token"] and body["refresh_token"]
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "alice@test.local"

    resp = client.get("/auth/me", headers=auth_header(body["access_token"]))
    assert resp.status_code == 200
    assert resp.json()["username"] == "alice"


def test_login_by_username(client):
    create_user(client, "alice")
    resp = client.post("/auth/login", json={"username": "alice", "password": "pass123"})
    assert resp.status_code == 200


def test_login_wrong_password_or_unknown_user(client):
    create_user(client, "alice")
    for body in ({"email": "alice@test.local", "password": "nope"},
                 {"email": "nobody@test.local", "password": "pass123"}):
        resp = client.post("/auth/login", json=body)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "InvalidCredential"


def test_login_banned_user(client):
    create_user(client, "mallory", banned=True)
    resp = client.post("/auth/login", json={"email": "mallory@test.local", "password": "pass123"})
    assert resp.status_code == 403


def test_refresh_issues_new_access_token(client):
    create_user(client, "alice")
    tokens = login(client, "alice")

    resp = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 200
    fresh = resp.json()["access_token"]
    assert client.get("/auth/me", headers=auth_header(fresh)).status_code == 200


def test_refresh_rejects_access_token_and_garbage(client):
    create_user(client, "alice")
    tokens = login(client, "alice")

    for bad in (tokens["access_token"], "garbage"):
        resp = client.post("/auth/refresh", json={"refresh_token": bad})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "Unauthenticated"


def test_update_profile(client):
    create_user(client, "alice")
    token = token_for(client, "alice")

    resp = client.put("/auth/me", json={"phone": "+70000000001", "password": "newpass"},
                      headers=auth_header(token))
    assert resp.status_code == 200
    assert resp.json()["user"]["phone"] == "+70000000001"
    assert client.post("/auth/login", json={"email": "alice@test.local", "password": "newpass"}).status_code == 200


def test_update_profile_duplicate_username(client):
    create_user(client, "alice")
    create_user(client, "bob")
    token = token_for(client, "alice")
    resp = client.put("/auth/me", json={"username": "bob"}, headers=auth_header(token))
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "DuplicateCredential"


def test_delete_self(client):
    create_user(client, "alice")
    token = token_for(client, "alice")

    resp = client.delete("/auth/me", headers=auth_header(token))
    assert resp.status_code == 200
    assert resp.json()["user"]["username"] == "alice"
    # the token no longer maps to a user
    assert client.get("/auth/me", headers=auth_header(token)).status_code == 401


def test_register_race_reports_duplicate(client, monkeypatch, db):
    # both requests pass the lookup; the unique index rejects the second insert
    monkeypatch.setattr(accounts, "_ensure_unique", lambda *args, **kwargs: None)
    assert client.post("/auth/register", json=ALICE).status_code == 201

    resp = client.post("/auth/register", json=dict(ALICE, username="alice2"))
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "DuplicateCredential"
    assert [u.username for u in db.query(User).all()] == ["alice"]


def test_profile_rename_race_reports_duplicate(client, monkeypatch):
    create_user(client, "alice")
    create_user(client, "bob")
    token = token_for(client, "alice")
    monkeypatch.setattr(accounts, "_ensure_unique", lambda *args, **kwargs: None)

    resp = client.put("/auth/me", json={"username": "bob"}, headers=auth_header(token))
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "DuplicateCredential"
    assert client.get("/auth/me", headers=auth_header(token)).json()["username"] == "alice"


def test_logout_revokes_refresh_token(client):
    create_user(client, "alice")
    tokens = login(client, "alice")

    resp = client.post("/auth/logout", headers=auth_header(tokens["access_token"]))
    assert resp.status_code == 200

    resp = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "Unauthenticated"

    # a fresh login issues a refresh token that works again
    fresh = login(client, "alice")
    assert client.post("/auth/refresh", json={"refresh_token": fresh["refresh_token"]}).status_code == 200


def test_logout_requires_auth(client):
    assert client.post("/auth/logout").status_code == 401
