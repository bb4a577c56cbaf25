from datetime import timedelta
import uuid

import jwt

from auth import create_access_token, hash_password, verify_password
from conftest import auth_headers
from models import User


def register(client, **overrides):
    body = {"username": "alice", "email": "alice@example.com", "password": "s3cret-pass"}
    body.update(overrides)
    return client.post("/api/auth/register", json=body)


def test_register_issues_token(client):
    res = register(client)
    assert res.status_code == 201
    data = res.json()
    assert data["role"] == "user"
    payload = jwt.decode(data["token"], "test-jwt-secret", algorithms=["HS256"])
    assert payload["userId"] == data["userId"]
    assert payload["role"] == "user"
    assert payload["exp"] - payload["iat"] == 2 * 60 * 60


def test_password_is_stored_hashed(client, db_session):
    register(client)
    user = db_session.query(User).filter_by(email="alice@example.com").one()
    assert user.password != "s3cret-pass"
    assert user.password.startswith("$2")


def test_long_passwords_verify():
    password = "\u00e9" * 60
    hashed = hash_password(password)
    assert verify_password(password, hashed)
    assert not verify_password("x" + password[1:], hashed)


def test_duplicate_email_conflicts(client):
    register(client)
    res = register(client, username="alice2")
    assert res.status_code == 409
    assert res.json()["message"] == "Email already in use"


def test_admin_registration_requires_secret(client, db_session):
    res = register(client, role="admin", adminSecret="wrong")
    assert res.status_code == 403
    assert res.json()["message"] == "Invalid admin secret"
    assert db_session.query(User).count() == 0


def test_admin_registration_refused_without_configured_secret(client, db_session, monkeypatch):
    monkeypatch.delenv("ADMIN_SECRET")
    res = register(client, role="admin")
    assert res.status_code == 403
    assert res.json()["message"] == "Invalid admin secret"
    assert db_session.query(User).count() == 0


def test_admin_registration_with_secret(client):
    res = register(client, role="admin", adminSecret="let-me-in")
    assert res.status_code == 201
    assert res.json()["role"] == "admin"


def test_support_staff_registration(client):
    res = register(client, role="supportStaff")
    assert res.status_code == 201
    assert res.json()["role"] == "supportStaff"


def test_register_rejects_unknown_role(client):
    res = register(client, role="superuser")
    assert res.status_code == 400
    assert "message" in res.json()


def test_login(client, make_user):
    make_user(email="bob@example.com", password="hunter22")
    res = client.post("/api/auth/login", json={"email": "bob@example.com", "password": "hunter22"})
    assert res.status_code == 200
    assert res.json()["token"]


def test_login_errors_do_not_reveal_which_part_failed(client, make_user):
    make_user(email="bob@example.com", password="hunter22")
    wrong_password = client.post("/api/auth/login", json={"email": "bob@example.com", "password": "nope"})
    unknown_email = client.post("/api/auth/login", json={"email": "eve@example.com", "password": "hunter22"})
    assert wrong_password.status_code == unknown_email.status_code == 400
    assert wrong_password.json() == unknown_email.json() == {"message": "Invalid email or password"}


def test_me_returns_identity(client, make_user):
    user = make_user(role="supportStaff")
    res = client.post("/api/auth/me", headers=auth_headers(user))
    assert res.status_code == 200
    assert res.json()["userId"] == str(user.id)
    assert res.json()["role"] == "supportStaff"


def test_me_for_deleted_user(client):
    token = create_access_token(uuid.uuid4(), "user")
    res = client.post("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 404


def test_missing_token(client):
    res = client.get("/complaints")
    assert res.status_code == 401
    assert res.json() == {"message": "No token provided"}


def test_invalid_token(client):
    res = client.get("/complaints", headers={"Authorization": "Bearer not-a-token"})
    assert res.status_code == 401
    assert res.json() == {"message": "Invalid token"}


def test_token_signed_with_another_secret(client):
    token = jwt.encode({"userId": str(uuid.uuid4()), "role": "admin"}, "other-secret", algorithm="HS256")
    res = client.get("/complaints", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


def test_expired_token(client, make_user):
    user = make_user()
    token = create_access_token(user.id, user.role, expires_delta=timedelta(seconds=-5))
    res = client.get("/complaints", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


def test_missing_signing_secret_is_a_server_fault(client, make_user, monkeypatch):
    user = make_user(email="bob@example.com", password="hunter22")
    headers = auth_headers(user)
    monkeypatch.delenv("JWT_SECRET")

    res = client.get("/complaints", headers=headers)
    assert res.status_code == 500
    assert res.json() == {"message": "Server configuration error"}

    res = client.post("/api/auth/login", json={"email": "bob@example.com", "password": "hunter22"})
    assert res.status_code == 500


def test_role_gate_rejects_users_on_status_endpoint(client, make_user):
    user = make_user()
    res = client.put(f"/complaints/{uuid.uuid4()}/status", json={"status": "resolved"}, headers=auth_headers(user))
    assert res.status_code == 403
