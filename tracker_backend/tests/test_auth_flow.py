"""
Integration tests for the authentication flow.

Register -> Login -> Me -> Logout, plus rehash-on-login and audit records.
"""

import hashlib

from sqlalchemy import select

from tracker_backend.app.core.config import settings
from tracker_backend.app.core.security import hash_password
from tracker_backend.app.models.audit_log import AuditLog
from tracker_backend.app.models.enums import PasswordHashMethod
from tracker_backend.app.models.user import User
from tracker_backend.app.services.audit import AuditAction


async def test_register_login_me_flow(client):
    response = await client.post("/v1/auth/register", json={"login": "fleet", "password": "s3cret"})
    assert response.status_code == 201
    profile = response.json()["profile"]
    assert profile["user"]["login"] == "fleet"
    assert profile["user"]["manager"] is True
    assert profile["user"]["admin"] is False
    assert profile["settings"]["speed_unit"] == "knots"

    response = await client.post("/v1/auth/login", json={"login": "fleet", "password": "s3cret"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    response = await client.get("/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["user"]["login"] == "fleet"


async def test_register_when_disabled_is_denied(client, make_app_settings):
    await make_app_settings(registration_enabled=False)

    response = await client.post("/v1/auth/register", json={"login": "fleet", "password": "s3cret"})

    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_001"


async def test_register_with_taken_login_is_invalid_state(client, make_user):
    await make_user("fleet")

    response = await client.post("/v1/auth/register", json={"login": "fleet", "password": "s3cret"})

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_STATE_001"


async def test_register_with_blank_password_is_validation_failure(client):
    response = await client.post("/v1/auth/register", json={"login": "fleet", "password": "  "})

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION_001"


async def test_wrong_password_is_rejected_and_audited(client, db_session, make_user):
    user = await make_user("alice", password="right")

    response = await client.post("/v1/auth/login", json={"login": "alice", "password": "wrong"})

    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_AUTH_001"
    result = await db_session.execute(select(AuditLog).where(AuditLog.action == AuditAction.LOGIN_FAILED))
    entry = result.scalar_one()
    assert entry.actor_id == user.id


async def test_empty_password_never_logs_in(client, make_user):
    await make_user("blank", password="", method=PasswordHashMethod.PLAIN)

    response = await client.post("/v1/auth/login", json={"login": "blank", "password": ""})

    assert response.status_code == 401


async def test_unknown_login_is_rejected(client):
    response = await client.post("/v1/auth/login", json={"login": "ghost", "password": "boo"})

    assert response.status_code == 401


async def test_login_rehashes_with_default_method(client, db_session, make_user, make_app_settings):
    await make_app_settings(default_hash_implementation=PasswordHashMethod.SHA512)
    user = await make_user("legacy", password="old-pass", method=PasswordHashMethod.PLAIN)

    response = await client.post("/v1/auth/login", json={"login": "legacy", "password": "old-pass"})

    assert response.status_code == 200
    result = await db_session.execute(
        select(User.password, User.password_hash_method).where(User.id == user.id)
    )
    password, method = result.one()
    assert method == PasswordHashMethod.SHA512
    assert password == hash_password(PasswordHashMethod.SHA512, "old-pass")


async def test_pre_hashed_login_does_not_rehash(client, db_session, make_user, make_app_settings):
    await make_app_settings(default_hash_implementation=PasswordHashMethod.SHA512)
    user = await make_user("hashed", password="pw", method=PasswordHashMethod.MD5)
    digest = hashlib.md5(b"pw").hexdigest()

    response = await client.post("/v1/auth/login", json={"login": "hashed", "password": digest, "hashed": True})

    assert response.status_code == 200
    result = await db_session.execute(select(User.password_hash_method).where(User.id == user.id))
    assert result.scalar_one() == PasswordHashMethod.MD5


async def test_logout_revokes_token(client, make_user, headers, mock_redis):
    user = await make_user("alice")
    auth = headers(user)

    response = await client.post("/v1/auth/logout", headers=auth)
    assert response.status_code == 200
    assert response.json()["token_revoked"] is True
    assert len(mock_redis.store) == 1

    response = await client.get("/v1/auth/me", headers=auth)
    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_AUTH_002"


async def test_invalid_token_is_rejected(client):
    response = await client.get("/v1/auth/me", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401


async def test_blacklist_uses_configured_prefix(client, make_user, headers, mock_redis, monkeypatch):
    monkeypatch.setattr(settings, "token_blacklist_prefix", "tracker:revoked:")
    user = await make_user("alice")
    auth = headers(user)

    await client.post("/v1/auth/logout", headers=auth)

    token = auth["Authorization"].split(" ", 1)[1]
    assert list(mock_redis.store) == [f"tracker:revoked:{token}"]
    response = await client.get("/v1/auth/me", headers=auth)
    assert response.status_code == 401
