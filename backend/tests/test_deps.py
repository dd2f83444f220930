from datetime import datetime, timedelta

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from conftest import bearer, login
from sensorhub.auth import ledger
from sensorhub.auth.deps import (
    Identity,
    authenticate_token,
    ensure_admin_or_self,
    optional_auth,
    require_admin,
)
from sensorhub.auth.security import create_access_token, issue_token
from sensorhub.core.errors import AuthorizationError, register_exception_handlers

probe = FastAPI()
register_exception_handlers(probe)


@probe.get("/strict")
def strict(request: Request, identity: Identity = Depends(authenticate_token)):
    return {"id": identity.id, "role": identity.role, "token_attached": request.state.token is not None}


@probe.get("/soft")
def soft(request: Request, identity: Identity | None = Depends(optional_auth)):
    return {"id": identity.id if identity else None, "state": request.state.identity is not None}


@probe.get("/admin")
def admin_only(identity: Identity = Depends(require_admin)):
    return {"id": identity.id}


@pytest.fixture
def probe_client(db):
    return TestClient(probe)


def _error(response):
    body = response.json()
    assert body["success"] is False
    return body["error"]


def test_missing_header_is_rejected(probe_client):
    response = probe_client.get("/strict")

    assert response.status_code == 401
    assert _error(response) == "Access token required"


@pytest.mark.parametrize("header", ["Bearer", "Basic abc", "garbage"])
def test_header_without_bearer_credentials_is_treated_as_missing(probe_client, header):
    response = probe_client.get("/strict", headers={"Authorization": header})

    assert response.status_code == 401
    assert _error(response) == "Access token required"


def test_garbled_token_is_rejected(probe_client):
    response = probe_client.get("/strict", headers=bearer("not.a.jwt"))

    assert response.status_code == 401
    assert _error(response) == "Invalid token"


def test_expired_token_is_rejected(probe_client, make_user):
    user = make_user()
    token, _ = issue_token(user.id, {}, timedelta(seconds=-5))

    response = probe_client.get("/strict", headers=bearer(token))

    assert response.status_code == 401
    assert _error(response) == "Token expired"


def test_signed_token_without_session_is_rejected(probe_client, make_user):
    user = make_user()
    token, _ = create_access_token(user)

    response = probe_client.get("/strict", headers=bearer(token))

    assert response.status_code == 401
    assert _error(response) == "Invalid or expired token"


def test_revoked_and_unknown_sessions_share_one_message(db, probe_client, make_user):
    user = make_user()
    token, _ = create_access_token(user)
    ledger.create_session(
        db,
        user_id=user.id,
        access_token=token,
        refresh_token=None,
        expires_at=datetime.utcnow() + timedelta(hours=1),
    )
    ledger.revoke(db, token)
    db.commit()
    unknown, _ = create_access_token(user)

    revoked_response = probe_client.get("/strict", headers=bearer(token))
    unknown_response = probe_client.get("/strict", headers=bearer(unknown))

    assert revoked_response.status_code == unknown_response.status_code == 401
    assert _error(revoked_response) == _error(unknown_response)


def test_valid_session_attaches_identity(client, probe_client, make_user):
    user = make_user(email="ana@x.com")
    token = login(client, "ana@x.com")["token"]

    response = probe_client.get("/strict", headers=bearer(token))

    assert response.status_code == 200
    assert response.json() == {"id": user.id, "role": "usuario", "token_attached": True}


@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": "Bearer"},
        {"Authorization": "Bearer ###garbled###"},
        {"Authorization": "Basic dXNlcjpwYXNz"},
    ],
)
def test_optional_auth_never_rejects(probe_client, headers):
    response = probe_client.get("/soft", headers=headers)

    assert response.status_code == 200
    assert response.json() == {"id": None, "state": False}


def test_optional_auth_ignores_expired_and_revoked_tokens(probe_client, make_user):
    user = make_user()
    expired, _ = issue_token(user.id, {}, timedelta(seconds=-5))
    orphan, _ = create_access_token(user)

    for token in (expired, orphan):
        response = probe_client.get("/soft", headers=bearer(token))
        assert response.status_code == 200
        assert response.json()["id"] is None


def test_optional_auth_resolves_valid_session(client, probe_client, make_user):
    user = make_user(email="ana@x.com")
    token = login(client, "ana@x.com")["token"]

    response = probe_client.get("/soft", headers=bearer(token))

    assert response.json() == {"id": user.id, "state": True}


def test_require_admin_uses_live_role(db, client, probe_client, make_user):
    user = make_user(email="ana@x.com")
    token = login(client, "ana@x.com")["token"]

    assert probe_client.get("/admin", headers=bearer(token)).status_code == 403

    db.expire_all()
    user.role = "admin"
    db.commit()

    response = probe_client.get("/admin", headers=bearer(token))
    assert response.status_code == 200
    assert response.json() == {"id": user.id}


def _identity(user_id, role):
    return Identity(id=user_id, name="n", email="e@x.com", role=role, registered_at=datetime.utcnow())


def test_admin_or_self_guard():
    ensure_admin_or_self(_identity(1, "admin"), 2)
    ensure_admin_or_self(_identity(2, "usuario"), 2)

    with pytest.raises(AuthorizationError):
        ensure_admin_or_self(_identity(3, "usuario"), 2)
