from datetime import datetime, timedelta, timezone

from fastapi import status
from jose import jwt

from conftest import DEFAULT_PASSWORD, make_auth_headers
from app.core import security
from app.core.security import JWT_ALGORITHM, JWT_AUDIENCE, JWT_ISSUER, SECRET_KEY, verify_password
from app.models.logs import AuditLog, LoginLog
from app.models.user import User


def _login(client, username, password=DEFAULT_PASSWORD):
    return client.post("/api/auth/login", json={"username": username, "password": password})


def test_login_returns_both_tokens_and_logs_success(client, db, tenant):
    response = _login(client, "case.worker")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["success"] is True
    assert body["accessToken"]
    assert body["refreshToken"]
    assert body["user"] == {
        "id": tenant.staff.id,
        "name": "Case.Worker",
        "username": "case.worker",
        "role": "user",
        "companyId": tenant.company.company_id,
    }

    claims = jwt.decode(
        body["accessToken"], SECRET_KEY, algorithms=[JWT_ALGORITHM], audience=JWT_AUDIENCE, issuer=JWT_ISSUER
    )
    assert claims["id"] == tenant.staff.id
    assert claims["type"] == "access"
    assert claims["company_id"] == tenant.company.company_id

    logs = db.query(LoginLog).filter(LoginLog.login_type == "LOGIN_SUCCESS").all()
    assert [log.username for log in logs] == ["case.worker"]


def test_failed_login_does_not_reveal_whether_user_exists(client, db, tenant):
    wrong_password = _login(client, "case.worker", "not-the-password")
    unknown_user = _login(client, "ghost.user", "whatever")

    assert wrong_password.status_code == status.HTTP_401_UNAUTHORIZED
    assert unknown_user.status_code == status.HTTP_401_UNAUTHORIZED
    assert wrong_password.json() == unknown_user.json()
    assert wrong_password.json()["error"]["code"] == "INVALID_CREDENTIALS"

    failures = db.query(LoginLog).filter(LoginLog.login_type == "LOGIN_FAILED").order_by(LoginLog.id).all()
    assert [(log.username, log.failure_reason) for log in failures] == [
        ("case.worker", "Invalid password"),
        ("ghost.user", "User not found"),
    ]


def test_unknown_user_still_runs_a_password_hash(client, tenant, monkeypatch):
    dummy_calls = []
    original = security.pwd_context.dummy_verify

    def counting_dummy_verify():
        dummy_calls.append(True)
        return original()

    monkeypatch.setattr(security.pwd_context, "dummy_verify", counting_dummy_verify)

    assert _login(client, "ghost.user", "whatever").status_code == status.HTTP_401_UNAUTHORIZED
    assert _login(client, "case.worker", "wrong").status_code == status.HTTP_401_UNAUTHORIZED

    assert dummy_calls == [True]


def test_login_requires_username_and_password(client, tenant):
    response = client.post("/api/auth/login", json={"username": "case.worker"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["message"] == "Username and password are required"


def test_refresh_issues_new_access_token(client, db, tenant):
    tokens = _login(client, "case.worker").json()

    response = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})

    assert response.status_code == status.HTTP_200_OK
    new_token = response.json()["accessToken"]
    status_response = client.get("/api/auth/status", headers={"Authorization": f"Bearer {new_token}"})
    assert status_response.json()["user"]["username"] == "case.worker"
    assert db.query(LoginLog).filter(LoginLog.login_type == "TOKEN_REFRESH").count() == 1


def test_refresh_rejects_access_token(client, tenant):
    tokens = _login(client, "case.worker").json()

    response = client.post("/api/auth/refresh", json={"refreshToken": tokens["accessToken"]})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"]["code"] == "INVALID_REFRESH_TOKEN"


def test_refresh_token_cannot_be_used_as_access_token(client, tenant):
    tokens = _login(client, "case.worker").json()

    response = client.get("/api/auth/status", headers={"Authorization": f"Bearer {tokens['refreshToken']}"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"]["code"] == "INVALID_TOKEN"


def test_missing_and_expired_tokens_are_rejected(client, tenant):
    missing = client.get("/api/auth/status")
    assert missing.status_code == status.HTTP_401_UNAUTHORIZED
    assert missing.json() == {
        "success": False,
        "error": {"message": "Authentication required", "code": "NOT_AUTHENTICATED"},
    }

    past = datetime.now(timezone.utc) - timedelta(hours=1)
    expired = jwt.encode(
        {
            "id": tenant.staff.id,
            "username": "case.worker",
            "role": "user",
            "type": "access",
            "exp": int(past.timestamp()),
            "iss": JWT_ISSUER,
            "aud": JWT_AUDIENCE,
        },
        SECRET_KEY,
        algorithm=JWT_ALGORITHM,
    )
    response = client.get("/api/auth/status", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"]["code"] == "INVALID_TOKEN"


def test_token_accepted_from_raw_header_and_query_string(client, tenant):
    token = make_auth_headers(tenant.staff)["Authorization"].split(" ", 1)[1]

    raw = client.get("/api/auth/status", headers={"Authorization": token})
    query = client.get("/api/auth/status", params={"token": token})

    assert raw.status_code == status.HTTP_200_OK
    assert query.status_code == status.HTTP_200_OK
    assert query.json()["authenticated"] is True


def test_logout_writes_login_log_and_audit_entry(client, db, tenant):
    response = client.post("/api/auth/logout", headers=tenant.staff_headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"success": True, "message": "Logged out successfully"}
    assert db.query(LoginLog).filter(LoginLog.login_type == "LOGOUT").count() == 1
    audit = db.query(AuditLog).filter(AuditLog.action == "LOGOUT").one()
    assert audit.user_id == tenant.staff.id


def test_change_password_with_wrong_current_password_keeps_hash(client, db, tenant):
    response = client.post(
        "/api/change-password",
        json={"currentPassword": "wrong-one", "newPassword": "An0ther!Secret"},
        headers=tenant.staff_headers,
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["message"] == "Current password is incorrect"
    stored = db.get(User, tenant.staff.id)
    db.refresh(stored)
    assert verify_password(DEFAULT_PASSWORD, stored.password)


def test_change_password_validates_new_password(client, tenant):
    cases = [
        ({"currentPassword": DEFAULT_PASSWORD}, "Current password and new password are required"),
        ({"currentPassword": DEFAULT_PASSWORD, "newPassword": "abc"}, "New password must be at least 6 characters long"),
        ({"currentPassword": DEFAULT_PASSWORD, "newPassword": "x" * 129}, "New password must be less than 128 characters"),
        (
            {"currentPassword": DEFAULT_PASSWORD, "newPassword": DEFAULT_PASSWORD},
            "New password must be different from current password",
        ),
    ]
    for payload, message in cases:
        response = client.post("/api/change-password", json=payload, headers=tenant.staff_headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["message"] == message


def test_change_password_success(client, db, tenant):
    response = client.post(
        "/api/change-password",
        json={"currentPassword": DEFAULT_PASSWORD, "newPassword": "An0ther!Secret"},
        headers=tenant.staff_headers,
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "Password changed successfully"}
    assert _login(client, "case.worker", "An0ther!Secret").status_code == status.HTTP_200_OK
    assert _login(client, "case.worker").status_code == status.HTTP_401_UNAUTHORIZED

    stored = db.get(User, tenant.staff.id)
    db.refresh(stored)
    assert stored.password_changed_at is not None
    assert stored.force_password_change is False
    assert db.query(AuditLog).filter(AuditLog.action == "CHANGE_PASSWORD").count() == 1
