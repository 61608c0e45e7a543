from fastapi import status
from fastapi.testclient import TestClient

from conftest import create_person, person_payload
from app.crud import persons as persons_crud
from app.main import app
from app.models.logs import ErrorLog
from app.models.person import PersonInfo


def test_unknown_route_uses_error_envelope_and_is_logged(client, db, tenant):
    response = client.get("/api/does-not-exist", headers=tenant.staff_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"success": False, "error": {"message": "Not Found", "code": "NOT_FOUND"}}

    row = db.query(ErrorLog).one()
    assert row.endpoint == "/api/does-not-exist"
    assert row.method == "GET"
    assert row.error_code == "NOT_FOUND"
    assert row.severity == "WARNING"
    assert row.request_headers["authorization"] == "[REDACTED]"


def test_method_not_allowed(client, tenant):
    response = client.delete("/api/person-info", headers=tenant.staff_headers)

    assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED
    assert response.json()["error"]["code"] == "METHOD_NOT_ALLOWED"


def test_validation_errors_list_fields(client, db, tenant):
    response = client.post(
        "/api/person-info",
        json={"firstName": "Margaret", "dateOfBirth": "21/03/1948"},
        headers=tenant.staff_headers,
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    error = response.json()["error"]
    assert error["message"] == "Validation failed"
    assert error["code"] == "VALIDATION_ERROR"
    fields = {detail["field"] for detail in error["details"]}
    assert {"lastName", "dateOfBirth"} <= fields
    assert db.query(ErrorLog).filter(ErrorLog.error_code == "VALIDATION_ERROR").count() == 1


def test_unhandled_exception_returns_generic_500(db, tenant, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("connection reset by peer")

    monkeypatch.setattr(persons_crud, "list_person_info", explode)

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/person-info", headers=tenant.staff_headers)

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {
        "success": False,
        "error": {"message": "Internal server error", "code": "INTERNAL_SERVER_ERROR"},
    }
    row = db.query(ErrorLog).filter(ErrorLog.error_code == "INTERNAL_SERVER_ERROR").one()
    assert row.severity == "ERROR"
    assert row.error_type == "RuntimeError"
    assert "connection reset by peer" in row.stack_trace


def test_security_headers_on_every_response(client):
    response = client.get("/api/health")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert "max-age=31536000" in response.headers["Strict-Transport-Security"]
    assert response.headers["X-Request-ID"]


def test_markup_is_stripped_from_json_bodies(client, tenant):
    created = create_person(
        client,
        tenant.staff_headers,
        firstName="<b>Margaret</b>",
        addressLine1='12 "Harbour" Road',
    )

    assert created["firstName"] == "Margaret"
    assert created["addressLine1"] == "12 Harbour Road"


def test_injection_like_body_is_rejected(client, db, tenant):
    response = client.post(
        "/api/person-info",
        json=person_payload(lastName="Nguyen'); DROP TABLE person_info"),
        headers=tenant.staff_headers,
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == {"message": "Invalid input detected", "code": "INVALID_INPUT"}
    assert db.query(PersonInfo).count() == 0


def test_injection_like_query_is_rejected(client, tenant):
    response = client.get(
        "/api/person-info", params={"segmentId": "1 UNION SELECT password FROM users"}, headers=tenant.staff_headers
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["code"] == "INVALID_QUERY"


def test_oversized_request_is_rejected(client, tenant):
    response = client.post(
        "/api/person-info",
        content=b"x" * (10 * 1024 * 1024 + 1),
        headers={**tenant.staff_headers, "Content-Type": "application/octet-stream"},
    )

    assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    assert response.json()["error"]["code"] == "REQUEST_TOO_LARGE"


def test_invalid_path_id_is_a_validation_error(client, tenant):
    response = client.get("/api/person-info/abc", headers=tenant.staff_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["details"][0]["field"] == "person_id"
