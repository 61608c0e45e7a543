from fastapi import status

from conftest import create_person, person_payload
from app.models.logs import AuditLog


def test_create_person_returns_stored_record(client, db, tenant):
    created = create_person(client, tenant.staff_headers, segmentId=tenant.north.id)

    assert created["firstName"] == "Margaret"
    assert created["status"] == "Active"
    assert created["segmentId"] == tenant.north.id
    assert created["useHomeAddress"] is True
    assert created["createdBy"] == tenant.staff.id

    fetched = client.get(f"/api/person-info/{created['id']}", headers=tenant.staff_headers)
    assert fetched.status_code == status.HTTP_200_OK
    assert fetched.json() == created

    audit = db.query(AuditLog).filter(AuditLog.action == "CREATE_CLIENT").one()
    assert audit.resource_id == str(created["id"])


def test_status_defaults_to_new(client, tenant):
    payload = person_payload()
    payload.pop("status")

    response = client.post("/api/person-info", json=payload, headers=tenant.staff_headers)

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["status"] == "New"


def test_required_fields_and_formats_are_validated(client, tenant):
    missing = person_payload()
    missing.pop("lastName")
    bad_email = person_payload(email="not-an-email")
    bad_status = person_payload(status="Archived")

    for payload in (missing, bad_email, bad_status):
        response = client.post("/api/person-info", json=payload, headers=tenant.staff_headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_list_filters_by_segment_and_includes_global_rows(client, tenant):
    north = create_person(client, tenant.staff_headers, firstName="Nora", segmentId=tenant.north.id)
    south = create_person(client, tenant.staff_headers, firstName="Sam", segmentId=tenant.south.id)
    shared = create_person(client, tenant.staff_headers, firstName="Gail")

    response = client.get(
        "/api/person-info", params={"segmentId": tenant.north.id}, headers=tenant.staff_headers
    )

    assert response.status_code == status.HTTP_200_OK
    ids = [person["id"] for person in response.json()]
    assert ids == [shared["id"], north["id"]]
    assert south["id"] not in ids


def test_list_supports_pagination(client, tenant):
    created = [create_person(client, tenant.staff_headers, firstName=name)["id"] for name in ("Ann", "Bea", "Cy")]

    first = client.get("/api/person-info", params={"page": 1, "limit": 2}, headers=tenant.staff_headers)
    second = client.get("/api/person-info", params={"page": 2, "limit": 2}, headers=tenant.staff_headers)

    assert [p["id"] for p in first.json()] == created[::-1][:2]
    assert [p["id"] for p in second.json()] == created[:1]


def test_update_person_changes_only_sent_fields(client, tenant):
    created = create_person(client, tenant.staff_headers, segmentId=tenant.north.id)

    response = client.put(
        f"/api/person-info/{created['id']}",
        json={"mobilePhone": "0400999888", "status": "Paused", "firstName": ""},
        headers=tenant.staff_headers,
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["mobilePhone"] == "0400999888"
    assert body["status"] == "Paused"
    assert body["firstName"] == "Margaret"
    assert body["lastName"] == "Nguyen"


def test_unknown_person_is_404(client, tenant):
    response = client.get("/api/person-info/9999", headers=tenant.staff_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"]["code"] == "CLIENT_NOT_FOUND"


def test_person_in_other_company_segment_is_forbidden(client, tenant):
    created = create_person(client, tenant.outsider_headers, segmentId=tenant.foreign.id)

    response = client.get(f"/api/person-info/{created['id']}", headers=tenant.staff_headers)

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error"]["code"] == "SEGMENT_ACCESS_DENIED"
