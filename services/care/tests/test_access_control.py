from fastapi import status

from conftest import create_client_service, create_master_data, create_person


def test_user_without_company_is_denied(client, tenant):
    response = client.get("/api/person-info", headers=tenant.orphan_headers)

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error"] == {
        "message": "Access denied: User must be assigned to a company",
        "code": "NO_COMPANY_ASSIGNED",
    }


def test_foreign_segment_is_forbidden_for_reads_and_writes(client, tenant):
    listing = client.get(
        "/api/person-info", params={"segmentId": tenant.foreign.id}, headers=tenant.staff_headers
    )
    creation = client.post(
        "/api/master-data",
        json={"serviceCategory": "Meals", "serviceType": "Delivery", "segmentId": tenant.foreign.id},
        headers=tenant.staff_headers,
    )

    for response in (listing, creation):
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"]["code"] == "SEGMENT_ACCESS_DENIED"


def test_unknown_segment_is_404(client, tenant):
    response = client.get("/api/client-services", params={"segmentId": 9999}, headers=tenant.staff_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"]["code"] == "SEGMENT_NOT_FOUND"


def test_lists_never_leak_other_companies(client, tenant):
    own = create_person(client, tenant.staff_headers, segmentId=tenant.south.id)
    create_person(client, tenant.outsider_headers, firstName="Oscar", segmentId=tenant.foreign.id)

    response = client.get("/api/person-info", headers=tenant.staff_headers)

    assert [person["id"] for person in response.json()] == [own["id"]]


def test_super_admin_sees_every_segment(client, tenant):
    create_person(client, tenant.staff_headers, segmentId=tenant.north.id)
    create_person(client, tenant.outsider_headers, firstName="Oscar", segmentId=tenant.foreign.id)
    create_master_data(client, tenant.admin_headers, segmentId=tenant.foreign.id)

    response = client.get("/api/person-info", headers=tenant.admin_headers)

    assert len(response.json()) == 2


def test_my_segments_follow_company(client, tenant):
    staff = client.get("/api/user/segments", headers=tenant.staff_headers)
    orphan = client.get("/api/user/segments", headers=tenant.orphan_headers)
    admin = client.get("/api/user/segments", headers=tenant.admin_headers)

    assert {segment["segmentName"] for segment in staff.json()} == {"North", "South"}
    assert orphan.status_code == status.HTTP_200_OK
    assert orphan.json() == []
    assert {segment["segmentName"] for segment in admin.json()} == {"North", "South", "East"}


def test_company_segments_listing_is_restricted_for_users(client, tenant):
    own = client.get(f"/api/segments/{tenant.company.company_id}", headers=tenant.staff_headers)
    other = client.get(f"/api/segments/{tenant.other_company.company_id}", headers=tenant.staff_headers)
    as_admin = client.get(f"/api/segments/{tenant.other_company.company_id}", headers=tenant.admin_headers)

    assert own.status_code == status.HTTP_200_OK
    assert len(own.json()) == 2
    assert other.status_code == status.HTTP_403_FORBIDDEN
    assert [segment["segmentName"] for segment in as_admin.json()] == ["East"]


def test_admin_routes_reject_regular_users(client, tenant):
    for method, path in (("get", "/api/users"), ("get", "/api/companies"), ("post", "/api/segments")):
        response = client.request(method, path, headers=tenant.staff_headers, json={})
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"]["code"] == "ADMIN_REQUIRED"


def test_case_note_counts_skip_other_company_services(client, tenant):
    create_master_data(client, tenant.staff_headers)
    owner = create_person(client, tenant.staff_headers, segmentId=tenant.north.id)
    service = create_client_service(client, tenant.staff_headers, owner["id"])
    client.post(
        "/api/service-case-notes",
        json={"serviceId": service["id"], "noteText": "Weekly check-in."},
        headers=tenant.staff_headers,
    )

    outsider = client.post(
        "/api/service-case-notes/counts",
        json={"serviceIds": [service["id"]]},
        headers=tenant.outsider_headers,
    )
    insider = client.post(
        "/api/service-case-notes/counts",
        json={"serviceIds": [service["id"]]},
        headers=tenant.staff_headers,
    )

    assert outsider.status_code == status.HTTP_200_OK
    assert outsider.json() == {}
    assert insider.json() == {str(service["id"]): 1}
