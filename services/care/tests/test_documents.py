import dataclasses
from pathlib import Path

from fastapi import status

from conftest import DOCUMENTS_ROOT, create_person, upload_document
from app.crud import documents as documents_crud
from app.main import app
from app.models.document import Document
from app.services.file_storage import AzureBlobFileStorage


def test_upload_stores_file_and_row(client, db, tenant):
    person = create_person(client, tenant.staff_headers, segmentId=tenant.north.id)

    document = upload_document(client, tenant.staff_headers, person["id"], filename="care plan (v2).pdf")

    assert document["filename"] == "careplanv2.pdf"
    assert document["filePath"] == f"client_{person['id']}_Margaret_Nguyen/careplanv2.pdf"
    assert document["segmentId"] == tenant.north.id
    assert document["documentName"] == "Care Plan"
    assert (Path(DOCUMENTS_ROOT) / document["filePath"]).read_bytes() == b"%PDF-1.4 plan"
    assert db.query(Document).count() == 1


def test_duplicate_filename_for_same_client_conflicts(client, db, tenant):
    person = create_person(client, tenant.staff_headers)
    first = upload_document(client, tenant.staff_headers, person["id"])

    response = client.post(
        "/api/documents",
        data={"clientId": str(person["id"]), "documentName": "Again", "documentType": "Plan"},
        files={"file": ("care-plan.pdf", b"%PDF-1.4 other", "application/pdf")},
        headers=tenant.staff_headers,
    )

    assert response.status_code == status.HTTP_409_CONFLICT
    body = response.json()
    assert body["conflictType"] == "filename_exists"
    assert body["existingDocument"]["id"] == first["id"]
    assert body["existingDocument"]["documentName"] == "Care Plan"
    assert db.query(Document).count() == 1


def test_same_filename_allowed_for_different_clients(client, tenant):
    first_person = create_person(client, tenant.staff_headers)
    second_person = create_person(client, tenant.staff_headers, firstName="Oscar")

    upload_document(client, tenant.staff_headers, first_person["id"])
    upload_document(client, tenant.staff_headers, second_person["id"])


def test_upload_rejects_missing_and_unsupported_files(client, tenant):
    person = create_person(client, tenant.staff_headers)
    form = {"clientId": str(person["id"]), "documentName": "Notes", "documentType": "Other"}

    no_file = client.post("/api/documents", data=form, headers=tenant.staff_headers)
    wrong_type = client.post(
        "/api/documents",
        data=form,
        files={"file": ("notes.txt", b"plain text", "text/plain")},
        headers=tenant.staff_headers,
    )
    spoofed = client.post(
        "/api/documents",
        data=form,
        files={"file": ("notes.pdf", b"plain text", "text/plain")},
        headers=tenant.staff_headers,
    )

    assert no_file.status_code == status.HTTP_400_BAD_REQUEST
    assert no_file.json()["error"]["code"] == "NO_FILE"
    assert wrong_type.json()["error"]["code"] == "INVALID_FILE_TYPE"
    assert spoofed.json()["error"]["code"] == "INVALID_FILE_TYPE"


def test_upload_rejects_oversized_file(client, db, tenant, monkeypatch):
    config = app.state.config
    small = dataclasses.replace(config, security=dataclasses.replace(config.security, max_upload_bytes=16))
    monkeypatch.setattr(app.state, "config", small)
    person = create_person(client, tenant.staff_headers)

    response = client.post(
        "/api/documents",
        data={"clientId": str(person["id"]), "documentName": "Scan", "documentType": "Image"},
        files={"file": ("scan.png", b"x" * 17, "image/png")},
        headers=tenant.staff_headers,
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["code"] == "FILE_TOO_LARGE"
    assert db.query(Document).count() == 0


def test_download_and_view_set_disposition(client, tenant):
    person = create_person(client, tenant.staff_headers)
    document = upload_document(client, tenant.staff_headers, person["id"])

    download = client.get(f"/api/documents/{document['filePath']}", headers=tenant.staff_headers)
    view = client.get(f"/api/documents/view/{document['filePath']}", headers=tenant.staff_headers)

    assert download.status_code == status.HTTP_200_OK
    assert download.content == b"%PDF-1.4 plan"
    assert download.headers["content-type"] == "application/pdf"
    assert download.headers["content-disposition"] == 'attachment; filename="care-plan.pdf"'
    assert view.headers["content-disposition"] == 'inline; filename="care-plan.pdf"'


def test_download_reports_missing_row_and_missing_file(client, tenant):
    person = create_person(client, tenant.staff_headers)
    document = upload_document(client, tenant.staff_headers, person["id"], filename="gone.pdf")
    (Path(DOCUMENTS_ROOT) / document["filePath"]).unlink()

    missing_file = client.get(f"/api/documents/{document['filePath']}", headers=tenant.staff_headers)
    missing_row = client.get("/api/documents/client_0_nobody/none.pdf", headers=tenant.staff_headers)

    assert missing_file.status_code == status.HTTP_404_NOT_FOUND
    assert missing_file.json()["error"]["message"] == "Document not found in storage"
    assert missing_row.status_code == status.HTTP_404_NOT_FOUND
    assert missing_row.json()["error"]["message"] == "Document not found in database"


def test_list_client_documents(client, tenant):
    person = create_person(client, tenant.staff_headers)
    first = upload_document(client, tenant.staff_headers, person["id"], filename="one.pdf")
    second = upload_document(client, tenant.staff_headers, person["id"], filename="two.pdf")

    response = client.get(f"/api/documents/client/{person['id']}", headers=tenant.staff_headers)

    assert response.status_code == status.HTTP_200_OK
    assert {doc["id"] for doc in response.json()["data"]} == {first["id"], second["id"]}


def test_list_without_documents_is_404(client, tenant):
    person = create_person(client, tenant.staff_headers)

    response = client.get(f"/api/documents/client/{person['id']}", headers=tenant.staff_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"]["message"] == "Document not found"


def test_delete_removes_file_and_row(client, db, tenant):
    person = create_person(client, tenant.staff_headers)
    document = upload_document(client, tenant.staff_headers, person["id"], filename="remove-me.pdf")
    stored = Path(DOCUMENTS_ROOT) / document["filePath"]
    assert stored.exists()

    response = client.delete(f"/api/documents/{document['id']}", headers=tenant.staff_headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "Document deleted successfully"}
    assert not stored.exists()
    assert db.query(Document).count() == 0


def test_documents_in_foreign_segment_are_hidden(client, tenant):
    person = create_person(client, tenant.outsider_headers, segmentId=tenant.foreign.id)
    document = upload_document(client, tenant.outsider_headers, person["id"], filename="private.pdf")

    download = client.get(f"/api/documents/{document['filePath']}", headers=tenant.staff_headers)
    delete = client.delete(f"/api/documents/{document['id']}", headers=tenant.staff_headers)

    assert download.status_code == status.HTTP_403_FORBIDDEN
    assert delete.status_code == status.HTTP_403_FORBIDDEN


def test_upload_reports_unavailable_storage(client, db, tenant, monkeypatch):
    monkeypatch.setattr(app.state, "file_storage", AzureBlobFileStorage(None, None, "documentsroot"))
    person = create_person(client, tenant.staff_headers)

    response = client.post(
        "/api/documents",
        data={"clientId": str(person["id"]), "documentName": "Plan", "documentType": "Plan"},
        files={"file": ("plan.pdf", b"%PDF-1.4", "application/pdf")},
        headers=tenant.staff_headers,
    )

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json()["error"]["code"] == "STORAGE_UNAVAILABLE"
    assert db.query(Document).count() == 0


def test_concurrent_duplicate_upload_keeps_original_file(client, db, tenant, monkeypatch):
    person = create_person(client, tenant.staff_headers)
    first = upload_document(client, tenant.staff_headers, person["id"], content=b"%PDF-1.4 original")

    # The second request passes the pre-check as if the first row were not committed yet.
    lookup = documents_crud.get_document_by_client_and_filename
    calls = []

    def stale_lookup(*args):
        calls.append(args)
        return None if len(calls) == 1 else lookup(*args)

    monkeypatch.setattr(documents_crud, "get_document_by_client_and_filename", stale_lookup)

    response = client.post(
        "/api/documents",
        data={"clientId": str(person["id"]), "documentName": "Again", "documentType": "Plan"},
        files={"file": ("care-plan.pdf", b"%PDF-1.4 replacement", "application/pdf")},
        headers=tenant.staff_headers,
    )

    assert response.status_code == status.HTTP_409_CONFLICT
    body = response.json()
    assert body["conflictType"] == "filename_exists"
    assert body["existingDocument"]["id"] == first["id"]
    assert (Path(DOCUMENTS_ROOT) / first["filePath"]).read_bytes() == b"%PDF-1.4 original"
    assert db.query(Document).count() == 1
