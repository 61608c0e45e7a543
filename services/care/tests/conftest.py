import os
import sys
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

SERVICE_DIR = Path(__file__).resolve().parents[1]
ROOT_DIR = SERVICE_DIR.parent.parent

service_path = str(SERVICE_DIR)
shared_path = str(ROOT_DIR / "services")
for path in (service_path, shared_path):
    if path in sys.path:
        sys.path.remove(path)
    sys.path.insert(0, path)

for module_name in list(sys.modules):
    if module_name == "app" or module_name.startswith("app."):
        sys.modules.pop(module_name)

DOCUMENTS_ROOT = tempfile.mkdtemp(prefix="care-documents-")
DEFAULT_PASSWORD = "Str0ng!Passw0rd"

os.environ.setdefault("JWT_SECRET", "ci-test-secret-0123456789abcdef0123456789")
os.environ.setdefault("CARE_DATABASE_URL", f"sqlite:///{SERVICE_DIR / 'test_care.db'}")
os.environ["REDIS_URL"] = ""
os.environ["STORAGE_BACKEND"] = "local"
os.environ["DOCUMENTS_ROOT_PATH"] = DOCUMENTS_ROOT
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["PERFORMANCE_LOGGING_ENABLED"] = "false"
os.environ["ERROR_HOOKS_ENABLED"] = "false"
os.environ["AUTO_CREATE_ADMIN"] = "false"

from app.main import app  # noqa: E402
from app.core.database import Base, SessionLocal, engine  # noqa: E402
from app.core.security import create_access_token, get_password_hash  # noqa: E402
from app.models.company import Company, Segment  # noqa: E402
from app.models.user import User  # noqa: E402


def make_auth_headers(user) -> dict:
    """Bearer header carrying an access token for ``user``."""
    return {"Authorization": f"Bearer {create_access_token(user)}"}


def seed_company(db, name: str = "Sunrise Care") -> Company:
    company = Company(company_name=name)
    db.add(company)
    db.commit()
    db.refresh(company)
    return company


def seed_segment(db, company: Company, name: str = "North") -> Segment:
    segment = Segment(segment_name=name, company_id=company.company_id)
    db.add(segment)
    db.commit()
    db.refresh(segment)
    return segment


def seed_user(
    db,
    username: str,
    role: str = "user",
    company: Company | None = None,
    password: str = DEFAULT_PASSWORD,
) -> User:
    user = User(
        username=username,
        password=get_password_hash(password),
        name=username.title(),
        role=role,
        company_id=company.company_id if company is not None else None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(autouse=True)
def prepare_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def tenant(db):
    """Two companies, three segments and one user per role."""
    company = seed_company(db, "Sunrise Care")
    other_company = seed_company(db, "Harbour Health")
    north = seed_segment(db, company, "North")
    south = seed_segment(db, company, "South")
    foreign = seed_segment(db, other_company, "East")
    super_admin = seed_user(db, "root.admin", role="admin")
    company_admin = seed_user(db, "company.admin", role="admin", company=company)
    staff = seed_user(db, "case.worker", company=company)
    outsider = seed_user(db, "other.worker", company=other_company)
    orphan = seed_user(db, "no.company")

    class Tenant:
        pass

    data = Tenant()
    data.company = company
    data.other_company = other_company
    data.north = north
    data.south = south
    data.foreign = foreign
    data.super_admin = super_admin
    data.company_admin = company_admin
    data.staff = staff
    data.outsider = outsider
    data.orphan = orphan
    data.admin_headers = make_auth_headers(super_admin)
    data.company_admin_headers = make_auth_headers(company_admin)
    data.staff_headers = make_auth_headers(staff)
    data.outsider_headers = make_auth_headers(outsider)
    data.orphan_headers = make_auth_headers(orphan)
    return data


def person_payload(**overrides) -> dict:
    payload = {
        "firstName": "Margaret",
        "lastName": "Nguyen",
        "dateOfBirth": "1948-03-21",
        "email": "margaret@example.com",
        "mobilePhone": "0400111222",
        "status": "Active",
        "hcpLevel": "3",
    }
    payload.update(overrides)
    return payload


def create_person(client, headers, **overrides) -> dict:
    response = client.post("/api/person-info", json=person_payload(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def create_master_data(client, headers, **overrides) -> dict:
    payload = {
        "serviceCategory": "Personal Care",
        "serviceType": "Showering",
        "serviceProvider": "Bright Home Services",
    }
    payload.update(overrides)
    response = client.post("/api/master-data", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def create_client_service(client, headers, client_id: int, **overrides) -> dict:
    payload = {
        "clientId": client_id,
        "serviceCategory": "Personal Care",
        "serviceType": "Showering",
        "serviceProvider": "Bright Home Services",
        "serviceStartDate": "2024-07-01",
        "serviceDays": ["Monday", "Thursday"],
        "serviceHours": 2,
    }
    payload.update(overrides)
    response = client.post("/api/client-services", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def upload_document(client, headers, client_id: int, filename: str = "care-plan.pdf", content: bytes = b"%PDF-1.4 plan", **form) -> dict:
    data = {"clientId": str(client_id), "documentName": "Care Plan", "documentType": "Plan"}
    data.update(form)
    response = client.post(
        "/api/documents",
        data=data,
        files={"file": (filename, content, "application/pdf")},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()
