from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, require_positive_id
from app.crud.base import db_operation, save
from app.models.company import Company


def list_companies(db: Session):
    return db.query(Company).order_by(Company.company_name.asc()).all()


def get_company(db: Session, company_id: int) -> Optional[Company]:
    require_positive_id(company_id, "Company ID")
    return db.get(Company, company_id)


def _ensure_unique_name(db: Session, name: str, company_id: Optional[int] = None) -> None:
    query = db.query(Company).filter(Company.company_name == name)
    if company_id is not None:
        query = query.filter(Company.company_id != company_id)
    if query.first() is not None:
        raise ConflictError("Company name already exists", code="DUPLICATE_ENTRY")


@db_operation("create_company")
def create_company(db: Session, data: dict, created_by: Optional[int] = None) -> Company:
    _ensure_unique_name(db, data["company_name"])
    return save(db, Company(**data, created_by=created_by))


@db_operation("update_company")
def update_company(db: Session, company: Company, changes: dict) -> Company:
    if "company_name" in changes:
        _ensure_unique_name(db, changes["company_name"], company.company_id)
    for field, value in changes.items():
        setattr(company, field, value)
    return save(db, company)
