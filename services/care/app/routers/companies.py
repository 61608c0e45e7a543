from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.core.context import RequestContext, get_admin_context
from app.core.database import get_db
from app.core.errors import NotFoundError
from app.core.rate_limit import STRICT_LIMIT, limiter
from app.crud import companies as companies_crud
from app.schemas.company_schema import CompanyCreate, CompanyOut, CompanyUpdate
from app.services import audit

router = APIRouter(prefix="/api/companies", tags=["Companies"])


def _load_company(db: Session, company_id: int):
    company = companies_crud.get_company(db, company_id)
    if company is None:
        raise NotFoundError("Company not found", code="COMPANY_NOT_FOUND")
    return company


@router.get("", response_model=List[CompanyOut])
def list_companies(
    ctx: RequestContext = Depends(get_admin_context),
    db: Session = Depends(get_db),
):
    return companies_crud.list_companies(db)


@router.get("/{company_id}", response_model=CompanyOut)
def get_company(
    company_id: int,
    ctx: RequestContext = Depends(get_admin_context),
    db: Session = Depends(get_db),
):
    return _load_company(db, company_id)


@router.post("", response_model=CompanyOut, status_code=status.HTTP_201_CREATED)
@limiter.limit(STRICT_LIMIT)
def create_company(
    request: Request,
    payload: CompanyCreate,
    ctx: RequestContext = Depends(get_admin_context),
    db: Session = Depends(get_db),
):
    company = companies_crud.create_company(db, payload.model_dump(), created_by=ctx.user_id)
    audit.record_activity(ctx, "CREATE_COMPANY", "company", company.company_id, {"companyName": company.company_name})
    return company


@router.put("/{company_id}", response_model=CompanyOut)
@limiter.limit(STRICT_LIMIT)
def update_company(
    request: Request,
    company_id: int,
    payload: CompanyUpdate,
    ctx: RequestContext = Depends(get_admin_context),
    db: Session = Depends(get_db),
):
    company = _load_company(db, company_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("company_name", "") is None:
        changes.pop("company_name")
    company = companies_crud.update_company(db, company, changes)
    audit.record_activity(ctx, "UPDATE_COMPANY", "company", company.company_id, {"fields": sorted(changes)})
    return company
