from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.context import RequestContext, get_request_context
from app.core.database import get_db
from app.core.errors import NotFoundError, ValidationFailed
from app.crud import master_data as master_data_crud
from app.schemas.master_data_schema import (
    MasterDataCreate,
    MasterDataOut,
    MasterDataUpdate,
    MasterDataVerifyOut,
)
from app.services import audit

router = APIRouter(prefix="/api/master-data", tags=["Master data"])

VERIFY_NOT_FOUND_MESSAGE = (
    "The selected service combination doesn't exist in the master data. "
    "Please use the Master Data page to create it first."
)


def _load(db: Session, ctx: RequestContext, master_data_id: int):
    master = master_data_crud.get_master_data(db, master_data_id)
    if master is None:
        raise NotFoundError("Master data not found", code="MASTER_DATA_NOT_FOUND")
    return ctx.ensure_record(master)


@router.get("", response_model=List[MasterDataOut])
def list_master_data(
    segment_id: Optional[int] = Query(default=None, alias="segmentId"),
    page: Optional[int] = Query(default=None, ge=1),
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    segment_id = ctx.ensure_segment(segment_id)
    return master_data_crud.list_master_data(db, segment_id, ctx.segment_ids, page, limit)


@router.get("/verify", response_model=MasterDataVerifyOut)
def verify_master_data(
    category: Optional[str] = Query(default=None),
    service_type: Optional[str] = Query(default=None, alias="type"),
    provider: Optional[str] = Query(default=None),
    segment_id: Optional[str] = Query(default=None, alias="segmentId"),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """Read-only check that an active catalogue row covers the combination."""
    if not category or not service_type or not provider or not segment_id:
        raise ValidationFailed(
            "Missing required parameters: category, type, provider, segmentId",
            code="MISSING_PARAMETERS",
        )
    segment = ctx.ensure_segment(segment_id)
    match = master_data_crud.master_data_exists(db, category, service_type, provider, segment)
    if match is None:
        raise NotFoundError(VERIFY_NOT_FOUND_MESSAGE, code="MASTER_DATA_NOT_FOUND")
    return MasterDataVerifyOut(
        message="Service combination exists in master data",
        master_data=MasterDataOut.model_validate(match),
    )


@router.get("/{master_data_id}", response_model=MasterDataOut)
def get_master_data(
    master_data_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return _load(db, ctx, master_data_id)


@router.post("", response_model=MasterDataOut, status_code=status.HTTP_201_CREATED)
def create_master_data(
    payload: MasterDataCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    data = payload.model_dump()
    data["segment_id"] = ctx.ensure_segment(payload.segment_id)
    master = master_data_crud.create_master_data(db, data, created_by=ctx.user_id)
    audit.record_activity(ctx, "CREATE_MASTER_DATA", "master_data", master.id)
    return master


@router.put("/{master_data_id}", response_model=MasterDataOut)
def update_master_data(
    master_data_id: int,
    payload: MasterDataUpdate,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    master = _load(db, ctx, master_data_id)
    changes = payload.model_dump(exclude_unset=True)
    for field in ("service_category", "service_type", "active"):
        if field in changes and changes[field] is None:
            changes.pop(field)
    if "service_provider" in changes and changes["service_provider"] is None:
        changes["service_provider"] = ""
    if "segment_id" in changes:
        changes["segment_id"] = ctx.ensure_segment(changes["segment_id"])
    master = master_data_crud.update_master_data(db, master, changes)
    audit.record_activity(ctx, "UPDATE_MASTER_DATA", "master_data", master.id, {"fields": sorted(changes)})
    return master
