from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.core.auth_dependencies import get_current_user
from app.core.context import RequestContext, get_admin_context
from app.core.database import get_db
from app.core.errors import ForbiddenError, NotFoundError
from app.core.rate_limit import STRICT_LIMIT, limiter
from app.crud import companies as companies_crud
from app.crud import segments as segments_crud
from app.models.user import User
from app.schemas.common import MessageOut
from app.schemas.company_schema import SegmentCreate, SegmentOut, SegmentUpdate
from app.services import audit

router = APIRouter(prefix="/api/segments", tags=["Segments"])
user_router = APIRouter(prefix="/api/user", tags=["Segments"])


def _load_segment(db: Session, ctx: RequestContext, segment_id: int):
    segment = segments_crud.get_segment(db, segment_id)
    if segment is None:
        raise NotFoundError("Segment not found", code="SEGMENT_NOT_FOUND")
    if ctx.company_id is not None and segment.company_id != ctx.company_id:
        raise ForbiddenError(
            "Access denied: Segment does not belong to your company",
            code="SEGMENT_ACCESS_DENIED",
        )
    return segment


@router.get("/{company_id}", response_model=List[SegmentOut])
def list_company_segments(
    company_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not current_user.is_admin:
        if current_user.company_id is None:
            raise ForbiddenError(
                "Access denied: User must be assigned to a company",
                code="NO_COMPANY_ASSIGNED",
            )
        if current_user.company_id != company_id:
            raise ForbiddenError("Access denied: Company does not match your own", code="COMPANY_ACCESS_DENIED")
    return segments_crud.list_segments_by_company(db, company_id)


@router.post("", response_model=SegmentOut, status_code=status.HTTP_201_CREATED)
@limiter.limit(STRICT_LIMIT)
def create_segment(
    request: Request,
    payload: SegmentCreate,
    ctx: RequestContext = Depends(get_admin_context),
    db: Session = Depends(get_db),
):
    if companies_crud.get_company(db, payload.company_id) is None:
        raise NotFoundError("Company not found", code="COMPANY_NOT_FOUND")
    if ctx.company_id is not None and payload.company_id != ctx.company_id:
        raise ForbiddenError("Access denied: Company does not match your own", code="COMPANY_ACCESS_DENIED")
    segment = segments_crud.create_segment(db, payload.segment_name, payload.company_id, created_by=ctx.user_id)
    audit.record_activity(ctx, "CREATE_SEGMENT", "segment", segment.id, {"segmentName": segment.segment_name})
    return segment


@router.put("/{segment_id}", response_model=SegmentOut)
@limiter.limit(STRICT_LIMIT)
def update_segment(
    request: Request,
    segment_id: int,
    payload: SegmentUpdate,
    ctx: RequestContext = Depends(get_admin_context),
    db: Session = Depends(get_db),
):
    segment = _load_segment(db, ctx, segment_id)
    segment = segments_crud.update_segment(db, segment, payload.segment_name)
    audit.record_activity(ctx, "UPDATE_SEGMENT", "segment", segment.id, {"segmentName": segment.segment_name})
    return segment


@router.delete("/{segment_id}", response_model=MessageOut)
@limiter.limit(STRICT_LIMIT)
def delete_segment(
    request: Request,
    segment_id: int,
    ctx: RequestContext = Depends(get_admin_context),
    db: Session = Depends(get_db),
):
    segment = _load_segment(db, ctx, segment_id)
    segments_crud.delete_segment(db, segment)
    audit.record_activity(ctx, "DELETE_SEGMENT", "segment", segment_id)
    return MessageOut(message="Segment deleted successfully")


@user_router.get("/segments", response_model=List[SegmentOut])
def my_segments(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Segments the caller can pick from. Super-admins see every segment."""
    if current_user.company_id is None:
        return segments_crud.list_segments(db) if current_user.is_admin else []
    return segments_crud.list_segments_by_company(db, current_user.company_id)
