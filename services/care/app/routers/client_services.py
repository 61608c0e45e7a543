from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.context import RequestContext, get_request_context
from app.core.database import get_db
from app.core.errors import NotFoundError, ValidationFailed
from app.crud import client_services as client_services_crud
from app.models.client_service import SERVICE_STATUSES
from app.routers.person_info import load_person
from app.schemas.client_service_schema import (
    ClientServiceCreate,
    ClientServiceOut,
    ClientServiceStatusUpdate,
)
from app.schemas.common import MessageOut
from app.services import audit

router = APIRouter(prefix="/api/client-services", tags=["Client services"])


def load_service(db: Session, ctx: RequestContext, service_id: int):
    service = client_services_crud.get_client_service(db, service_id)
    if service is None:
        raise NotFoundError("Client service not found", code="SERVICE_NOT_FOUND")
    return ctx.ensure_record(service)


@router.get("", response_model=List[ClientServiceOut])
def list_client_services(
    segment_id: Optional[int] = Query(default=None, alias="segmentId"),
    page: Optional[int] = Query(default=None, ge=1),
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    segment_id = ctx.ensure_segment(segment_id)
    return client_services_crud.list_client_services(db, segment_id, ctx.segment_ids, page, limit)


@router.get("/client/{client_id}", response_model=List[ClientServiceOut])
def list_services_for_client(
    client_id: int,
    segment_id: Optional[int] = Query(default=None, alias="segmentId"),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    segment_id = ctx.ensure_segment(segment_id)
    load_person(db, ctx, client_id)
    return client_services_crud.list_client_services_by_client(db, client_id, segment_id, ctx.segment_ids)


@router.get("/{service_id}", response_model=ClientServiceOut)
def get_client_service(
    service_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return load_service(db, ctx, service_id)


@router.post("", response_model=ClientServiceOut, status_code=status.HTTP_201_CREATED)
def create_client_service(
    payload: ClientServiceCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    client = load_person(db, ctx, payload.client_id)
    data = payload.model_dump()
    requested = ctx.ensure_segment(payload.segment_id)
    data["segment_id"] = requested if requested is not None else client.segment_id
    service = client_services_crud.create_client_service(db, data, created_by=ctx.user_id)
    audit.record_activity(
        ctx,
        "CREATE_CLIENT_SERVICE",
        "client_service",
        service.id,
        {"clientId": service.client_id, "segmentId": service.segment_id},
    )
    return service


@router.patch("/{service_id}", response_model=MessageOut)
def update_client_service_status(
    service_id: int,
    payload: ClientServiceStatusUpdate,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    if payload.status not in SERVICE_STATUSES:
        raise ValidationFailed(
            f"Invalid status. Must be one of: {', '.join(SERVICE_STATUSES)}",
            code="INVALID_STATUS",
        )
    service = load_service(db, ctx, service_id)
    client_services_crud.update_client_service_status(db, service, payload.status)
    audit.record_activity(ctx, "UPDATE_CLIENT_SERVICE", "client_service", service_id, {"status": payload.status})
    return MessageOut(message="Service status updated successfully")
