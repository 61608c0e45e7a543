from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.context import RequestContext, get_request_context
from app.core.database import get_db
from app.core.errors import NotFoundError
from app.crud import case_notes as case_notes_crud
from app.routers.client_services import load_service
from app.schemas.case_note_schema import (
    CaseNoteCountsRequest,
    CaseNoteCreate,
    CaseNoteOut,
    CaseNoteUpdate,
)
from app.services import audit

router = APIRouter(prefix="/api/service-case-notes", tags=["Service case notes"])


@router.post("", response_model=CaseNoteOut, status_code=status.HTTP_201_CREATED)
def create_case_note(
    payload: CaseNoteCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    service = load_service(db, ctx, payload.service_id)
    note = case_notes_crud.create_service_case_note(
        db,
        service,
        payload.note_text,
        payload.document_ids,
        user_id=ctx.user_id,
    )
    audit.record_activity(
        ctx,
        "CREATE_CASE_NOTE",
        "service_case_note",
        note.id,
        {"serviceId": service.id, "documentIds": payload.document_ids},
    )
    return note


@router.post("/counts", response_model=Dict[int, int])
def count_case_notes(
    payload: CaseNoteCountsRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return case_notes_crud.count_case_notes(db, payload.service_ids, ctx.segment_ids)


@router.get("/service/{service_id}", response_model=List[CaseNoteOut])
def list_case_notes(
    service_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    load_service(db, ctx, service_id)
    return case_notes_crud.list_case_notes_by_service(db, service_id)


@router.get("/{service_id}", response_model=Optional[CaseNoteOut])
def get_latest_case_note(
    service_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    load_service(db, ctx, service_id)
    return case_notes_crud.get_case_note(db, service_id)


@router.put("/{service_id}", response_model=CaseNoteOut)
def update_latest_case_note(
    service_id: int,
    payload: CaseNoteUpdate,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    service = load_service(db, ctx, service_id)
    note = case_notes_crud.get_case_note(db, service_id)
    if note is None:
        raise NotFoundError("Case note not found", code="CASE_NOTE_NOT_FOUND")
    note = case_notes_crud.update_service_case_note(
        db,
        note,
        service.client_id,
        payload.note_text,
        payload.document_ids,
        user_id=ctx.user_id,
    )
    audit.record_activity(ctx, "UPDATE_CASE_NOTE", "service_case_note", note.id, {"serviceId": service_id})
    return note
