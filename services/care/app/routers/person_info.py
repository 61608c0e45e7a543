from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.context import RequestContext, get_request_context
from app.core.database import get_db
from app.core.errors import NotFoundError
from app.crud import persons as persons_crud
from app.schemas.person_schema import PersonInfoCreate, PersonInfoOut, PersonInfoUpdate
from app.services import audit

router = APIRouter(prefix="/api/person-info", tags=["Person info"])

_REQUIRED_FIELDS = ("first_name", "last_name", "date_of_birth", "status", "use_home_address")


def load_person(db: Session, ctx: RequestContext, person_id: int):
    person = persons_crud.get_person_info(db, person_id)
    if person is None:
        raise NotFoundError("Client not found", code="CLIENT_NOT_FOUND")
    return ctx.ensure_record(person)


@router.get("", response_model=List[PersonInfoOut])
def list_person_info(
    segment_id: Optional[int] = Query(default=None, alias="segmentId"),
    page: Optional[int] = Query(default=None, ge=1),
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    segment_id = ctx.ensure_segment(segment_id)
    return persons_crud.list_person_info(db, segment_id, ctx.segment_ids, page, limit)


@router.get("/{person_id}", response_model=PersonInfoOut)
def get_person_info(
    person_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return load_person(db, ctx, person_id)


@router.post("", response_model=PersonInfoOut, status_code=status.HTTP_201_CREATED)
def create_person_info(
    payload: PersonInfoCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    data = payload.model_dump()
    data["segment_id"] = ctx.ensure_segment(payload.segment_id)
    if data.get("use_home_address") is None:
        data["use_home_address"] = True
    if data.get("next_of_kin_phone_country_code") is None:
        data.pop("next_of_kin_phone_country_code")
    person = persons_crud.create_person_info(db, data, created_by=ctx.user_id)
    audit.record_activity(ctx, "CREATE_CLIENT", "person_info", person.id, {"segmentId": person.segment_id})
    return person


@router.put("/{person_id}", response_model=PersonInfoOut)
def update_person_info(
    person_id: int,
    payload: PersonInfoUpdate,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    person = load_person(db, ctx, person_id)
    changes = payload.model_dump(exclude_unset=True)
    for field in _REQUIRED_FIELDS:
        if field in changes and changes[field] is None:
            changes.pop(field)
    if "segment_id" in changes:
        changes["segment_id"] = ctx.ensure_segment(changes["segment_id"])
    person = persons_crud.update_person_info(db, person, changes)
    audit.record_activity(ctx, "UPDATE_CLIENT", "person_info", person.id, {"fields": sorted(changes)})
    return person
