from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, require_positive_id
from app.crud.base import db_operation, save
from app.models.client_service import ClientService
from app.models.company import Segment
from app.models.document import Document
from app.models.master_data import MasterData
from app.models.person import PersonInfo


def get_segment(db: Session, segment_id: int) -> Optional[Segment]:
    require_positive_id(segment_id, "Segment ID")
    return db.get(Segment, segment_id)


def list_segments(db: Session):
    return db.query(Segment).order_by(Segment.company_id.asc(), Segment.segment_name.asc()).all()


def list_segments_by_company(db: Session, company_id: int):
    require_positive_id(company_id, "Company ID")
    return (
        db.query(Segment)
        .filter(Segment.company_id == company_id)
        .order_by(Segment.segment_name.asc())
        .all()
    )


def _ensure_unique_name(db: Session, name: str, company_id: int, segment_id: Optional[int] = None) -> None:
    query = db.query(Segment).filter(Segment.segment_name == name, Segment.company_id == company_id)
    if segment_id is not None:
        query = query.filter(Segment.id != segment_id)
    if query.first() is not None:
        raise ConflictError("Segment name already exists for this company", code="DUPLICATE_ENTRY")


@db_operation("create_segment")
def create_segment(db: Session, segment_name: str, company_id: int, created_by: Optional[int] = None) -> Segment:
    _ensure_unique_name(db, segment_name, company_id)
    return save(db, Segment(segment_name=segment_name, company_id=company_id, created_by=created_by))


@db_operation("update_segment")
def update_segment(db: Session, segment: Segment, segment_name: str) -> Segment:
    _ensure_unique_name(db, segment_name, segment.company_id, segment.id)
    segment.segment_name = segment_name
    return save(db, segment)


def _segment_in_use(db: Session, segment_id: int) -> bool:
    for model in (PersonInfo, MasterData, ClientService, Document):
        if db.query(model.id).filter(model.segment_id == segment_id).first() is not None:
            return True
    return False


@db_operation(
    "delete_segment",
    foreign_key_error=ConflictError(
        "Cannot delete segment: it is still referenced by other records",
        code="SEGMENT_IN_USE",
    ),
)
def delete_segment(db: Session, segment: Segment) -> None:
    if _segment_in_use(db, segment.id):
        raise ConflictError(
            "Cannot delete segment: it is still referenced by other records",
            code="SEGMENT_IN_USE",
        )
    db.delete(segment)
    db.commit()
