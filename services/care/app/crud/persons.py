from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.core.errors import require_positive_id
from app.crud.base import apply_scope, db_operation, paginate, save
from app.models.person import PersonInfo


@db_operation("create_person_info")
def create_person_info(db: Session, data: dict, created_by: Optional[int] = None) -> PersonInfo:
    return save(db, PersonInfo(**data, created_by=created_by))


def list_person_info(
    db: Session,
    segment_id: Optional[int] = None,
    segment_ids: Optional[Iterable[int]] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
):
    query = apply_scope(db.query(PersonInfo), PersonInfo.segment_id, segment_id, segment_ids)
    query = query.order_by(PersonInfo.id.desc())
    return paginate(query, page, limit).all()


def get_person_info(db: Session, person_id: int) -> Optional[PersonInfo]:
    require_positive_id(person_id, "Client ID")
    return db.get(PersonInfo, person_id)


@db_operation("update_person_info")
def update_person_info(db: Session, person: PersonInfo, changes: dict) -> PersonInfo:
    for field, value in changes.items():
        setattr(person, field, value)
    return save(db, person)
