from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.core.errors import ValidationFailed, require_positive_id
from app.crud.base import MASTER_DATA_MISSING_MESSAGE, apply_scope, db_operation, paginate, save
from app.crud.master_data import master_data_exists
from app.models.client_service import SERVICE_STATUSES, ClientService


@db_operation("create_client_service")
def create_client_service(db: Session, data: dict, created_by: Optional[int] = None) -> ClientService:
    """Insert an assignment once its combination is found in the catalogue."""
    match = master_data_exists(
        db,
        data["service_category"],
        data["service_type"],
        data.get("service_provider", ""),
        data.get("segment_id"),
    )
    if match is None:
        raise ValidationFailed(MASTER_DATA_MISSING_MESSAGE, code="MASTER_DATA_NOT_FOUND")
    return save(db, ClientService(**data, created_by=created_by))


def list_client_services(
    db: Session,
    segment_id: Optional[int] = None,
    segment_ids: Optional[Iterable[int]] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
):
    query = apply_scope(db.query(ClientService), ClientService.segment_id, segment_id, segment_ids)
    return paginate(query.order_by(ClientService.id.desc()), page, limit).all()


def list_client_services_by_client(
    db: Session,
    client_id: int,
    segment_id: Optional[int] = None,
    segment_ids: Optional[Iterable[int]] = None,
):
    require_positive_id(client_id, "Client ID")
    query = db.query(ClientService).filter(ClientService.client_id == client_id)
    query = apply_scope(query, ClientService.segment_id, segment_id, segment_ids)
    return query.order_by(ClientService.id.desc()).all()


def get_client_service(db: Session, service_id: int) -> Optional[ClientService]:
    require_positive_id(service_id, "Service ID")
    return db.get(ClientService, service_id)


@db_operation("update_client_service_status")
def update_client_service_status(db: Session, service: ClientService, status: str) -> ClientService:
    if status not in SERVICE_STATUSES:
        raise ValidationFailed(
            f"Status must be one of: {', '.join(SERVICE_STATUSES)}",
            code="INVALID_STATUS",
        )
    service.status = status
    return save(db, service)
