from typing import Iterable, List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, require_positive_id
from app.crud.base import apply_scope, db_operation, paginate, save
from app.models.client_service import ClientService
from app.models.master_data import MasterData

DUPLICATE_MESSAGE = "A service with this combination of category, type, and provider already exists"


def _same_segment(column, segment_id: Optional[int]):
    return column.is_(None) if segment_id is None else column == segment_id


def _combination(model, category: str, service_type: str, provider: str):
    return and_(
        model.service_category == category,
        model.service_type == service_type,
        model.service_provider == provider,
    )


def find_duplicate(
    db: Session,
    category: str,
    service_type: str,
    provider: str,
    segment_id: Optional[int],
    exclude_id: Optional[int] = None,
) -> Optional[MasterData]:
    query = db.query(MasterData).filter(
        _combination(MasterData, category, service_type, provider),
        _same_segment(MasterData.segment_id, segment_id),
    )
    if exclude_id is not None:
        query = query.filter(MasterData.id != exclude_id)
    return query.first()


@db_operation("create_master_data")
def create_master_data(db: Session, data: dict, created_by: Optional[int] = None) -> MasterData:
    if find_duplicate(
        db,
        data["service_category"],
        data["service_type"],
        data.get("service_provider", ""),
        data.get("segment_id"),
    ):
        raise ConflictError(DUPLICATE_MESSAGE, code="DUPLICATE_ENTRY")
    return save(db, MasterData(**data, created_by=created_by))


def list_master_data(
    db: Session,
    segment_id: Optional[int] = None,
    segment_ids: Optional[Iterable[int]] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
):
    query = apply_scope(db.query(MasterData), MasterData.segment_id, segment_id, segment_ids)
    return paginate(query.order_by(MasterData.id.desc()), page, limit).all()


def get_master_data(db: Session, master_data_id: int) -> Optional[MasterData]:
    require_positive_id(master_data_id, "Master data ID")
    return db.get(MasterData, master_data_id)


def master_data_exists(
    db: Session,
    category: str,
    service_type: str,
    provider: str,
    segment_id: Optional[int] = None,
) -> Optional[MasterData]:
    """Return the active catalogue row matching the combination, if any.

    A segment-scoped lookup also accepts global rows. Without a segment only
    global rows match.
    """
    scope = (
        MasterData.segment_id.is_(None)
        if segment_id is None
        else or_(MasterData.segment_id == segment_id, MasterData.segment_id.is_(None))
    )
    return (
        db.query(MasterData)
        .filter(
            _combination(MasterData, category, service_type, provider),
            MasterData.active.is_(True),
            scope,
        )
        .order_by(MasterData.segment_id.is_(None), MasterData.id.desc())
        .first()
    )


def client_services_referencing(
    db: Session,
    category: str,
    service_type: str,
    provider: str,
    segment_id: Optional[int],
) -> List[ClientService]:
    """Client services that depend on the catalogue row for this combination.

    Services in a segment fall back to the global row when their segment has
    no active row of its own, so a global row also covers those.
    """
    if segment_id is None:
        own_row = (
            select(MasterData.id)
            .where(
                _combination(MasterData, category, service_type, provider),
                MasterData.segment_id == ClientService.segment_id,
                MasterData.active.is_(True),
            )
            .correlate(ClientService)
            .exists()
        )
        scope = or_(ClientService.segment_id.is_(None), ~own_row)
    else:
        scope = ClientService.segment_id == segment_id
    return (
        db.query(ClientService)
        .filter(
            _combination(ClientService, category, service_type, provider),
            scope,
        )
        .order_by(ClientService.id.asc())
        .all()
    )


def _in_use_error(master: MasterData, services: List[ClientService]) -> ConflictError:
    client_names = sorted({service.client_name for service in services if service.client_name})
    combination = f"{master.service_category} - {master.service_type} - {master.service_provider}"
    details = (
        f"This service combination ({combination}) is currently assigned to "
        f"{len(services)} service(s) for {len(client_names)} client(s): {', '.join(client_names)}. "
        "Please remove or reassign these services before updating the master data."
    )
    return ConflictError(
        "Cannot update master data: Service is currently assigned to clients",
        code="MASTER_DATA_IN_USE",
        details=details,
        extra={
            "conflictType": "FOREIGN_KEY_CONSTRAINT",
            "referencingServices": [
                {
                    "clientName": service.client_name,
                    "status": service.status,
                    "serviceStartDate": service.service_start_date,
                }
                for service in services
            ],
        },
    )


@db_operation("update_master_data")
def update_master_data(db: Session, master: MasterData, changes: dict) -> MasterData:
    target = {
        "service_category": changes.get("service_category", master.service_category),
        "service_type": changes.get("service_type", master.service_type),
        "service_provider": changes.get("service_provider", master.service_provider),
        "segment_id": changes.get("segment_id", master.segment_id),
    }
    identity_changed = any(getattr(master, key) != value for key, value in target.items())

    if identity_changed:
        services = client_services_referencing(
            db,
            master.service_category,
            master.service_type,
            master.service_provider,
            master.segment_id,
        )
        if services:
            raise _in_use_error(master, services)
        if find_duplicate(
            db,
            target["service_category"],
            target["service_type"],
            target["service_provider"],
            target["segment_id"],
            exclude_id=master.id,
        ):
            raise ConflictError(DUPLICATE_MESSAGE, code="DUPLICATE_ENTRY")

    for field, value in changes.items():
        setattr(master, field, value)
    return save(db, master)
