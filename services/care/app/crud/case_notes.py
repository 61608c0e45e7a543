from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import ValidationFailed, require_positive_id
from app.crud.base import db_operation, visible_to
from app.models.client_service import CaseNoteDocument, ClientService, ServiceCaseNote
from app.models.document import Document


def _link_documents(
    db: Session,
    note: ServiceCaseNote,
    client_id: int,
    document_ids: Iterable[int],
    user_id: Optional[int],
) -> None:
    ids = list(dict.fromkeys(require_positive_id(doc_id, "Document ID") for doc_id in document_ids))
    if not ids:
        return
    found = {
        row.id
        for row in db.query(Document.id).filter(Document.id.in_(ids), Document.client_id == client_id).all()
    }
    missing = [doc_id for doc_id in ids if doc_id not in found]
    if missing:
        raise ValidationFailed(
            "One or more documents were not found for this client",
            code="INVALID_DOCUMENTS",
            details={"documentIds": missing},
        )
    for doc_id in ids:
        db.add(CaseNoteDocument(case_note_id=note.id, document_id=doc_id, created_by=user_id))


@db_operation("create_service_case_note")
def create_service_case_note(
    db: Session,
    service: ClientService,
    note_text: str,
    document_ids: Iterable[int] = (),
    user_id: Optional[int] = None,
) -> ServiceCaseNote:
    """Insert a note and its document links in one transaction."""
    note = ServiceCaseNote(
        service_id=service.id,
        note_text=note_text,
        created_by=user_id,
        updated_by=user_id,
        segment_id=service.segment_id,
    )
    db.add(note)
    db.flush()
    _link_documents(db, note, service.client_id, document_ids, user_id)
    db.commit()
    db.refresh(note)
    return note


def list_case_notes_by_service(db: Session, service_id: int) -> List[ServiceCaseNote]:
    require_positive_id(service_id, "Service ID")
    return (
        db.query(ServiceCaseNote)
        .filter(ServiceCaseNote.service_id == service_id)
        .order_by(ServiceCaseNote.created_at.desc(), ServiceCaseNote.id.desc())
        .all()
    )


def get_case_note(db: Session, service_id: int) -> Optional[ServiceCaseNote]:
    """Latest note of a service."""
    require_positive_id(service_id, "Service ID")
    return (
        db.query(ServiceCaseNote)
        .filter(ServiceCaseNote.service_id == service_id)
        .order_by(ServiceCaseNote.created_at.desc(), ServiceCaseNote.id.desc())
        .first()
    )


@db_operation("update_service_case_note")
def update_service_case_note(
    db: Session,
    note: ServiceCaseNote,
    client_id: int,
    note_text: str,
    document_ids: Optional[Iterable[int]] = None,
    user_id: Optional[int] = None,
) -> ServiceCaseNote:
    note.note_text = note_text
    note.updated_by = user_id
    if document_ids is not None:
        db.query(CaseNoteDocument).filter(CaseNoteDocument.case_note_id == note.id).delete(
            synchronize_session=False
        )
        _link_documents(db, note, client_id, document_ids, user_id)
    db.commit()
    db.expire(note)
    db.refresh(note)
    return note


def count_case_notes(
    db: Session,
    service_ids: Iterable[int],
    segment_ids: Optional[Iterable[int]] = None,
) -> Dict[int, int]:
    """Note count per service. Services outside ``segment_ids`` are left out."""
    ids = [require_positive_id(service_id, "Service ID") for service_id in service_ids]
    if not ids:
        return {}
    query = db.query(ClientService.id).filter(ClientService.id.in_(ids))
    scope = visible_to(ClientService.segment_id, segment_ids)
    if scope is not None:
        query = query.filter(scope)
    visible = {service_id for (service_id,) in query.all()}
    ids = [service_id for service_id in ids if service_id in visible]
    counts = {service_id: 0 for service_id in ids}
    if not ids:
        return counts
    rows = (
        db.query(ServiceCaseNote.service_id, func.count(ServiceCaseNote.id))
        .filter(ServiceCaseNote.service_id.in_(ids))
        .group_by(ServiceCaseNote.service_id)
        .all()
    )
    for service_id, total in rows:
        counts[service_id] = total
    return counts
