from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.core.errors import require_positive_id
from app.crud.base import apply_scope, db_operation, save
from app.models.document import Document


@db_operation("create_document")
def create_document(db: Session, data: dict, created_by: Optional[int] = None) -> Document:
    return save(db, Document(**data, created_by=created_by))


def get_document(db: Session, document_id: int) -> Optional[Document]:
    require_positive_id(document_id, "Document ID")
    return db.get(Document, document_id)


def get_document_by_client_and_filename(db: Session, client_id: int, filename: str) -> Optional[Document]:
    return (
        db.query(Document)
        .filter(Document.client_id == client_id, Document.filename == filename)
        .first()
    )


def get_document_by_file_path(db: Session, file_path: str) -> Optional[Document]:
    return db.query(Document).filter(Document.file_path == file_path).first()


def list_documents_by_client(
    db: Session,
    client_id: int,
    segment_id: Optional[int] = None,
    segment_ids: Optional[Iterable[int]] = None,
):
    require_positive_id(client_id, "Client ID")
    query = db.query(Document).filter(Document.client_id == client_id)
    query = apply_scope(query, Document.segment_id, segment_id, segment_ids)
    return query.order_by(Document.uploaded_at.desc(), Document.id.desc()).all()


@db_operation("delete_document")
def delete_document(db: Session, document: Document) -> None:
    db.delete(document)
    db.commit()
