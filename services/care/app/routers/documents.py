import re
from pathlib import PurePosixPath
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, Query, Request, Response, UploadFile, status
from sqlalchemy.orm import Session

from app.core.context import RequestContext, get_request_context
from app.core.database import get_db
from app.core.errors import ApiError, ConflictError, NotFoundError, ValidationFailed
from app.core.rate_limit import UPLOAD_LIMIT, limiter
from app.crud import documents as documents_crud
from app.routers.person_info import load_person
from app.schemas.common import MessageOut
from app.schemas.document_schema import DocumentListOut, DocumentOut
from app.services import audit
from app.services.file_storage import FileStorage, StorageUnavailableError, get_file_storage

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/documents", tags=["Documents"])

ALLOWED_EXTENSIONS = {".pdf", ".doc", ".docx", ".jpg", ".jpeg", ".png"}
ALLOWED_MIME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "image/jpeg",
    "image/jpg",
    "image/png",
}
CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
}


def sanitize_filename(filename: str) -> str:
    return re.sub(r"[^a-zA-Z0-9.\-_]", "", filename or "")


def client_directory(client) -> str:
    raw = f"client_{client.id}_{client.first_name}_{client.last_name}"
    return re.sub(r"[^a-zA-Z0-9_]", "_", raw)


def content_type_for(filename: str) -> str:
    return CONTENT_TYPES.get(PurePosixPath(filename).suffix.lower(), "application/octet-stream")


def _storage_unavailable(exc: StorageUnavailableError) -> ApiError:
    return ApiError(str(exc), status_code=503, code="STORAGE_UNAVAILABLE")


def _filename_conflict(filename: str, existing) -> ConflictError:
    return ConflictError(
        f'Document with filename "{filename}" already exists for this client. '
        "Please use the existing document or rename the file.",
        code="DUPLICATE_FILENAME",
        extra={
            "conflictType": "filename_exists",
            "existingDocument": {
                "id": existing.id,
                "documentName": existing.document_name,
                "uploadedAt": existing.uploaded_at.isoformat() if existing.uploaded_at else None,
            },
        },
    )


@router.post("", response_model=DocumentOut, status_code=status.HTTP_201_CREATED)
@limiter.limit(UPLOAD_LIMIT)
def upload_document(
    request: Request,
    file: Optional[UploadFile] = File(default=None),
    client_id: int = Form(..., alias="clientId"),
    document_name: str = Form(..., alias="documentName"),
    document_type: str = Form(..., alias="documentType"),
    segment_id: Optional[str] = Form(default=None, alias="segmentId"),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    if file is None or not file.filename:
        raise ValidationFailed("No file uploaded", code="NO_FILE")

    extension = PurePosixPath(file.filename).suffix.lower()
    if extension not in ALLOWED_EXTENSIONS or (file.content_type or "").lower() not in ALLOWED_MIME_TYPES:
        raise ValidationFailed(
            "Invalid file type. Only PDF, DOC, DOCX, JPG, JPEG and PNG files are allowed.",
            code="INVALID_FILE_TYPE",
        )

    max_bytes = request.app.state.config.security.max_upload_bytes
    data = file.file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ValidationFailed(
            f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB",
            code="FILE_TOO_LARGE",
        )

    client = load_person(db, ctx, client_id)
    requested = ctx.ensure_segment(segment_id)
    filename = sanitize_filename(file.filename) or f"document{extension}"

    existing = documents_crud.get_document_by_client_and_filename(db, client.id, filename)
    if existing is not None:
        raise _filename_conflict(filename, existing)

    # The row is committed first so the (client_id, filename) constraint
    # decides concurrent uploads before any stored file is touched.
    key = f"{client_directory(client)}/{filename}"
    try:
        document = documents_crud.create_document(
            db,
            {
                "client_id": client.id,
                "document_name": document_name.strip(),
                "document_type": document_type.strip(),
                "filename": filename,
                "file_path": key,
                "segment_id": requested if requested is not None else client.segment_id,
            },
            created_by=ctx.user_id,
        )
    except ConflictError as exc:
        if exc.code != "DUPLICATE_ENTRY":
            raise
        existing = documents_crud.get_document_by_client_and_filename(db, client.id, filename)
        if existing is None:
            raise
        raise _filename_conflict(filename, existing)

    try:
        storage.upload_file(data, key, content_type_for(filename))
    except Exception as exc:
        documents_crud.delete_document(db, document)
        logger.warning("document_upload_rolled_back", key=key, error=str(exc))
        if isinstance(exc, StorageUnavailableError):
            raise _storage_unavailable(exc)
        raise

    audit.record_activity(
        ctx,
        "UPLOAD_DOCUMENT",
        "document",
        document.id,
        {"clientId": client.id, "filename": filename, "size": len(data)},
    )
    return document


@router.get("/client/{client_id}", response_model=DocumentListOut)
def list_client_documents(
    client_id: int,
    segment_id: Optional[int] = Query(default=None, alias="segmentId"),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    segment_id = ctx.ensure_segment(segment_id)
    documents = documents_crud.list_documents_by_client(db, client_id, segment_id, ctx.segment_ids)
    if not documents:
        raise NotFoundError("Document not found", code="DOCUMENT_NOT_FOUND")
    return DocumentListOut(data=[DocumentOut.model_validate(document) for document in documents])


def _serve(file_path: str, disposition: str, ctx: RequestContext, db: Session, storage: FileStorage) -> Response:
    document = documents_crud.get_document_by_file_path(db, file_path)
    if document is None:
        raise NotFoundError("Document not found in database", code="DOCUMENT_NOT_FOUND")
    ctx.ensure_record(document)
    try:
        data = storage.download_file(document.file_path)
    except FileNotFoundError:
        raise NotFoundError("Document not found in storage", code="FILE_NOT_FOUND")
    except StorageUnavailableError as exc:
        raise _storage_unavailable(exc)
    return Response(
        content=data,
        media_type=content_type_for(document.filename),
        headers={"Content-Disposition": f'{disposition}; filename="{document.filename}"'},
    )


@router.get("/view/{file_path:path}")
def view_document(
    file_path: str,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    return _serve(file_path, "inline", ctx, db, storage)


@router.delete("/{document_id}", response_model=MessageOut)
def delete_document(
    document_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    document = documents_crud.get_document(db, document_id)
    if document is None:
        raise NotFoundError("Document not found", code="DOCUMENT_NOT_FOUND")
    ctx.ensure_record(document)
    key = document.file_path
    try:
        storage.delete_file(key)
    except FileNotFoundError:
        logger.warning("document_file_missing_on_delete", key=key)
    except StorageUnavailableError as exc:
        raise _storage_unavailable(exc)
    documents_crud.delete_document(db, document)
    audit.record_activity(ctx, "DELETE_DOCUMENT", "document", document_id, {"filePath": key})
    return MessageOut(message="Document deleted successfully")


@router.get("/{file_path:path}")
def download_document(
    file_path: str,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    return _serve(file_path, "attachment", ctx, db, storage)
