"""Error translation and small query helpers shared by the crud modules."""

import functools
from typing import Iterable, Optional

import structlog
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.errors import ApiError, ConflictError, DatabaseError, ValidationFailed

logger = structlog.get_logger(__name__)

MASTER_DATA_MISSING_MESSAGE = (
    "The selected service combination does not exist in the master data. "
    "Please create it in the Master Data section first."
)

_UNIQUE_MARKERS = ("23505", "unique constraint", "duplicate key")
_FOREIGN_KEY_MARKERS = ("23503", "foreign key constraint")


def _violation_kind(exc: IntegrityError) -> Optional[str]:
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode == "23505":
        return "unique"
    if pgcode == "23503":
        return "foreign_key"
    text = str(exc.orig).lower()
    if any(marker in text for marker in _UNIQUE_MARKERS):
        return "unique"
    if any(marker in text for marker in _FOREIGN_KEY_MARKERS):
        return "foreign_key"
    return None


def db_operation(operation: str, *, foreign_key_error: Optional[ApiError] = None):
    """Translate driver errors raised by a crud function into ``ApiError``.

    The wrapped function receives the session as its first argument. Any
    database failure rolls the session back before the error is re-raised.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(db, *args, **kwargs):
            try:
                return func(db, *args, **kwargs)
            except ApiError:
                db.rollback()
                raise
            except IntegrityError as exc:
                db.rollback()
                kind = _violation_kind(exc)
                logger.warning("db_integrity_error", operation=operation, kind=kind)
                if kind == "unique":
                    raise ConflictError("Duplicate entry found", code="DUPLICATE_ENTRY")
                if kind == "foreign_key":
                    if foreign_key_error is not None:
                        raise foreign_key_error
                    if operation == "create_client_service":
                        raise ValidationFailed(MASTER_DATA_MISSING_MESSAGE, code="MASTER_DATA_NOT_FOUND")
                    raise ValidationFailed("Referenced record not found", code="FOREIGN_KEY_VIOLATION")
                raise DatabaseError(f"Database error during {operation}")
            except SQLAlchemyError:
                db.rollback()
                logger.exception("db_error", operation=operation)
                raise DatabaseError(f"Database error during {operation}")

        return wrapper

    return decorator


def visible_to(column, segment_ids: Optional[Iterable[int]]):
    """Filter clause for rows in ``segment_ids`` plus global rows, or None."""
    if segment_ids is None:
        return None
    ids = list(segment_ids)
    if not ids:
        return column.is_(None)
    return or_(column.in_(ids), column.is_(None))


def in_segment(column, segment_id: Optional[int]):
    if segment_id is None:
        return None
    return or_(column == segment_id, column.is_(None))


def apply_scope(query, column, segment_id: Optional[int] = None, segment_ids: Optional[Iterable[int]] = None):
    for clause in (in_segment(column, segment_id), visible_to(column, segment_ids)):
        if clause is not None:
            query = query.filter(clause)
    return query


def paginate(query, page: Optional[int] = None, limit: Optional[int] = None):
    if limit is None:
        return query
    page = page or 1
    return query.offset((page - 1) * limit).limit(limit)


def save(db, instance):
    db.add(instance)
    db.commit()
    db.refresh(instance)
    return instance
