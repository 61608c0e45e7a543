"""Per-request caller scope: who is calling and which segments they may touch."""

from dataclasses import dataclass, field
from typing import Any, FrozenSet, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session
from shared import client_ip

from app.core.auth_dependencies import get_current_user, require_admin
from app.core.database import get_db
from app.core.errors import ForbiddenError, NotFoundError, ValidationFailed
from app.models.company import Segment
from app.models.user import User


@dataclass(frozen=True)
class RequestContext:
    user: User
    company_id: Optional[int]
    # None means unrestricted (admin without a company)
    segment_ids: Optional[FrozenSet[int]]
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    db: Optional[Session] = field(default=None, repr=False, compare=False)

    @property
    def is_super_admin(self) -> bool:
        return self.segment_ids is None

    @property
    def user_id(self) -> int:
        return self.user.id

    def ensure_segment(self, segment_id: Any) -> Optional[int]:
        """Check a client-supplied segment id. ``None`` means global and passes."""
        if segment_id is None or segment_id == "":
            return None
        try:
            segment_id = int(segment_id)
        except (TypeError, ValueError):
            raise ValidationFailed("Segment ID must be a positive integer", code="INVALID_ID")
        if segment_id <= 0:
            raise ValidationFailed("Segment ID must be a positive integer", code="INVALID_ID")

        if self.segment_ids is not None and segment_id in self.segment_ids:
            return segment_id

        segment = self.db.get(Segment, segment_id) if self.db is not None else None
        if segment is None:
            raise NotFoundError("Segment not found", code="SEGMENT_NOT_FOUND")
        if self.segment_ids is not None:
            raise ForbiddenError(
                "Access denied: Segment does not belong to your company",
                code="SEGMENT_ACCESS_DENIED",
            )
        return segment_id

    def ensure_record(self, record):
        """Apply the segment check to a loaded row. Global rows always pass."""
        segment_id = getattr(record, "segment_id", None)
        if segment_id is None or self.segment_ids is None:
            return record
        if segment_id not in self.segment_ids:
            raise ForbiddenError(
                "Access denied: Segment does not belong to your company",
                code="SEGMENT_ACCESS_DENIED",
            )
        return record

    def can_see(self, segment_id: Optional[int]) -> bool:
        return segment_id is None or self.segment_ids is None or segment_id in self.segment_ids


def company_segment_ids(db: Session, company_id: int) -> FrozenSet[int]:
    rows = db.query(Segment.id).filter(Segment.company_id == company_id).all()
    return frozenset(row[0] for row in rows)


def build_request_context(request: Request, user: User, db: Session) -> RequestContext:
    if user.company_id is None:
        if not user.is_admin:
            raise ForbiddenError(
                "Access denied: User must be assigned to a company",
                code="NO_COMPANY_ASSIGNED",
            )
        segment_ids = None
    else:
        segment_ids = company_segment_ids(db, user.company_id)

    return RequestContext(
        user=user,
        company_id=user.company_id,
        segment_ids=segment_ids,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
        db=db,
    )


def get_request_context(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> RequestContext:
    return build_request_context(request, current_user, db)


def get_admin_context(
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> RequestContext:
    return build_request_context(request, current_user, db)
