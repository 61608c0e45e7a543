from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session
from shared import client_ip

from app.core.auth_dependencies import get_current_user
from app.core.context import RequestContext, build_request_context, get_admin_context
from app.core.database import get_db
from app.core.errors import ForbiddenError, NotFoundError, ValidationFailed
from app.core.rate_limit import STRICT_LIMIT, limiter
from app.crud import companies as companies_crud
from app.crud import users as users_crud
from app.models.user import User
from app.schemas.common import MessageOut
from app.schemas.user_schema import UserCreate, UserOut, UserUpdate
from app.services import audit

router = APIRouter(prefix="/api/users", tags=["Users"])

SELF_EDITABLE_FIELDS = {"name", "password"}


def _load_user(db: Session, ctx: RequestContext, user_id: int) -> User:
    user = users_crud.get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")
    # company-bound admins manage their own company only
    if ctx.company_id is not None and user.company_id != ctx.company_id:
        raise ForbiddenError("Access denied: User belongs to another company", code="COMPANY_ACCESS_DENIED")
    return user


def _ensure_company(db: Session, ctx: RequestContext, company_id) -> None:
    if company_id is None:
        if ctx.company_id is not None:
            raise ForbiddenError("Access denied: Users must stay in your company", code="COMPANY_ACCESS_DENIED")
        return
    if companies_crud.get_company(db, company_id) is None:
        raise NotFoundError("Company not found", code="COMPANY_NOT_FOUND")
    if ctx.company_id is not None and company_id != ctx.company_id:
        raise ForbiddenError("Access denied: Company does not match your own", code="COMPANY_ACCESS_DENIED")


@router.get("", response_model=List[UserOut])
def list_users(
    ctx: RequestContext = Depends(get_admin_context),
    db: Session = Depends(get_db),
):
    return users_crud.list_users(db, company_id=ctx.company_id)


@router.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: int,
    ctx: RequestContext = Depends(get_admin_context),
    db: Session = Depends(get_db),
):
    return _load_user(db, ctx, user_id)


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
@limiter.limit(STRICT_LIMIT)
def create_user(
    request: Request,
    payload: UserCreate,
    ctx: RequestContext = Depends(get_admin_context),
    db: Session = Depends(get_db),
):
    company_id = payload.company_id if payload.company_id is not None else ctx.company_id
    _ensure_company(db, ctx, company_id)
    user = users_crud.create_user(
        db,
        username=payload.username,
        password=payload.password,
        name=payload.name,
        role=payload.role,
        company_id=company_id,
    )
    audit.record_activity(ctx, "CREATE_USER", "user", user.id, {"username": user.username, "role": user.role})
    return user


@router.put("/{user_id}", response_model=UserOut)
@limiter.limit(STRICT_LIMIT)
def update_user(
    request: Request,
    user_id: int,
    payload: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    for field in ("username", "password", "role"):
        if field in changes and changes[field] is None:
            changes.pop(field)

    if current_user.is_admin:
        ctx = build_request_context(request, current_user, db)
        user = _load_user(db, ctx, user_id)
        if "company_id" in changes:
            _ensure_company(db, ctx, changes["company_id"])
    else:
        if user_id != current_user.id:
            raise ForbiddenError("Forbidden: Admin access required", code="ADMIN_REQUIRED")
        if set(changes) - SELF_EDITABLE_FIELDS:
            raise ForbiddenError("You can only update your own name and password", code="FIELD_NOT_EDITABLE")
        ctx = RequestContext(
            user=current_user,
            company_id=current_user.company_id,
            segment_ids=frozenset(),
            ip_address=client_ip(request),
            user_agent=request.headers.get("user-agent"),
            db=db,
        )
        user = current_user

    user = users_crud.update_user(db, user, changes)
    audit.record_activity(ctx, "UPDATE_USER", "user", user.id, {"fields": sorted(changes)})
    return user


@router.delete("/{user_id}", response_model=MessageOut)
@limiter.limit(STRICT_LIMIT)
def delete_user(
    request: Request,
    user_id: int,
    ctx: RequestContext = Depends(get_admin_context),
    db: Session = Depends(get_db),
):
    if user_id == ctx.user_id:
        raise ValidationFailed("You cannot delete your own account", code="SELF_DELETE")
    user = _load_user(db, ctx, user_id)
    username = user.username
    users_crud.delete_user(db, user)
    audit.record_activity(ctx, "DELETE_USER", "user", user_id, {"username": username})
    return MessageOut(message="User deleted successfully")
