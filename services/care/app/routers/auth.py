from fastapi import APIRouter, Depends, Request
from jose import JWTError
from sqlalchemy.orm import Session
from shared import client_ip

from app.core.auth_dependencies import get_current_user
from app.core.context import RequestContext
from app.core.database import get_db
from app.core.errors import AuthenticationError, ValidationFailed
from app.core.rate_limit import AUTH_LIMIT, limiter
from app.core.security import (
    TOKEN_TYPE_REFRESH,
    create_access_token,
    create_refresh_token,
    decode_token,
    verify_password,
    verify_user_password,
)
from app.crud import users as users_crud
from app.models.user import User
from app.schemas.auth_schema import (
    AuthStatusResponse,
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RefreshResponse,
)
from app.schemas.common import MessageOut, SuccessMessageOut
from app.schemas.user_schema import UserOut
from app.services import audit

router = APIRouter(prefix="/api", tags=["Auth"])

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"
MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 128


def _caller_context(request: Request, user: User, db: Session) -> RequestContext:
    # audit only: no segment restriction applies here
    return RequestContext(
        user=user,
        company_id=user.company_id,
        segment_ids=None,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
        db=db,
    )


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(AUTH_LIMIT)
def login(request: Request, payload: LoginRequest, db: Session = Depends(get_db)):
    if not payload.username or not payload.password:
        raise ValidationFailed("Username and password are required")

    ip_address = client_ip(request)
    user_agent = request.headers.get("user-agent")
    user = users_crud.get_user_by_username(db, payload.username)

    failure_reason = None
    if not verify_user_password(payload.password, user):
        failure_reason = "User not found" if user is None else "Invalid password"

    if failure_reason:
        audit.record_login(
            audit.LOGIN_FAILED,
            username=payload.username,
            user=user,
            failure_reason=failure_reason,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE, code="INVALID_CREDENTIALS")

    request.state.user_id = user.id
    audit.record_login(audit.LOGIN_SUCCESS, user=user, ip_address=ip_address, user_agent=user_agent)
    return LoginResponse(
        access_token=create_access_token(user),
        refresh_token=create_refresh_token(user),
        user=UserOut.model_validate(user),
    )


@router.post("/auth/refresh", response_model=RefreshResponse)
def refresh(request: Request, payload: RefreshRequest, db: Session = Depends(get_db)):
    if not payload.refresh_token:
        raise ValidationFailed("Refresh token is required")
    try:
        claims = decode_token(payload.refresh_token)
    except JWTError:
        raise AuthenticationError("Invalid refresh token", code="INVALID_REFRESH_TOKEN")
    if claims.get("type") != TOKEN_TYPE_REFRESH:
        raise AuthenticationError("Invalid refresh token", code="INVALID_REFRESH_TOKEN")

    user_id = claims.get("id")
    user = db.get(User, user_id) if isinstance(user_id, int) else None
    if user is None:
        raise AuthenticationError("Invalid refresh token", code="INVALID_REFRESH_TOKEN")

    audit.record_login(
        audit.TOKEN_REFRESH,
        user=user,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return RefreshResponse(access_token=create_access_token(user))


@router.post("/auth/logout", response_model=SuccessMessageOut)
def logout(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ctx = _caller_context(request, current_user, db)
    audit.record_login(audit.LOGOUT, user=current_user, ip_address=ctx.ip_address, user_agent=ctx.user_agent)
    audit.record_activity(ctx, "LOGOUT", "user", current_user.id)
    return SuccessMessageOut(message="Logged out successfully")


@router.get("/auth/status", response_model=AuthStatusResponse)
def auth_status(current_user: User = Depends(get_current_user)):
    return AuthStatusResponse(user=UserOut.model_validate(current_user))


@router.post("/change-password", response_model=MessageOut)
@limiter.limit(AUTH_LIMIT)
def change_password(
    request: Request,
    payload: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    current, new = payload.current_password, payload.new_password
    if not current or not new:
        raise ValidationFailed("Current password and new password are required")
    if len(new) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"New password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(new) > MAX_PASSWORD_LENGTH:
        raise ValidationFailed(f"New password must be less than {MAX_PASSWORD_LENGTH} characters")
    if new == current:
        raise ValidationFailed("New password must be different from current password")
    if not verify_password(current, current_user.password):
        raise ValidationFailed("Current password is incorrect", code="INVALID_PASSWORD")

    users_crud.update_user_password(db, current_user, new)
    audit.record_activity(_caller_context(request, current_user, db), "CHANGE_PASSWORD", "user", current_user.id)
    return MessageOut(message="Password changed successfully")
