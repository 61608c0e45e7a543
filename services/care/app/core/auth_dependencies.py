from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import AuthenticationError, ForbiddenError
from app.core.security import TOKEN_TYPE_ACCESS, decode_token
from app.models.user import User

bearer_scheme = HTTPBearer(auto_error=False)


def _extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    raw = request.headers.get("authorization", "").strip()
    if raw and " " not in raw:
        return raw
    return request.query_params.get("token") or None


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the caller from the access token and load the user row."""
    token = _extract_token(request, credentials)
    if not token:
        raise AuthenticationError("Authentication required", code="NOT_AUTHENTICATED")

    try:
        payload = decode_token(token)
    except JWTError:
        raise AuthenticationError("Invalid or expired token", code="INVALID_TOKEN")

    if payload.get("type", TOKEN_TYPE_ACCESS) != TOKEN_TYPE_ACCESS:
        raise AuthenticationError("Invalid or expired token", code="INVALID_TOKEN")

    user_id = payload.get("id")
    user = db.get(User, user_id) if isinstance(user_id, int) else None
    if user is None:
        raise AuthenticationError("User not found", code="NOT_AUTHENTICATED")

    # read by the rate limiter key and the request logger
    request.state.user_id = user.id
    request.state.company_id = user.company_id
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise ForbiddenError("Forbidden: Admin access required", code="ADMIN_REQUIRED")
    return current_user
