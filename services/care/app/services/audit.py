"""Audit and login trail entries, written on their own session."""

from typing import Any, Dict, Optional

from app.core.database import SessionLocal
from app.crud import logs

LOGIN_SUCCESS = "LOGIN_SUCCESS"
LOGIN_FAILED = "LOGIN_FAILED"
LOGOUT = "LOGOUT"
TOKEN_REFRESH = "TOKEN_REFRESH"


def record_activity(
    ctx,
    action: str,
    resource_type: Optional[str] = None,
    resource_id: Any = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> bool:
    """Audit entry for the caller described by a ``RequestContext``."""
    with SessionLocal() as db:
        return logs.log_user_activity(
            db,
            action=action,
            user_id=ctx.user.id,
            username=ctx.user.username,
            resource_type=resource_type,
            resource_id=resource_id,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
            metadata=metadata,
        )


def record_login(
    login_type: str,
    *,
    username: Optional[str] = None,
    user=None,
    failure_reason: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> bool:
    with SessionLocal() as db:
        return logs.log_login(
            db,
            login_type=login_type,
            username=username or getattr(user, "username", None),
            user_id=getattr(user, "id", None),
            company_id=getattr(user, "company_id", None),
            failure_reason=failure_reason,
            ip_address=ip_address,
            user_agent=user_agent,
        )
