"""Best-effort writers for the log tables. They never raise."""

from typing import Any, Dict, Optional

import structlog
from sqlalchemy.orm import Session

from app.models.logs import AuditLog, ErrorLog, LoginLog, PerformanceLog

logger = structlog.get_logger(__name__)

REDACTED = "[REDACTED]"
SENSITIVE_FIELDS = frozenset(
    {"password", "currentpassword", "newpassword", "token", "refreshtoken", "accesstoken", "secret"}
)
SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "x-api-key"})


def filter_sensitive_data(data: Any) -> Any:
    """Copy of ``data`` with password and token values replaced."""
    if isinstance(data, dict):
        return {
            key: REDACTED
            if str(key).replace("_", "").lower() in SENSITIVE_FIELDS
            else filter_sensitive_data(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [filter_sensitive_data(item) for item in data]
    return data


def filter_sensitive_headers(headers: Dict[str, str]) -> Dict[str, str]:
    return {
        key: REDACTED if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def _write(db: Session, row, event: str) -> bool:
    try:
        db.add(row)
        db.commit()
        return True
    except Exception as exc:
        db.rollback()
        logger.warning(event, error=str(exc))
        return False


def log_user_activity(
    db: Session,
    *,
    action: str,
    user_id: Optional[int] = None,
    username: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Any = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> bool:
    row = AuditLog(
        user_id=user_id,
        username=username,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        ip_address=ip_address,
        user_agent=user_agent,
        metadata_=filter_sensitive_data(metadata) if metadata else None,
    )
    return _write(db, row, "audit_log_write_failed")


def log_error(db: Session, **fields: Any) -> bool:
    if fields.get("request_data") is not None:
        fields["request_data"] = filter_sensitive_data(fields["request_data"])
    if fields.get("request_headers") is not None:
        fields["request_headers"] = filter_sensitive_headers(fields["request_headers"])
    metadata = fields.pop("metadata", None)
    message = fields.get("error_message") or "Unknown error"
    fields["error_message"] = str(message)[:10000]
    return _write(db, ErrorLog(metadata_=metadata, **fields), "error_log_write_failed")


def log_login(
    db: Session,
    *,
    login_type: str,
    username: Optional[str] = None,
    user_id: Optional[int] = None,
    failure_reason: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    session_id: Optional[str] = None,
    company_id: Optional[int] = None,
) -> bool:
    row = LoginLog(
        login_type=login_type,
        username=username,
        user_id=user_id,
        failure_reason=failure_reason,
        ip_address=ip_address,
        user_agent=user_agent,
        session_id=session_id,
        company_id=company_id,
    )
    return _write(db, row, "login_log_write_failed")


def log_performance(db: Session, **fields: Any) -> bool:
    metadata = fields.pop("metadata", None)
    return _write(db, PerformanceLog(metadata_=metadata, **fields), "performance_log_write_failed")
