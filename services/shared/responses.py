"""JSON error envelope shared by every service."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse
from starlette.background import BackgroundTask


def error_payload(
    message: str,
    code: str,
    details: Any = None,
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build ``{"success": false, "error": {...}}``.

    ``details`` is omitted when empty. ``extra`` keys are merged at the top
    level so clients can branch on them (``conflictType`` for instance).
    """
    error: Dict[str, Any] = {"message": message, "code": code}
    if details is not None:
        error["details"] = details
    payload: Dict[str, Any] = {"success": False, "error": error}
    if extra:
        payload.update(extra)
    return payload


def error_response(
    status_code: int,
    message: str,
    code: str,
    details: Any = None,
    extra: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    background: Optional[BackgroundTask] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_payload(message, code, details, extra),
        headers=headers,
        background=background,
    )
