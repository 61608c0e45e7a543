"""Exception handlers rendering the JSON error envelope and feeding ``error_logs``."""

import asyncio
import sys
import time
import traceback
import warnings
from http import HTTPStatus
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from starlette.background import BackgroundTask
from starlette.exceptions import HTTPException as StarletteHTTPException
from shared import client_ip, error_response

from app.core.database import SessionLocal
from app.core.errors import ApiError
from app.crud import logs

logger = structlog.get_logger(__name__)

EXIT_GRACE_SECONDS = 1.0

_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "NOT_AUTHENTICATED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    413: "REQUEST_TOO_LARGE",
    415: "UNSUPPORTED_MEDIA_TYPE",
    429: "RATE_LIMIT_EXCEEDED",
}


def _persist_error(fields: Dict[str, Any]) -> None:
    with SessionLocal() as db:
        logs.log_error(db, **fields)


def _error_fields(
    request: Request,
    *,
    status_code: int,
    error_type: str,
    code: str,
    message: str,
    stack_trace: Optional[str] = None,
    request_data: Any = None,
) -> Dict[str, Any]:
    return {
        "user_id": getattr(request.state, "user_id", None),
        "company_id": getattr(request.state, "company_id", None),
        "error_type": error_type,
        "error_code": code,
        "error_message": message,
        "stack_trace": stack_trace,
        "method": request.method,
        "endpoint": request.url.path,
        "ip_address": client_ip(request),
        "user_agent": request.headers.get("user-agent"),
        "request_data": request_data if request_data is not None else dict(request.query_params) or None,
        "request_headers": dict(request.headers),
        "severity": "ERROR" if status_code >= 500 else "WARNING",
        "metadata": {"statusCode": status_code},
    }


def _respond(
    request: Request,
    status_code: int,
    message: str,
    code: str,
    *,
    details: Any = None,
    extra: Optional[Dict[str, Any]] = None,
    error_type: str = "ApiError",
    stack_trace: Optional[str] = None,
    request_data: Any = None,
    headers: Optional[Dict[str, str]] = None,
):
    fields = _error_fields(
        request,
        status_code=status_code,
        error_type=error_type,
        code=code,
        message=message,
        stack_trace=stack_trace,
        request_data=request_data,
    )
    return error_response(
        status_code,
        message,
        code,
        details=details,
        extra=extra,
        headers=headers,
        background=BackgroundTask(_persist_error, fields),
    )


def _field_errors(exc: RequestValidationError):
    details = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ())]
        if location and location[0] in ("body", "query", "path", "header", "form"):
            location = location[1:]
        details.append({"field": ".".join(location) or "body", "message": error.get("msg", "Invalid value")})
    return details


async def api_error_handler(request: Request, exc: ApiError):
    return _respond(
        request,
        exc.status_code,
        exc.message,
        exc.code,
        details=exc.details,
        extra=exc.extra,
        error_type=type(exc).__name__,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    body = exc.body if isinstance(exc.body, (dict, list)) else None
    return _respond(
        request,
        400,
        "Validation failed",
        "VALIDATION_ERROR",
        details=_field_errors(exc),
        error_type="ValidationError",
        request_data=body,
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    code = _STATUS_CODES.get(exc.status_code, "HTTP_ERROR")
    if isinstance(exc.detail, str):
        message = exc.detail
    else:
        message = HTTPStatus(exc.status_code).phrase
    return _respond(
        request,
        exc.status_code,
        message,
        code,
        error_type="HTTPException",
        headers=getattr(exc, "headers", None),
    )


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return _respond(
        request,
        429,
        "Too many requests, please try again later.",
        "RATE_LIMIT_EXCEEDED",
        details=str(exc.detail),
        error_type="RateLimitExceeded",
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", path=request.url.path, method=request.method)
    return _respond(
        request,
        500,
        "Internal server error",
        "INTERNAL_SERVER_ERROR",
        error_type=type(exc).__name__,
        stack_trace="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


def _record_process_error(error_type: str, message: str, stack_trace: Optional[str], severity: str) -> None:
    try:
        _persist_error(
            {
                "error_type": error_type,
                "error_code": "PROCESS_ERROR",
                "error_message": message,
                "stack_trace": stack_trace,
                "severity": severity,
            }
        )
    except Exception as exc:
        logger.warning("process_error_log_failed", error=str(exc))


def install_global_error_hooks(loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
    """Route uncaught exceptions, loop task failures and warnings into ``error_logs``."""
    previous_excepthook = sys.excepthook
    previous_showwarning = warnings.showwarning

    def excepthook(exc_type, exc, tb):
        logger.critical("uncaught_exception", error=str(exc))
        _record_process_error(
            exc_type.__name__,
            str(exc),
            "".join(traceback.format_exception(exc_type, exc, tb)),
            "CRITICAL",
        )
        previous_excepthook(exc_type, exc, tb)
        time.sleep(EXIT_GRACE_SECONDS)

    def loop_exception_handler(event_loop, context):
        exc = context.get("exception")
        message = str(exc) if exc is not None else context.get("message", "Unhandled loop error")
        logger.error("unhandled_task_error", error=message)
        stack = (
            "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            if exc is not None
            else None
        )
        _record_process_error(type(exc).__name__ if exc else "AsyncioError", message, stack, "ERROR")

    def showwarning(message, category, filename, lineno, file=None, line=None):
        _record_process_error(category.__name__, f"{message} ({filename}:{lineno})", None, "WARNING")
        previous_showwarning(message, category, filename, lineno, file, line)

    sys.excepthook = excepthook
    warnings.showwarning = showwarning
    if loop is not None:
        loop.set_exception_handler(loop_exception_handler)
