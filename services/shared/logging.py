"""Structured logging helpers shared across services."""

from __future__ import annotations

import logging
import sys
import time
from typing import Optional
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import structlog


_REQUEST_ID_HEADER = "X-Request-ID"
_SENSITIVE_PREFIXES = ("/api/users", "/api/auth")


def configure_logging(service_name: str, level: int = logging.INFO) -> structlog.stdlib.BoundLogger:
    """Configure structlog to emit JSON logs with contextual information."""

    if not logging.root.handlers:
        logging.basicConfig(
            format="%(message)s",
            stream=sys.stdout,
            level=level,
        )

    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            timestamper,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger().bind(service=service_name)


def client_ip(request: Request) -> str:
    """Best guess of the caller address, honouring reverse proxies."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class RequestContextLogMiddleware(BaseHTTPMiddleware):
    """Attach request context to structlog and log request lifecycle events."""

    def __init__(self, app, *, logger: Optional[structlog.stdlib.BoundLogger] = None) -> None:
        super().__init__(app)
        self._logger = logger or structlog.get_logger("request")

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(_REQUEST_ID_HEADER) or str(uuid4())
        started = time.perf_counter()

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
            client_ip=client_ip(request),
        )

        try:
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - started) * 1000, 2)
            user_id = getattr(request.state, "user_id", None)
            self._logger.info(
                "request_completed",
                status_code=response.status_code,
                duration_ms=duration_ms,
                user_id=user_id,
            )
            if request.method != "GET" and request.url.path.startswith(_SENSITIVE_PREFIXES):
                self._logger.info(
                    "sensitive_request",
                    user_id=user_id,
                    user_agent=request.headers.get("user-agent", "unknown"),
                )
            response.headers[_REQUEST_ID_HEADER] = request_id
            return response
        except Exception:
            self._logger.exception("request_failed")
            raise
        finally:
            structlog.contextvars.clear_contextvars()
