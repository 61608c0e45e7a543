import asyncio
import time

import psutil
import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from shared import client_ip

from app.core.database import SessionLocal
from app.crud import logs

logger = structlog.get_logger(__name__)

SLOW_REQUEST_MS = 1000
_PROCESS = psutil.Process()


def _persist(fields: dict) -> None:
    with SessionLocal() as db:
        logs.log_performance(db, **fields)


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Times ``/api`` requests and stores one ``performance_logs`` row each.

    The insert runs on the default executor and is not awaited.
    """

    def __init__(self, app, *, enabled: bool = True) -> None:
        super().__init__(app)
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next):
        if not self.enabled or not request.url.path.startswith("/api"):
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

        if elapsed_ms > SLOW_REQUEST_MS:
            logger.warning("slow_request", path=request.url.path, method=request.method, response_time_ms=elapsed_ms)
        if response.status_code >= 400:
            logger.warning("error_response", path=request.url.path, method=request.method, status_code=response.status_code)

        fields = {
            "endpoint": request.url.path,
            "method": request.method,
            "user_id": getattr(request.state, "user_id", None),
            "company_id": getattr(request.state, "company_id", None),
            "response_time_ms": elapsed_ms,
            "response_status": response.status_code,
            "memory_usage_mb": round(_PROCESS.memory_info().rss / (1024 * 1024), 2),
            "request_size_bytes": int(request.headers.get("content-length") or 0),
            "response_size_bytes": int(response.headers.get("content-length") or 0),
            "metadata": {
                "userAgent": request.headers.get("user-agent"),
                "ip": client_ip(request),
                "query": logs.filter_sensitive_data(dict(request.query_params)),
                "path": request.url.path,
            },
        }
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, _persist, fields)
        future.add_done_callback(_report_failure)
        return response


def _report_failure(future) -> None:
    if not future.cancelled() and future.exception() is not None:
        logger.warning("performance_log_failed", error=str(future.exception()))
