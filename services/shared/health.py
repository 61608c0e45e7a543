"""Health check utilities for FastAPI services.

Provides ``/health`` and ``/ready`` endpoints for container and load
balancer monitoring.
"""

from __future__ import annotations

import asyncio
import os
import platform
import time
from datetime import datetime, timezone
from typing import Optional, Union

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
import psutil
import redis
import redis.asyncio as aioredis
from sqlalchemy import text
from sqlalchemy.engine import Engine

_STARTED_AT = time.monotonic()


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def check_database_health(engine: Optional[Engine]) -> bool:
    """Return True when ``SELECT 1`` succeeds on the given engine."""
    if engine is None:
        return False

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        return True
    except Exception:
        return False


def measure_database(engine: Optional[Engine]) -> dict:
    """Probe the database and report connectivity with latency in ms."""
    started = time.perf_counter()
    if engine is None:
        return {"connected": False, "status": "disconnected", "latency": 0, "error": "No engine configured"}
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
    except Exception as exc:
        return {
            "connected": False,
            "status": "disconnected",
            "latency": 0,
            "error": str(exc) or exc.__class__.__name__,
        }
    return {
        "connected": True,
        "status": "connected",
        "latency": round((time.perf_counter() - started) * 1000, 2),
    }


async def check_redis_health(
    redis_client: Optional[Union[redis.Redis, aioredis.Redis, str]] = None
) -> Optional[bool]:
    """Check Redis availability.

    Returns:
        True when Redis answers, False when configured but unreachable,
        None when Redis is not configured.
    """
    if not redis_client:
        return None

    try:
        if isinstance(redis_client, str):
            temp_client = aioredis.from_url(redis_client)
            try:
                await asyncio.wait_for(temp_client.ping(), timeout=1.0)
                return True
            finally:
                await temp_client.aclose()

        if isinstance(redis_client, aioredis.Redis):
            await asyncio.wait_for(redis_client.ping(), timeout=1.0)
            return True

        if isinstance(redis_client, redis.Redis):
            redis_client.ping()
            return True

        return None
    except Exception:
        return False


def create_health_router(
    service_name: str,
    database_engine: Optional[Engine] = None,
    redis_client: Optional[Union[redis.Redis, aioredis.Redis, str]] = None,
    *,
    environment: str = "development",
    version: str = "1.0.0",
) -> APIRouter:
    """Build a router exposing ``/health`` and ``/ready``.

    Args:
        service_name: Service name reported in the payloads.
        database_engine: SQLAlchemy engine to probe.
        redis_client: Redis client or URL (optional).
        environment: Deployment environment reported by ``/health``.
        version: Service version reported by ``/health``.
    """
    router = APIRouter(tags=["Health"])

    @router.get("/health", status_code=status.HTTP_200_OK)
    def health():
        """Liveness plus database connectivity.

        Returns 503 when the database cannot be reached.
        """
        started = time.perf_counter()
        database = measure_database(database_engine)
        memory = psutil.Process(os.getpid()).memory_info()
        payload = {
            "status": "healthy" if database["connected"] else "unhealthy",
            "service": service_name,
            "timestamp": _utcnow_iso(),
            "uptime": round(time.monotonic() - _STARTED_AT, 3),
            "environment": environment,
            "version": version,
            "database": database,
            "memory": {"rss": memory.rss, "vms": memory.vms},
            "pid": os.getpid(),
            "platform": platform.system().lower(),
            "pythonVersion": platform.python_version(),
        }
        payload["responseTime"] = round((time.perf_counter() - started) * 1000, 2)
        return JSONResponse(
            content=payload,
            status_code=status.HTTP_200_OK if database["connected"] else status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    @router.get("/ready", status_code=status.HTTP_200_OK)
    async def ready():
        """Readiness: database is required, Redis only when configured."""
        checks = {}
        all_healthy = True

        db_healthy = check_database_health(database_engine)
        checks["database"] = db_healthy
        if not db_healthy:
            all_healthy = False

        redis_healthy = await check_redis_health(redis_client)
        checks["redis"] = redis_healthy
        if redis_healthy is False:
            all_healthy = False

        response_data = {
            "status": "ready" if all_healthy else "not_ready",
            "service": service_name,
            "timestamp": _utcnow_iso(),
            "checks": checks,
        }

        return JSONResponse(
            content=response_data,
            status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return router
