"""Rate limiting built on slowapi."""

from __future__ import annotations

from typing import Optional

import redis
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request
import structlog

logger = structlog.get_logger(__name__)

API_LIMIT = "200 per 15 minutes"
AUTH_LIMIT = "5 per 15 minutes"
UPLOAD_LIMIT = "50 per hour"
STRICT_LIMIT = "50 per 15 minutes"


def rate_limit_key(request: Request) -> str:
    """Key requests by ``ip:user_id`` once authenticated, by IP otherwise."""
    ip = request.headers.get("x-forwarded-for", "").split(",")[0].strip() or get_remote_address(request)
    user_id = getattr(request.state, "user_id", None)
    return f"{ip}:{user_id}" if user_id else ip


def _storage_uri(redis_url: Optional[str]) -> str:
    if not redis_url:
        return "memory://"
    try:
        client = redis.Redis.from_url(redis_url, socket_connect_timeout=1)
        try:
            client.ping()
        finally:
            client.close()
        return redis_url
    except Exception as exc:
        logger.warning("rate_limit_redis_unavailable", error=str(exc))
        return "memory://"


def create_limiter(redis_url: Optional[str] = None, *, enabled: bool = True) -> Limiter:
    """Build the process limiter, backed by Redis when it answers a ping."""
    return Limiter(
        key_func=rate_limit_key,
        storage_uri=_storage_uri(redis_url),
        default_limits=[API_LIMIT],
        enabled=enabled,
    )
