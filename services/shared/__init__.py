"""Shared utilities used across microservices."""

from .config import ServiceConfig, get_environment, is_production, load_service_config
from .cors import configure_cors
from .health import create_health_router
from .logging import RequestContextLogMiddleware, client_ip, configure_logging
from .rate_limit import create_limiter
from .responses import error_payload, error_response
from .startup import cancel_task, ensure_schema, run_periodically

__all__ = [
    "ServiceConfig",
    "get_environment",
    "is_production",
    "load_service_config",
    "configure_cors",
    "create_health_router",
    "RequestContextLogMiddleware",
    "client_ip",
    "configure_logging",
    "create_limiter",
    "error_payload",
    "error_response",
    "cancel_task",
    "ensure_schema",
    "run_periodically",
]
