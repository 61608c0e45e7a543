from shared import load_service_config
from shared.rate_limit import API_LIMIT, AUTH_LIMIT, STRICT_LIMIT, UPLOAD_LIMIT, create_limiter

_config = load_service_config("care")

limiter = create_limiter(
    _config.redis.url,
    enabled=_config.security.rate_limit_enabled,
)

__all__ = ["limiter", "API_LIMIT", "AUTH_LIMIT", "STRICT_LIMIT", "UPLOAD_LIMIT"]
