"""slowapi limiter factory tests."""

from unittest.mock import patch

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from slowapi.errors import RateLimitExceeded

from shared.rate_limit import _storage_uri, create_limiter, rate_limit_key
from shared.responses import error_response


def _limited_app(limiter):
    app = FastAPI()
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def limited(request: Request, exc: RateLimitExceeded):
        return error_response(429, "Too many requests, please try again later.", "RATE_LIMIT_EXCEEDED")

    @app.get("/ping")
    @limiter.limit("2 per minute")
    def ping(request: Request):
        return {"ok": True}

    return app


class TestLimiterStorage:
    """Backend selection."""

    def test_memory_storage_without_redis(self):
        assert _storage_uri("") == "memory://"
        assert _storage_uri(None) == "memory://"

    def test_falls_back_to_memory_when_redis_is_down(self):
        with patch("shared.rate_limit.redis.Redis.from_url") as from_url:
            from_url.return_value.ping.side_effect = ConnectionError("refused")
            assert _storage_uri("redis://redis:6379/0") == "memory://"

    def test_uses_redis_when_it_answers(self):
        with patch("shared.rate_limit.redis.Redis.from_url") as from_url:
            from_url.return_value.ping.return_value = True
            assert _storage_uri("redis://redis:6379/0") == "redis://redis:6379/0"


class TestLimiter:
    """Keying and enforcement."""

    def test_key_uses_forwarded_ip_and_user(self):
        app = FastAPI()
        seen = {}

        @app.get("/key")
        def key(request: Request):
            request.state.user_id = 7
            seen["key"] = rate_limit_key(request)
            return {}

        TestClient(app).get("/key", headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})

        assert seen["key"] == "203.0.113.9:7"

    def test_limit_is_enforced(self):
        client = TestClient(_limited_app(create_limiter(None)))

        statuses = [client.get("/ping").status_code for _ in range(3)]

        assert statuses == [200, 200, 429]

    def test_disabled_limiter_lets_everything_through(self):
        client = TestClient(_limited_app(create_limiter(None, enabled=False)))

        statuses = [client.get("/ping").status_code for _ in range(3)]

        assert statuses == [200, 200, 200]
