"""CORS configuration tests."""

import os
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from shared.cors import configure_cors, get_cors_origins


def _preflight(client, origin):
    return client.options(
        "/",
        headers={
            "Origin": origin,
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )


class TestCorsOrigins:
    """Allowed origins per environment."""

    def test_development_allows_all(self):
        with patch.dict(os.environ, {"ENVIRONMENT": "development"}, clear=True):
            assert get_cors_origins() == ["*"]

    def test_development_honours_explicit_origins(self):
        with patch.dict(os.environ, {"ENVIRONMENT": "development", "CORS_ORIGINS": "http://localhost:3000"}):
            assert get_cors_origins() == ["http://localhost:3000"]

    def test_production_restricts_domains(self):
        with patch.dict(os.environ, {
            "ENVIRONMENT": "production",
            "CORS_ORIGINS": " https://app.example.com , https://admin.example.com ",
        }):
            assert get_cors_origins() == ["https://app.example.com", "https://admin.example.com"]

    def test_production_without_origins_raises(self):
        with patch.dict(os.environ, {"ENVIRONMENT": "production"}, clear=True):
            with pytest.raises(ValueError, match="CORS_ORIGINS must be set in production"):
                get_cors_origins()

    def test_node_env_is_still_understood(self):
        with patch.dict(os.environ, {"NODE_ENV": "production"}, clear=True):
            with pytest.raises(ValueError):
                get_cors_origins()


class TestConfigureCors:
    """Middleware behaviour on preflight requests."""

    def test_wildcard_origin_without_credentials(self):
        app = FastAPI()
        with patch.dict(os.environ, {"ENVIRONMENT": "development"}, clear=True):
            configure_cors(app)

        response = _preflight(TestClient(app), "http://localhost:3000")

        assert response.status_code == 200
        assert response.headers.get("Access-Control-Allow-Origin") == "*"
        assert response.headers.get("Access-Control-Allow-Credentials") != "true"

    def test_production_restricts_origins(self):
        app = FastAPI()
        with patch.dict(os.environ, {
            "ENVIRONMENT": "production",
            "CORS_ORIGINS": "https://app.example.com",
        }):
            configure_cors(app)
        client = TestClient(app)

        allowed = _preflight(client, "https://app.example.com")
        denied = _preflight(client, "https://evil.example.org")

        assert allowed.headers.get("Access-Control-Allow-Origin") == "https://app.example.com"
        assert allowed.headers.get("Access-Control-Allow-Credentials") == "true"
        assert denied.headers.get("Access-Control-Allow-Origin") != "https://evil.example.org"

    def test_download_headers_are_exposed(self):
        app = FastAPI()

        @app.get("/file")
        def file():
            return {"ok": True}

        with patch.dict(os.environ, {"ENVIRONMENT": "development"}, clear=True):
            configure_cors(app)

        response = TestClient(app).get("/file", headers={"Origin": "http://localhost:3000"})

        assert "Content-Disposition" in response.headers.get("Access-Control-Expose-Headers", "")

    def test_custom_max_age(self):
        app = FastAPI()
        with patch.dict(os.environ, {"ENVIRONMENT": "development", "CORS_MAX_AGE": "3600"}):
            configure_cors(app)

        response = _preflight(TestClient(app), "http://localhost:3000")

        assert response.headers.get("Access-Control-Max-Age") == "3600"
