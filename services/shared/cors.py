"""CORS (Cross-Origin Resource Sharing) configuration utilities.

Provides environment-based CORS configuration:
- Development: allows all origins (*) unless CORS_ORIGINS is set
- Production: restricts to specific domains from CORS_ORIGINS env var
"""

from __future__ import annotations

import os
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import is_production


def _parse_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def get_cors_origins() -> List[str]:
    """Return the list of allowed CORS origins for the current environment.

    Returns:
        Allowed origins.

    Raises:
        ValueError: In production when CORS_ORIGINS is missing or empty.
    """
    cors_origins = os.getenv("CORS_ORIGINS", "").strip()

    if is_production():
        if not cors_origins:
            raise ValueError(
                "CORS_ORIGINS must be set in production. "
                "Configure allowed domains separated by commas, e.g.: "
                "CORS_ORIGINS=https://app.example.com,https://admin.example.com"
            )

        origins = _parse_origins(cors_origins)
        if not origins:
            raise ValueError(
                "CORS_ORIGINS must contain at least one valid domain in production."
            )
        return origins

    return _parse_origins(cors_origins) or ["*"]


def configure_cors(app: FastAPI) -> None:
    """Install CORSMiddleware on the app according to the environment.

    Raises:
        ValueError: In production when CORS_ORIGINS is not configured.
    """
    origins = get_cors_origins()

    allow_credentials = os.getenv("CORS_ALLOW_CREDENTIALS", "true").lower() == "true"
    max_age = int(os.getenv("CORS_MAX_AGE", "86400"))

    # Browsers refuse credentials together with a wildcard origin.
    if origins == ["*"] and allow_credentials:
        allow_credentials = False

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_credentials,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=[
            "Origin",
            "X-Requested-With",
            "Content-Type",
            "Accept",
            "Authorization",
            "X-API-Key",
            "X-Request-ID",
        ],
        expose_headers=["Content-Disposition", "X-Request-ID"],
        max_age=max_age,
    )
