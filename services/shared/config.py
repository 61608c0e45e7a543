"""Configuration helpers reused by microservices."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
import os
import re
import warnings
from typing import Dict, Optional
from urllib.parse import quote_plus

# Development-only defaults.
# ⚠️ These values carry insecure credentials and must never reach production;
# every one of them has an environment variable that overrides it.
_DEFAULT_DATABASE_URLS: Dict[str, str] = {
    "care": "postgresql://user:password@db_care:5432/caredb",
}

_DEFAULT_HOST = "0.0.0.0"
_DEFAULT_PORT = 8000
_DEFAULT_JWT_SECRET = "dev-secret-change-me"
_DEFAULT_JWT_ISSUER = "care-data-manager"
_DEFAULT_JWT_AUDIENCE = "care-data-manager-app"
_DEFAULT_DOCUMENTS_ROOT = "./uploads"
_DEFAULT_BLOB_CONTAINER = "documentsroot"

_MAX_REQUEST_BYTES = 10 * 1024 * 1024
_MAX_UPLOAD_BYTES = 5 * 1024 * 1024

_INSECURE_PASSWORDS = {"password", "123456", "admin", "root", "test", ""}
_INSECURE_SECRET_KEYS = {
    "secret",
    "changeme",
    "default",
    _DEFAULT_JWT_SECRET,
}

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$", re.IGNORECASE)
_DURATION_UNITS = {"": "seconds", "s": "seconds", "m": "minutes", "h": "hours", "d": "days"}
_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AzurePostgresConfig:
    host: str
    port: int
    database: str
    user: str
    ssl_mode: str


@dataclass(frozen=True)
class DatabaseConfig:
    url: str
    azure: Optional[AzurePostgresConfig] = None
    pool_size: int = 5


@dataclass(frozen=True)
class RedisConfig:
    url: str


@dataclass(frozen=True)
class JWTConfig:
    secret: str
    algorithm: str
    access_expires: timedelta
    refresh_expires: timedelta
    issuer: str
    audience: str


@dataclass(frozen=True)
class StorageConfig:
    backend: str
    documents_root: str
    azure_account_name: Optional[str]
    azure_connection_string: Optional[str]
    azure_container: str


@dataclass(frozen=True)
class SecurityConfig:
    rate_limit_enabled: bool
    performance_logging_enabled: bool
    max_request_bytes: int
    max_upload_bytes: int


@dataclass(frozen=True)
class AdminBootstrapConfig:
    auto_create: bool
    initial_password: Optional[str]


@dataclass(frozen=True)
class ServiceConfig:
    name: str
    environment: str
    host: str
    port: int
    database: DatabaseConfig
    redis: RedisConfig
    jwt: JWTConfig
    storage: StorageConfig
    security: SecurityConfig
    admin: AdminBootstrapConfig

    @property
    def is_production(self) -> bool:
        return self.environment in ("production", "prod")


def get_environment() -> str:
    """Return the normalised deployment environment name.

    ``ENVIRONMENT`` wins, then ``ENV`` and finally ``NODE_ENV`` (kept for
    deployments that still export the Node-era variable).
    """
    return (
        os.getenv("ENVIRONMENT")
        or os.getenv("ENV")
        or os.getenv("NODE_ENV")
        or "development"
    ).strip().lower()


def is_production() -> bool:
    return get_environment() in ("production", "prod")


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


def parse_duration(value: str) -> timedelta:
    """Parse ``30m``, ``24h``, ``7d`` or a bare number of seconds."""
    match = _DURATION_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit.lower()]: int(amount)})


def _lookup_database_url(service_name: str) -> str:
    """Lookup database URL from environment variables with fallback to defaults.

    ⚠️ Defaults carry insecure credentials and are meant for local development
    only. Production deployments must set the environment variables.
    """
    service_env = f"{service_name.upper()}_DATABASE_URL"
    db_url = (
        os.getenv(service_env)
        or os.getenv("DATABASE_URL")
        or _DEFAULT_DATABASE_URLS.get(service_name, "")
    )

    if db_url and db_url in _DEFAULT_DATABASE_URLS.values():
        if is_production():
            raise ValueError(
                "Default database URLs cannot be used in production. "
                f"Set {service_env} or DATABASE_URL."
            )
        warnings.warn(
            f"Using the default database URL for {service_name}. "
            f"Set {service_env} or DATABASE_URL in production.",
            UserWarning,
            stacklevel=2,
        )

    return db_url


def _lookup_azure_postgres() -> Optional[AzurePostgresConfig]:
    host = os.getenv("AZURE_POSTGRESQL_HOST", "").strip()
    if not host:
        return None

    database = os.getenv("AZURE_POSTGRESQL_DATABASE", "").strip()
    user = os.getenv("AZURE_POSTGRESQL_USER", "").strip()
    if not database or not user:
        raise ValueError(
            "AZURE_POSTGRESQL_DATABASE and AZURE_POSTGRESQL_USER are required "
            "when AZURE_POSTGRESQL_HOST is set."
        )

    ssl_flag = os.getenv("AZURE_POSTGRESQL_SSL", "true").strip().lower()
    return AzurePostgresConfig(
        host=host,
        port=int(os.getenv("AZURE_POSTGRESQL_PORT", "5432")),
        database=database,
        user=user,
        ssl_mode="require" if ssl_flag in _TRUTHY else "prefer",
    )


def build_azure_database_url(azure: AzurePostgresConfig) -> str:
    """Password-less URL; the token is injected at connect time."""
    return (
        f"postgresql://{quote_plus(azure.user)}@{azure.host}:{azure.port}/"
        f"{azure.database}?sslmode={azure.ssl_mode}"
    )


def _validate_no_insecure_password(password: Optional[str], context: str = "") -> None:
    """Reject well-known weak passwords in production, warn otherwise."""
    if password and password.lower() in _INSECURE_PASSWORDS:
        if is_production():
            raise ValueError(
                f"Insecure password detected in {context}. "
                "Use a strong password in production."
            )
        warnings.warn(
            f"Insecure password detected in {context}. "
            "Use a strong password in production.",
            UserWarning,
            stacklevel=3,
        )


def _validate_secret_key(secret_key: Optional[str]) -> None:
    """Validate that the JWT secret is not a known default."""
    if not secret_key:
        return

    if secret_key in _INSECURE_SECRET_KEYS:
        if is_production():
            raise ValueError(
                "JWT_SECRET cannot be an insecure default in production. "
                "Generate one with: openssl rand -hex 64"
            )
        warnings.warn(
            "JWT_SECRET looks like an insecure default. "
            "In production generate one with: openssl rand -hex 64",
            UserWarning,
            stacklevel=3,
        )

    if len(secret_key) < 32:
        warnings.warn(
            f"JWT_SECRET is too short ({len(secret_key)} characters). "
            "At least 32 characters are recommended.",
            UserWarning,
            stacklevel=3,
        )


def _load_jwt_config() -> JWTConfig:
    secret = os.getenv("JWT_SECRET") or os.getenv("SECRET_KEY") or _DEFAULT_JWT_SECRET
    _validate_secret_key(secret)
    return JWTConfig(
        secret=secret,
        algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        access_expires=parse_duration(os.getenv("JWT_EXPIRES_IN", "24h")),
        refresh_expires=parse_duration(os.getenv("JWT_REFRESH_EXPIRES_IN", "7d")),
        issuer=os.getenv("JWT_ISSUER", _DEFAULT_JWT_ISSUER),
        audience=os.getenv("JWT_AUDIENCE", _DEFAULT_JWT_AUDIENCE),
    )


def _load_storage_config(environment: str) -> StorageConfig:
    backend = os.getenv("STORAGE_BACKEND", "").strip().lower()
    if not backend:
        backend = "local" if environment == "development" else "azure"
    if backend not in ("local", "azure"):
        raise ValueError(f"Unknown STORAGE_BACKEND '{backend}'. Use 'local' or 'azure'.")

    return StorageConfig(
        backend=backend,
        documents_root=os.getenv("DOCUMENTS_ROOT_PATH", _DEFAULT_DOCUMENTS_ROOT),
        azure_account_name=os.getenv("AZURE_STORAGE_ACCOUNT_NAME") or None,
        azure_connection_string=os.getenv("AZURE_STORAGE_CONNECTION_STRING") or None,
        azure_container=os.getenv("AZURE_STORAGE_CONTAINER_NAME", _DEFAULT_BLOB_CONTAINER),
    )


def load_service_config(service_name: str) -> ServiceConfig:
    """Aggregate configuration for a given service using env vars with sane fallbacks.

    ⚠️ Defaults are for development only. Production must define every
    variable explicitly.

    Args:
        service_name: Service name, used as the prefix of ``<NAME>_DATABASE_URL``.

    Returns:
        ServiceConfig: The service configuration.

    Raises:
        ValueError: If no database is configured or insecure values are
            detected in production.
    """

    normalized_name = service_name.lower()
    environment = get_environment()

    azure = _lookup_azure_postgres()
    if azure is not None:
        db_url = build_azure_database_url(azure)
        pool_size = 20
    else:
        db_url = _lookup_database_url(normalized_name)
        pool_size = int(os.getenv("DATABASE_POOL_SIZE", "5"))
    if not db_url:
        raise ValueError(
            f"DATABASE_URL not configured for service '{normalized_name}'. "
            f"Set DATABASE_URL or {normalized_name.upper()}_DATABASE_URL."
        )

    if azure is None and ":" in db_url and "@" in db_url:
        try:
            auth_part = db_url.split("@")[0].split("://")[1]
            if ":" in auth_part:
                password = auth_part.split(":")[1]
                _validate_no_insecure_password(password, f"DATABASE_URL for {service_name}")
        except IndexError:
            pass  # Unusual URL shape, nothing to validate

    initial_password = os.getenv("INITIAL_ADMIN_PASSWORD") or None

    return ServiceConfig(
        name=normalized_name,
        environment=environment,
        host=os.getenv("APP_HOST", _DEFAULT_HOST),
        port=int(os.getenv("APP_PORT", str(_DEFAULT_PORT))),
        database=DatabaseConfig(url=db_url, azure=azure, pool_size=pool_size),
        redis=RedisConfig(url=os.getenv("REDIS_URL", "").strip()),
        jwt=_load_jwt_config(),
        storage=_load_storage_config(environment),
        security=SecurityConfig(
            rate_limit_enabled=env_flag("RATE_LIMIT_ENABLED", True),
            performance_logging_enabled=env_flag("PERFORMANCE_LOGGING_ENABLED", True),
            max_request_bytes=int(os.getenv("MAX_REQUEST_BYTES", str(_MAX_REQUEST_BYTES))),
            max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", str(_MAX_UPLOAD_BYTES))),
        ),
        admin=AdminBootstrapConfig(
            auto_create=env_flag("AUTO_CREATE_ADMIN", False),
            initial_password=initial_password,
        ),
    )
