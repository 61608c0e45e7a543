import asyncio
import os
from contextlib import asynccontextmanager
from html import escape

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from fastapi.responses import HTMLResponse
from slowapi.middleware import SlowAPIMiddleware
from shared import (
    RequestContextLogMiddleware,
    cancel_task,
    configure_cors,
    configure_logging,
    create_health_router,
    ensure_schema,
    load_service_config,
    run_periodically,
)
from shared.config import env_flag
from shared.security import (
    InputSanitizationMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)

from app.core.azure_identity import REFRESH_INTERVAL_SECONDS
from app.core.database import Base, SessionLocal, engine, token_provider
from app.core.error_handlers import install_global_error_hooks, register_exception_handlers
from app.core.rate_limit import limiter
from app.models import client_service, company, document, logs, master_data, person, user  # noqa: F401
from app.routers import (
    auth,
    case_notes,
    client_services,
    companies,
    documents,
    master_data as master_data_router,
    person_info,
    segments,
    users,
)
from app.services.admin_bootstrap import ensure_admin_user
from app.services.file_storage import create_file_storage
from app.services.performance import PerformanceMiddleware

logger = configure_logging("care")

tags_metadata = [
    {"name": "Auth", "description": "Login, token refresh, logout and password changes."},
    {"name": "Users", "description": "User accounts (admin only)."},
    {"name": "Companies", "description": "Companies (admin only)."},
    {"name": "Segments", "description": "Segments: the tenant scope inside a company."},
    {"name": "Person info", "description": "Client records."},
    {"name": "Master data", "description": "Catalogue of service category, type and provider combinations."},
    {"name": "Client services", "description": "Services assigned to clients."},
    {"name": "Service case notes", "description": "Case notes on client services, with linked documents."},
    {"name": "Documents", "description": "Client document upload and download."},
]

_CONFIG = load_service_config("care")
_ROOT_PATH = os.getenv("APP_ROOT_PATH", "")


def _bootstrap_admin() -> None:
    with SessionLocal() as db:
        ensure_admin_user(db, _CONFIG.admin)


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    logger.info("care_service_starting", environment=_CONFIG.environment)
    if env_flag("ERROR_HOOKS_ENABLED", True):
        install_global_error_hooks(asyncio.get_running_loop())

    await ensure_schema(service_name="care", metadata=Base.metadata, engine=engine)
    await asyncio.to_thread(_bootstrap_admin)
    app.state.file_storage = create_file_storage(_CONFIG.storage)

    token_task = None
    if token_provider is not None:
        token_task = asyncio.create_task(
            run_periodically(
                token_provider.refresh,
                interval_seconds=REFRESH_INTERVAL_SECONDS,
                name="azure_token_refresh",
            )
        )

    yield

    await cancel_task(token_task)
    if token_provider is not None:
        token_provider.close()
    logger.info("care_service_stopped")


app = FastAPI(
    title="Care Data Manager API",
    version="1.0.0",
    description="Multi-tenant case management: clients, services, case notes and documents.",
    openapi_tags=tags_metadata,
    root_path=_ROOT_PATH,
    lifespan=app_lifespan,
    docs_url=None,
    redoc_url="/redoc",
)

app.state.config = _CONFIG
app.state.limiter = limiter
register_exception_handlers(app)

# Starlette runs the last added middleware first.
app.add_middleware(PerformanceMiddleware, enabled=_CONFIG.security.performance_logging_enabled)
app.add_middleware(InputSanitizationMiddleware)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(RequestSizeLimitMiddleware, max_bytes=_CONFIG.security.max_request_bytes)
configure_cors(app)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestContextLogMiddleware)


def custom_openapi_schema():
    if app.openapi_schema:
        return app.openapi_schema
    schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )
    schema["openapi"] = "3.0.3"
    app.openapi_schema = schema
    return app.openapi_schema


app.openapi = custom_openapi_schema


@app.get("/docs", include_in_schema=False)
async def custom_swagger_ui_html():
    return HTMLResponse(f"""
    <!DOCTYPE html>
    <html>
    <head>
        <link type="text/css" rel="stylesheet" href="https://cdn.jsdelivr.net/npm/swagger-ui-dist@5/swagger-ui.css">
        <title>{escape(app.title)} - Swagger UI</title>
    </head>
    <body>
        <div id="swagger-ui"></div>
        <script src="https://cdn.jsdelivr.net/npm/swagger-ui-dist@5/swagger-ui-bundle.js"></script>
        <script>
        const ui = SwaggerUIBundle({{
            url: window.location.pathname.replace(/\\/docs$/, '') + '/openapi.json',
            dom_id: '#swagger-ui',
            presets: [
                SwaggerUIBundle.presets.apis,
                SwaggerUIBundle.SwaggerUIStandalonePreset
            ],
            layout: "BaseLayout",
            deepLinking: true
        }})
        </script>
    </body>
    </html>
    """)


health_router = create_health_router(
    service_name="care",
    database_engine=engine,
    redis_client=_CONFIG.redis.url or None,
    environment=_CONFIG.environment,
    version=app.version,
)
for route in health_router.routes:
    limiter.exempt(route.endpoint)
app.include_router(health_router, prefix="/api")

for router in (
    auth.router,
    users.router,
    companies.router,
    segments.router,
    segments.user_router,
    person_info.router,
    master_data_router.router,
    client_services.router,
    case_notes.router,
    documents.router,
):
    app.include_router(router)


@app.get("/")
def root():
    return {
        "service": "care",
        "status": "ok",
        "docs_url": "/docs",
    }
