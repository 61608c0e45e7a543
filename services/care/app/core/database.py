from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from shared import load_service_config

from app.core.azure_identity import AzureTokenProvider

_config = load_service_config("care")

_engine_options = {"future": True, "pool_pre_ping": True}
if not _config.database.url.startswith("sqlite"):
    _engine_options.update(pool_size=_config.database.pool_size, max_overflow=0, pool_timeout=30)

engine = create_engine(_config.database.url, **_engine_options)

# Managed identity: the Azure AD token is the password, fetched per connection.
token_provider = AzureTokenProvider() if _config.database.azure else None

if token_provider is not None:

    @event.listens_for(engine, "do_connect")
    def _inject_azure_token(dialect, conn_rec, cargs, cparams):
        cparams["password"] = token_provider.get_token()


SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
