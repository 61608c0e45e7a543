import structlog
from sqlalchemy.orm import Session

from app.core.security import password_strength_errors
from app.crud import users as users_crud
from app.models.user import ROLE_ADMIN, User

logger = structlog.get_logger(__name__)

DEFAULT_ADMIN_USERNAME = "admin"


def ensure_admin_user(db: Session, admin_config) -> bool:
    """Create the ``admin`` account on first start. Returns True when created."""
    if not admin_config.auto_create:
        return False
    if db.query(User.id).filter(User.username == DEFAULT_ADMIN_USERNAME).first() is not None:
        return False

    errors = password_strength_errors(admin_config.initial_password)
    if errors:
        logger.error("admin_bootstrap_skipped", reason="weak_or_missing_password", errors=errors)
        return False

    users_crud.create_user(
        db,
        username=DEFAULT_ADMIN_USERNAME,
        password=admin_config.initial_password,
        name="Administrator",
        role=ROLE_ADMIN,
        force_password_change=True,
    )
    logger.info("admin_bootstrap_created", username=DEFAULT_ADMIN_USERNAME)
    return True
