"""Administration commands for the care service."""

import click

from app.core.database import Base, SessionLocal, engine
from app.core.security import PASSWORD_SPECIAL_CHARACTERS, password_strength_errors
from app.crud import users as users_crud
from app.models import client_service, company, document, logs, master_data, person  # noqa: F401
from app.models.user import ROLE_ADMIN


def _validate_username(ctx, param, value: str) -> str:
    value = (value or "").strip()
    if len(value) < 3:
        raise click.BadParameter("Username must be at least 3 characters long")
    return value


def _validate_password(ctx, param, value: str) -> str:
    errors = password_strength_errors(value)
    if errors:
        raise click.BadParameter("; ".join(errors))
    return value


@click.group()
def cli():
    """Care Data Manager CLI tools."""


@cli.command("create-admin")
@click.option("--username", prompt="Username", callback=_validate_username, help="Login name (3+ characters)")
@click.option("--name", prompt="Full name", default="Administrator", show_default=True, help="Display name")
@click.option(
    "--password",
    prompt="Password",
    hide_input=True,
    confirmation_prompt=True,
    callback=_validate_password,
    help=f"8+ characters with upper, lower, digit and one of {PASSWORD_SPECIAL_CHARACTERS}",
)
def create_admin(username: str, name: str, password: str):
    """Create an administrator account.

    Example:
        care-admin create-admin --username alice --name "Alice Admin"
    """
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        if users_crud.get_user_by_username(db, username) is not None:
            raise click.ClickException(f"User '{username}' already exists")
        user = users_crud.create_user(
            db,
            username=username,
            password=password,
            name=name,
            role=ROLE_ADMIN,
        )
    click.echo(f"✓ Created admin user: {username} (id {user.id})")


if __name__ == "__main__":
    cli()
