from click.testing import CliRunner

from app.cli import cli
from app.core.security import verify_password
from app.models.user import User


def test_create_admin_with_options(db):
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["create-admin", "--username", "ops.admin", "--name", "Ops Admin", "--password", "Str0ng!Passw0rd"],
    )

    assert result.exit_code == 0, result.output
    assert "Created admin user: ops.admin" in result.output
    user = db.query(User).filter(User.username == "ops.admin").one()
    assert user.role == "admin"
    assert user.name == "Ops Admin"
    assert verify_password("Str0ng!Passw0rd", user.password)


def test_create_admin_prompts_for_missing_values(db):
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["create-admin"],
        input="prompted.admin\n\nStr0ng!Passw0rd\nStr0ng!Passw0rd\n",
    )

    assert result.exit_code == 0, result.output
    user = db.query(User).filter(User.username == "prompted.admin").one()
    assert user.name == "Administrator"


def test_create_admin_rejects_weak_password(db):
    runner = CliRunner()

    result = runner.invoke(cli, ["create-admin", "--username", "ops.admin", "--password", "weakpass", "--name", "Ops"])

    assert result.exit_code == 2
    assert "uppercase" in result.output
    assert db.query(User).count() == 0


def test_create_admin_refuses_existing_username(db):
    runner = CliRunner()
    args = ["create-admin", "--username", "ops.admin", "--name", "Ops", "--password", "Str0ng!Passw0rd"]
    runner.invoke(cli, args)

    result = runner.invoke(cli, args)

    assert result.exit_code == 1
    assert "already exists" in result.output
    assert db.query(User).count() == 1
