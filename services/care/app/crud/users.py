from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, require_positive_id
from app.core.security import get_password_hash
from app.crud.base import db_operation, save
from app.models.user import User


def get_user(db: Session, user_id: int) -> Optional[User]:
    require_positive_id(user_id, "User ID")
    return db.get(User, user_id)


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def list_users(db: Session, company_id: Optional[int] = None):
    query = db.query(User)
    if company_id is not None:
        query = query.filter(User.company_id == company_id)
    return query.order_by(User.id.asc()).all()


@db_operation("create_user")
def create_user(
    db: Session,
    *,
    username: str,
    password: str,
    name: Optional[str] = None,
    role: str = "user",
    company_id: Optional[int] = None,
    force_password_change: bool = False,
) -> User:
    if get_user_by_username(db, username) is not None:
        raise ConflictError("Username already exists", code="USERNAME_EXISTS")
    user = User(
        username=username,
        password=get_password_hash(password),
        name=name,
        role=role,
        company_id=company_id,
        force_password_change=force_password_change,
    )
    return save(db, user)


@db_operation("update_user")
def update_user(db: Session, user: User, changes: dict) -> User:
    changes = dict(changes)
    if "username" in changes and changes["username"] != user.username:
        if get_user_by_username(db, changes["username"]) is not None:
            raise ConflictError("Username already exists", code="USERNAME_EXISTS")
    password = changes.pop("password", None)
    if password:
        user.password = get_password_hash(password)
        user.password_changed_at = datetime.now(timezone.utc)
    for field, value in changes.items():
        setattr(user, field, value)
    return save(db, user)


@db_operation("update_user_password")
def update_user_password(db: Session, user: User, new_password: str) -> User:
    user.password = get_password_hash(new_password)
    user.password_changed_at = datetime.now(timezone.utc)
    user.force_password_change = False
    return save(db, user)


@db_operation(
    "delete_user",
    foreign_key_error=ConflictError(
        "Cannot delete user: user is still referenced by other records",
        code="USER_IN_USE",
    ),
)
def delete_user(db: Session, user: User) -> None:
    db.delete(user)
    db.commit()
