import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from jose import jwt
from passlib.context import CryptContext
from shared import load_service_config

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)

_JWT = load_service_config("care").jwt

SECRET_KEY = _JWT.secret
JWT_ALGORITHM = _JWT.algorithm
JWT_ISSUER = _JWT.issuer
JWT_AUDIENCE = _JWT.audience

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"

PASSWORD_SPECIAL_CHARACTERS = '!@#$%^&*(),.?":{}|<>'
_SPECIAL_RE = re.compile("[" + re.escape(PASSWORD_SPECIAL_CHARACTERS) + "]")


def _claims_for(user, token_type: str) -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    lifetime = _JWT.access_expires if token_type == TOKEN_TYPE_ACCESS else _JWT.refresh_expires
    return {
        "id": user.id,
        "username": user.username,
        "role": user.role,
        "company_id": user.company_id,
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + lifetime).timestamp()),
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
    }


def create_access_token(user) -> str:
    return jwt.encode(_claims_for(user, TOKEN_TYPE_ACCESS), SECRET_KEY, algorithm=JWT_ALGORITHM)


def create_refresh_token(user) -> str:
    return jwt.encode(_claims_for(user, TOKEN_TYPE_REFRESH), SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Verify signature, expiry, issuer and audience. Raises ``JWTError``."""
    return jwt.decode(
        token,
        SECRET_KEY,
        algorithms=[JWT_ALGORITHM],
        audience=JWT_AUDIENCE,
        issuer=JWT_ISSUER,
    )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def verify_user_password(plain_password: str, user) -> bool:
    """Check a login attempt. Unknown users still cost one bcrypt verification."""
    if user is None:
        pwd_context.dummy_verify()
        return False
    return verify_password(plain_password, user.password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def password_strength_errors(password: Optional[str]) -> list[str]:
    """Rules shared by the admin CLI and the startup bootstrap."""
    if not password:
        return ["Password is required"]
    errors = []
    if len(password) < 8:
        errors.append("Password must be at least 8 characters long")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    if not _SPECIAL_RE.search(password):
        errors.append("Password must contain at least one special character")
    return errors
