from typing import Optional

from app.schemas.common import CamelModel, RequestModel
from app.schemas.user_schema import UserOut


class LoginRequest(RequestModel):
    username: Optional[str] = None
    password: Optional[str] = None


class LoginResponse(CamelModel):
    success: bool = True
    access_token: str
    refresh_token: str
    user: UserOut


class RefreshRequest(RequestModel):
    refresh_token: Optional[str] = None


class RefreshResponse(CamelModel):
    success: bool = True
    access_token: str


class AuthStatusResponse(CamelModel):
    authenticated: bool = True
    user: UserOut


class ChangePasswordRequest(CamelModel):
    # no trimming: whitespace is part of a password
    current_password: Optional[str] = None
    new_password: Optional[str] = None
