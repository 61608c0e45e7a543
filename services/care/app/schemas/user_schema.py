from typing import Optional

from pydantic import Field

from app.schemas.common import CamelModel, RequestModel


class UserOut(CamelModel):
    id: int
    name: Optional[str] = None
    username: str
    role: str
    company_id: Optional[int] = None


class UserCreate(RequestModel):
    username: str = Field(..., min_length=3, max_length=255, examples=["jane.doe"])
    password: str = Field(..., min_length=6, max_length=128)
    name: Optional[str] = Field(default=None, max_length=255, examples=["Jane Doe"])
    role: str = Field(default="user", pattern="^(admin|user)$")
    company_id: Optional[int] = Field(default=None, gt=0)


class UserUpdate(RequestModel):
    username: Optional[str] = Field(default=None, min_length=3, max_length=255)
    password: Optional[str] = Field(default=None, min_length=6, max_length=128)
    name: Optional[str] = Field(default=None, max_length=255)
    role: Optional[str] = Field(default=None, pattern="^(admin|user)$")
    company_id: Optional[int] = Field(default=None, gt=0)
