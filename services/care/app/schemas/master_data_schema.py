from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from app.schemas.common import CamelModel, RequestModel


class MasterDataCreate(RequestModel):
    service_category: str = Field(..., max_length=255, examples=["Personal Care"])
    service_type: str = Field(..., max_length=255, examples=["Showering"])
    service_provider: Optional[str] = Field(default="", max_length=255, examples=["Bright Home Services"])
    active: bool = True
    segment_id: Optional[int] = Field(default=None, gt=0)

    @field_validator("service_provider")
    @classmethod
    def _provider_default(cls, value: Optional[str]) -> str:
        return value or ""


class MasterDataUpdate(RequestModel):
    service_category: Optional[str] = Field(default=None, max_length=255)
    service_type: Optional[str] = Field(default=None, max_length=255)
    service_provider: Optional[str] = Field(default=None, max_length=255)
    active: Optional[bool] = None
    segment_id: Optional[int] = Field(default=None, gt=0)


class MasterDataOut(CamelModel):
    id: int
    service_category: str
    service_type: str
    service_provider: str
    active: bool
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    segment_id: Optional[int] = None


class MasterDataVerifyOut(CamelModel):
    success: bool = True
    message: str
    master_data: MasterDataOut
