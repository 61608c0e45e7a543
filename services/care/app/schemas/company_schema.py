from datetime import datetime
from typing import Optional

from pydantic import Field

from app.schemas.common import CamelModel, RequestModel


class CompanyBase(RequestModel):
    registered_address: Optional[str] = None
    postal_address: Optional[str] = None
    contact_person_name: Optional[str] = Field(default=None, max_length=255)
    contact_person_phone: Optional[str] = Field(default=None, max_length=50)
    contact_person_email: Optional[str] = Field(default=None, max_length=255)


class CompanyCreate(CompanyBase):
    company_name: str = Field(..., max_length=255, examples=["Sunrise Care"])


class CompanyUpdate(CompanyBase):
    company_name: Optional[str] = Field(default=None, max_length=255)


class CompanyOut(CamelModel):
    company_id: int
    company_name: str
    registered_address: Optional[str] = None
    postal_address: Optional[str] = None
    contact_person_name: Optional[str] = None
    contact_person_phone: Optional[str] = None
    contact_person_email: Optional[str] = None
    created_at: Optional[datetime] = None
    created_by: Optional[int] = None


class SegmentCreate(RequestModel):
    segment_name: str = Field(..., max_length=255, examples=["North Region"])
    company_id: int = Field(..., gt=0)


class SegmentUpdate(RequestModel):
    segment_name: str = Field(..., max_length=255)


class SegmentOut(CamelModel):
    id: int
    segment_name: str
    company_id: int
    created_at: Optional[datetime] = None
    created_by: Optional[int] = None
