from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field

from app.schemas.common import CamelModel, RequestModel

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"

PersonStatus = Literal["New", "Active", "Paused", "Closed"]


class PersonInfoFields(RequestModel):
    title: Optional[str] = Field(default=None, max_length=20)
    middle_name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[EmailStr] = None
    home_phone_country_code: Optional[str] = Field(default=None, max_length=10)
    home_phone: Optional[str] = Field(default=None, max_length=50)
    mobile_phone_country_code: Optional[str] = Field(default=None, max_length=10)
    mobile_phone: Optional[str] = Field(default=None, max_length=50)
    address_line1: Optional[str] = Field(default=None, max_length=255)
    address_line2: Optional[str] = Field(default=None, max_length=255)
    address_line3: Optional[str] = Field(default=None, max_length=255)
    post_code: Optional[str] = Field(default=None, max_length=20)
    mailing_address_line1: Optional[str] = Field(default=None, max_length=255)
    mailing_address_line2: Optional[str] = Field(default=None, max_length=255)
    mailing_address_line3: Optional[str] = Field(default=None, max_length=255)
    mailing_post_code: Optional[str] = Field(default=None, max_length=20)
    use_home_address: Optional[bool] = None
    next_of_kin_name: Optional[str] = Field(default=None, max_length=255)
    next_of_kin_relationship: Optional[str] = Field(default=None, max_length=100)
    next_of_kin_address: Optional[str] = None
    next_of_kin_email: Optional[EmailStr] = None
    next_of_kin_phone_country_code: Optional[str] = Field(default=None, max_length=10)
    next_of_kin_phone: Optional[str] = Field(default=None, max_length=50)
    hcp_level: Optional[str] = Field(default=None, max_length=20)
    hcp_start_date: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    segment_id: Optional[int] = Field(default=None, gt=0)


class PersonInfoCreate(PersonInfoFields):
    first_name: str = Field(..., max_length=255, examples=["Margaret"])
    last_name: str = Field(..., max_length=255, examples=["Nguyen"])
    date_of_birth: str = Field(..., pattern=DATE_PATTERN, examples=["1948-03-21"])
    status: PersonStatus = "New"


class PersonInfoUpdate(PersonInfoFields):
    first_name: Optional[str] = Field(default=None, max_length=255)
    last_name: Optional[str] = Field(default=None, max_length=255)
    date_of_birth: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    status: Optional[PersonStatus] = None


class PersonInfoOut(CamelModel):
    id: int
    title: Optional[str] = None
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    date_of_birth: str
    email: Optional[str] = None
    home_phone_country_code: Optional[str] = None
    home_phone: Optional[str] = None
    mobile_phone_country_code: Optional[str] = None
    mobile_phone: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    address_line3: Optional[str] = None
    post_code: Optional[str] = None
    mailing_address_line1: Optional[str] = None
    mailing_address_line2: Optional[str] = None
    mailing_address_line3: Optional[str] = None
    mailing_post_code: Optional[str] = None
    use_home_address: bool = True
    next_of_kin_name: Optional[str] = None
    next_of_kin_relationship: Optional[str] = None
    next_of_kin_address: Optional[str] = None
    next_of_kin_email: Optional[str] = None
    next_of_kin_phone_country_code: Optional[str] = None
    next_of_kin_phone: Optional[str] = None
    hcp_level: Optional[str] = None
    hcp_start_date: Optional[str] = None
    status: str
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    segment_id: Optional[int] = None
