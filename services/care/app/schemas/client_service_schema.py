from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from app.schemas.common import CamelModel, RequestModel

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

ServiceStatus = Literal["Planned", "In Progress", "Closed"]


class ClientServiceCreate(RequestModel):
    client_id: int = Field(..., gt=0)
    service_category: str = Field(..., max_length=255)
    service_type: str = Field(..., max_length=255)
    service_provider: Optional[str] = Field(default="", max_length=255)
    service_start_date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$", examples=["2024-07-01"])
    service_days: List[str] = Field(..., min_length=1, examples=[["Monday", "Thursday"]])
    service_hours: int = Field(..., ge=1, le=24)
    status: ServiceStatus = "Planned"
    segment_id: Optional[int] = Field(default=None, gt=0)

    @field_validator("service_provider")
    @classmethod
    def _provider_default(cls, value: Optional[str]) -> str:
        return value or ""

    @field_validator("service_days")
    @classmethod
    def _known_weekdays(cls, value: List[str]) -> List[str]:
        unknown = [day for day in value if day not in WEEKDAYS]
        if unknown:
            raise ValueError(f"Unknown service day(s): {', '.join(unknown)}")
        return list(dict.fromkeys(value))


class ClientServiceStatusUpdate(CamelModel):
    status: Optional[str] = None


class ClientServiceOut(CamelModel):
    id: int
    client_id: int
    client_name: Optional[str] = None
    service_category: str
    service_type: str
    service_provider: str
    service_start_date: str
    service_days: List[str]
    service_hours: int
    status: str
    created_at: Optional[datetime] = None
    created_by: Optional[int] = None
    segment_id: Optional[int] = None
