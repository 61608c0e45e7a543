from datetime import datetime
from typing import List, Optional

from pydantic import Field

from app.schemas.common import CamelModel, RequestModel
from app.schemas.document_schema import DocumentOut


class CaseNoteCreate(RequestModel):
    service_id: int = Field(..., gt=0)
    note_text: str = Field(..., max_length=20000)
    document_ids: List[int] = Field(default_factory=list)


class CaseNoteUpdate(RequestModel):
    note_text: str = Field(..., max_length=20000)
    document_ids: Optional[List[int]] = None


class CaseNoteCountsRequest(CamelModel):
    service_ids: List[int] = Field(default_factory=list, max_length=500)


class CaseNoteOut(CamelModel):
    id: int
    service_id: int
    note_text: str
    created_at: Optional[datetime] = None
    created_by: Optional[int] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[int] = None
    segment_id: Optional[int] = None
    documents: List[DocumentOut] = Field(default_factory=list)
