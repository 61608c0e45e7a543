from datetime import datetime
from typing import List, Optional

from app.schemas.common import CamelModel


class DocumentOut(CamelModel):
    id: int
    client_id: int
    document_name: str
    document_type: str
    filename: str
    file_path: str
    uploaded_at: Optional[datetime] = None
    created_by: Optional[int] = None
    segment_id: Optional[int] = None


class DocumentListOut(CamelModel):
    data: List[DocumentOut]
