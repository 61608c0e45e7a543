from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


SERVICE_STATUSES = ("Planned", "In Progress", "Closed")


class ClientService(Base):
    __tablename__ = "client_services"
    __table_args__ = (
        CheckConstraint("service_hours BETWEEN 1 AND 24", name="ck_client_services_hours"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("person_info.id"), nullable=False, index=True)
    service_category = Column(String(255), nullable=False)
    service_type = Column(String(255), nullable=False)
    service_provider = Column(String(255), nullable=False, default="")
    service_start_date = Column(String(10), nullable=False)
    service_days = Column(JSONB().with_variant(JSON, "sqlite"), nullable=False, default=list)
    service_hours = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="Planned")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    segment_id = Column(Integer, ForeignKey("segments.id"), nullable=True, index=True)

    client = relationship("PersonInfo", lazy="joined")

    @property
    def client_name(self):
        return self.client.full_name if self.client is not None else None


class ServiceCaseNote(Base):
    __tablename__ = "service_case_notes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    service_id = Column(Integer, ForeignKey("client_services.id", ondelete="CASCADE"), nullable=False, index=True)
    note_text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    segment_id = Column(Integer, ForeignKey("segments.id"), nullable=True)

    documents = relationship(
        "Document",
        secondary="case_note_documents",
        viewonly=True,
        order_by="Document.id",
    )


class CaseNoteDocument(Base):
    __tablename__ = "case_note_documents"
    __table_args__ = (
        UniqueConstraint("case_note_id", "document_id", name="uq_case_note_documents_pair"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    case_note_id = Column(Integer, ForeignKey("service_case_notes.id", ondelete="CASCADE"), nullable=False, index=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
