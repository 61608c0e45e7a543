from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.sql import func
from app.core.database import Base


class Company(Base):
    __tablename__ = "companies"

    company_id = Column(Integer, primary_key=True, autoincrement=True)
    company_name = Column(String(255), nullable=False, unique=True)
    registered_address = Column(String, nullable=True)
    postal_address = Column(String, nullable=True)
    contact_person_name = Column(String(255), nullable=True)
    contact_person_phone = Column(String(50), nullable=True)
    contact_person_email = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    created_by = Column(Integer, ForeignKey("users.id", use_alter=True, name="fk_companies_created_by"), nullable=True)


class Segment(Base):
    """A tenant-scoping unit inside one company."""

    __tablename__ = "segments"
    __table_args__ = (
        UniqueConstraint("segment_name", "company_id", name="uq_segments_name_company"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    segment_name = Column(String(255), nullable=False)
    company_id = Column(Integer, ForeignKey("companies.company_id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
