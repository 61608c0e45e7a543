from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.sql import func
from app.core.database import Base


class MasterData(Base):
    """Catalogue entry: a (category, type, provider) a client service may use."""

    __tablename__ = "master_data"
    __table_args__ = (
        UniqueConstraint(
            "service_category",
            "service_type",
            "service_provider",
            "segment_id",
            name="uq_master_data_combination_segment",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    service_category = Column(String(255), nullable=False)
    service_type = Column(String(255), nullable=False)
    service_provider = Column(String(255), nullable=False, default="")
    active = Column(Boolean, nullable=False, default=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    segment_id = Column(Integer, ForeignKey("segments.id"), nullable=True, index=True)
