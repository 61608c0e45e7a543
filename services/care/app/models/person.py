from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func
from app.core.database import Base


PERSON_STATUSES = ("New", "Active", "Paused", "Closed")


class PersonInfo(Base):
    """A client record. Never deleted; ``status`` carries its lifecycle."""

    __tablename__ = "person_info"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(20), nullable=True)
    first_name = Column(String(255), nullable=False)
    middle_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=False)
    date_of_birth = Column(String(10), nullable=False)
    email = Column(String(255), nullable=True)
    home_phone_country_code = Column(String(10), nullable=True)
    home_phone = Column(String(50), nullable=True)
    mobile_phone_country_code = Column(String(10), nullable=True)
    mobile_phone = Column(String(50), nullable=True)
    address_line1 = Column(String(255), nullable=True)
    address_line2 = Column(String(255), nullable=True)
    address_line3 = Column(String(255), nullable=True)
    post_code = Column(String(20), nullable=True)
    mailing_address_line1 = Column(String(255), nullable=True)
    mailing_address_line2 = Column(String(255), nullable=True)
    mailing_address_line3 = Column(String(255), nullable=True)
    mailing_post_code = Column(String(20), nullable=True)
    use_home_address = Column(Boolean, nullable=False, default=True)
    next_of_kin_name = Column(String(255), nullable=True)
    next_of_kin_relationship = Column(String(100), nullable=True)
    next_of_kin_address = Column(Text, nullable=True)
    next_of_kin_email = Column(String(255), nullable=True)
    next_of_kin_phone_country_code = Column(String(10), nullable=True, default="+61")
    next_of_kin_phone = Column(String(50), nullable=True)
    hcp_level = Column(String(20), nullable=True)
    hcp_start_date = Column(String(10), nullable=True)
    status = Column(String(20), nullable=False, default="New")
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    segment_id = Column(Integer, ForeignKey("segments.id"), nullable=True, index=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
