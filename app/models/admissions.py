"""Admissions: prospective students before they become users"""

from sqlalchemy import Column, String, Text, ForeignKey, DateTime
from sqlalchemy.dialects.postgresql import UUID, ARRAY
from sqlalchemy.orm import relationship

from app.models.base import BaseModel, pg_enum
from app.models.enums import EnglishLevel, Gender, LeadSource, LeadStatus


class PotentialStudent(BaseModel):
    """
    A lead on the waiting list. Converting it creates a student ``User``
    (with a student code) and marks the lead enrolled.
    """
    __tablename__ = "potential_students"

    # Basic information
    name = Column(String(255), nullable=False)
    english_name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(50), nullable=True)
    gender = Column(pg_enum(Gender, "gender"), nullable=True)
    dob = Column(String(20), nullable=True)

    # Parent contact
    parent_name = Column(String(255), nullable=True)
    parent_phone = Column(String(50), nullable=True)
    parent_email = Column(String(255), nullable=True)

    # Academic background
    current_school = Column(String(255), nullable=True)
    current_grade = Column(String(50), nullable=True)
    english_level = Column(pg_enum(EnglishLevel, "english_level"), nullable=False, default=EnglishLevel.BEGINNER)

    # Application
    source = Column(pg_enum(LeadSource, "lead_source"), nullable=False, default=LeadSource.OTHER, index=True)
    referral_by = Column(String(255), nullable=True)
    interested_programs = Column(ARRAY(String), nullable=False, default=list)

    # Processing
    status = Column(pg_enum(LeadStatus, "lead_status"), nullable=False, default=LeadStatus.PENDING, index=True)
    assigned_to = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    notes = Column(Text, nullable=True)
    contacted_at = Column(DateTime, nullable=True)
    interviewed_at = Column(DateTime, nullable=True)
    enrolled_at = Column(DateTime, nullable=True)
    converted_user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    assignee = relationship("User", foreign_keys=[assigned_to])

    def __repr__(self) -> str:
        return f"<PotentialStudent {self.email} ({self.status})>"
