"""Potential student (lead) schemas"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.models.enums import EnglishLevel, Gender, LeadSource, LeadStatus


class PotentialStudentBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    english_name: Optional[str] = None
    email: EmailStr
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    dob: Optional[str] = None
    parent_name: Optional[str] = None
    parent_phone: Optional[str] = None
    parent_email: Optional[EmailStr] = None
    current_school: Optional[str] = None
    current_grade: Optional[str] = None
    english_level: EnglishLevel = EnglishLevel.BEGINNER
    source: LeadSource = LeadSource.OTHER
    referral_by: Optional[str] = None
    interested_programs: List[str] = Field(default_factory=list)
    notes: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class PotentialStudentCreate(PotentialStudentBase):
    pass


class PotentialStudentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    english_name: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    dob: Optional[str] = None
    parent_name: Optional[str] = None
    parent_phone: Optional[str] = None
    parent_email: Optional[EmailStr] = None
    current_school: Optional[str] = None
    current_grade: Optional[str] = None
    english_level: Optional[EnglishLevel] = None
    source: Optional[LeadSource] = None
    referral_by: Optional[str] = None
    interested_programs: Optional[List[str]] = None
    notes: Optional[str] = None


class StatusUpdate(BaseModel):
    status: LeadStatus
    notes: Optional[str] = None


class AssignLead(BaseModel):
    assigned_to: UUID


class ConvertLead(BaseModel):
    """Account details for the student created from a lead"""
    username: Optional[str] = Field(None, min_length=3, max_length=100)
    password: Optional[str] = Field(None, min_length=8)
    class_id: Optional[UUID] = None


class PotentialStudentResponse(PotentialStudentBase):
    id: UUID
    email: str
    parent_email: Optional[str] = None
    status: LeadStatus
    assigned_to: Optional[UUID] = None
    contacted_at: Optional[datetime] = None
    interviewed_at: Optional[datetime] = None
    enrolled_at: Optional[datetime] = None
    converted_user_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LeadStats(BaseModel):
    total: int
    this_month: int
    by_status: Dict[str, int]
