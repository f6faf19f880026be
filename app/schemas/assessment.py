"""Assignment and submission schemas"""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import Skill


class AssignmentCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    skill: Skill
    level: str = Field(..., min_length=1, max_length=100)
    due_date: date
    class_ids: List[UUID] = Field(..., min_length=1)


class AssignmentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    skill: Optional[Skill] = None
    level: Optional[str] = Field(None, min_length=1, max_length=100)
    due_date: Optional[date] = None
    class_ids: Optional[List[UUID]] = None


class AssignmentResponse(BaseModel):
    id: UUID
    title: str
    description: str
    skill: Skill
    level: str
    due_date: date
    created_by: Optional[UUID] = None
    class_ids: List[UUID] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SubmissionCreate(BaseModel):
    assignment_id: UUID
    content: str = Field(..., min_length=1)


class SubmissionUpdate(BaseModel):
    content: str = Field(..., min_length=1)


class SubmissionGrade(BaseModel):
    score: int = Field(..., ge=0, le=100)
    feedback: Optional[str] = None


class SubmissionResponse(BaseModel):
    id: UUID
    assignment_id: UUID
    student_id: UUID
    content: str
    submitted_at: datetime
    score: Optional[int] = None
    feedback: Optional[str] = None
    graded_by: Optional[UUID] = None
    graded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
