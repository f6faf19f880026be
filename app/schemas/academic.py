"""Level and class schemas"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.user import UserBrief


class LevelCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=1, max_length=20)
    description: str = ""

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class LevelUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    description: Optional[str] = None

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else v


class LevelResponse(BaseModel):
    id: UUID
    name: str
    code: str
    description: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ClassCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    level_id: Optional[UUID] = None
    description: str = ""
    teacher_id: Optional[UUID] = Field(None, description="Admins may assign a teacher; teachers own what they create")
    student_ids: List[UUID] = Field(default_factory=list)


class ClassUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    level_id: Optional[UUID] = None
    description: Optional[str] = None
    teacher_id: Optional[UUID] = None


class ClassResponse(BaseModel):
    id: UUID
    name: str
    level_id: Optional[UUID] = None
    description: str
    teacher_id: Optional[UUID] = None
    is_active: bool
    student_ids: List[UUID] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ClassDetail(ClassResponse):
    teacher: Optional[UserBrief] = None
    students: List[UserBrief] = []


class EnrollStudent(BaseModel):
    student_id: UUID
