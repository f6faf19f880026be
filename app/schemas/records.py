"""Student record and change log schemas"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import ChangeAction, EntityType, RecordAction, RecordCategory


class StudentRecordCreate(BaseModel):
    student_id: UUID
    action: RecordAction
    category: RecordCategory
    details: Dict[str, Any] = Field(default_factory=dict)
    related_class_id: Optional[UUID] = None
    related_assignment_id: Optional[UUID] = None


class StudentRecordUpdate(BaseModel):
    details: Dict[str, Any]


class StudentRecordResponse(BaseModel):
    id: UUID
    student_id: Optional[UUID] = None
    student_name: str
    action: RecordAction
    category: RecordCategory
    details: Dict[str, Any]
    related_class_id: Optional[UUID] = None
    related_assignment_id: Optional[UUID] = None
    performed_by: Optional[UUID] = None
    performed_by_name: str
    timestamp: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class TimelineEntry(BaseModel):
    id: UUID
    action: RecordAction
    category: RecordCategory
    summary: str
    performed_by_name: str
    timestamp: datetime


class RecordStats(BaseModel):
    total: int
    by_action: Dict[str, int]
    by_category: Dict[str, int]


class ChangeLogResponse(BaseModel):
    id: UUID
    user_id: str
    user_name: str
    user_role: str
    action: ChangeAction
    entity_type: EntityType
    entity_id: str
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime
    ip: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ChangeLogSummary(BaseModel):
    total: int
    by_action: Dict[str, int]
    by_entity_type: Dict[str, int]
    recent: List[ChangeLogResponse]
