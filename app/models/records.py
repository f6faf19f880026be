"""Student activity records and the admin change log"""

from sqlalchemy import Column, String, ForeignKey, DateTime, Boolean, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB

from app.models.base import BaseModel, pg_enum
from app.models.enums import ChangeAction, EntityType, RecordAction, RecordCategory
from app.utils.time import get_utc_now


class StudentRecord(BaseModel):
    """
    One entry in a student's history (enrolment, class moves, grades, payments).
    Names are denormalised so the history survives user deletion.
    """
    __tablename__ = "student_records"

    student_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    student_name = Column(String(255), nullable=False)

    action = Column(pg_enum(RecordAction, "record_action"), nullable=False)
    category = Column(pg_enum(RecordCategory, "record_category"), nullable=False)
    details = Column(JSONB, nullable=False, default=dict)

    related_class_id = Column(UUID(as_uuid=True), ForeignKey("classes.id", ondelete="SET NULL"), nullable=True)
    related_assignment_id = Column(UUID(as_uuid=True), ForeignKey("assignments.id", ondelete="SET NULL"), nullable=True)

    performed_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    performed_by_name = Column(String(255), nullable=False)

    timestamp = Column(DateTime, default=get_utc_now, nullable=False)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("ix_student_records_student_timestamp", "student_id", "timestamp"),
        Index("ix_student_records_action_timestamp", "action", "timestamp"),
        Index("ix_student_records_category_timestamp", "category", "timestamp"),
    )

    def summary(self) -> str:
        """Human-readable one-liner for timelines"""
        d = self.details or {}
        action = RecordAction(self.action)
        if action == RecordAction.ENROLLMENT:
            return f"Enrolled in {d.get('program') or 'program'}"
        if action == RecordAction.CLASS_ASSIGNMENT:
            return f"Assigned to {d.get('class_name') or 'class'}"
        if action == RecordAction.CLASS_REMOVAL:
            return f"Removed from {d.get('class_name') or 'class'}"
        if action == RecordAction.GRADE_UPDATE:
            return f"Grade updated: {d.get('old_grade')} → {d.get('new_grade')}"
        if action == RecordAction.ATTENDANCE:
            return f"Attendance marked: {d.get('status')} for {d.get('date')}"
        if action == RecordAction.PAYMENT:
            return f"Payment: {d.get('amount')} for {d.get('description')}"
        if action == RecordAction.WITHDRAWAL:
            return f"Withdrawn from {d.get('program') or 'program'}"
        if action == RecordAction.RE_ENROLLMENT:
            return f"Re-enrolled in {d.get('program') or 'program'}"
        if action == RecordAction.PROFILE_UPDATE:
            return f"Profile updated: {d.get('field')} changed"
        if action == RecordAction.STATUS_CHANGE:
            return f"Status changed: {d.get('old_status')} → {d.get('new_status')}"
        if action == RecordAction.NOTE_ADDED:
            return f"Note added: {d.get('note')}"
        if action == RecordAction.TEST_RESULT:
            return f"Test result: {d.get('score')} in {d.get('test_name')}"
        return d.get("description") or "Action performed"


class ChangeLog(BaseModel):
    """Audit trail of admin-console mutations"""
    __tablename__ = "change_logs"

    user_id = Column(String(64), nullable=False, index=True)
    user_name = Column(String(255), nullable=False)
    user_role = Column(String(20), nullable=False)
    action = Column(pg_enum(ChangeAction, "change_action"), nullable=False, index=True)
    entity_type = Column(pg_enum(EntityType, "entity_type"), nullable=False, index=True)
    entity_id = Column(String(64), nullable=False, index=True)
    details = Column(JSONB, nullable=True)
    timestamp = Column(DateTime, default=get_utc_now, nullable=False, index=True)
    ip = Column(String(64), nullable=True)
