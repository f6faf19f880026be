"""Student Record Service - per-student activity history"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.models.enums import RecordAction, RecordCategory
from app.models.records import StudentRecord
from app.models.user import User

logger = get_logger(__name__)


class RecordService:

    @staticmethod
    async def add_record(
        db: AsyncSession,
        student: User,
        action: RecordAction,
        category: RecordCategory,
        performed_by: User,
        details: Optional[Dict[str, Any]] = None,
        related_class_id: Optional[UUID] = None,
        related_assignment_id: Optional[UUID] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> StudentRecord:
        """Stage a record for ``student``; the caller's transaction commits it"""
        record = StudentRecord(
            student_id=student.id,
            student_name=student.name,
            action=action,
            category=category,
            details=details or {},
            related_class_id=related_class_id,
            related_assignment_id=related_assignment_id,
            performed_by=performed_by.id,
            performed_by_name=performed_by.name,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(record)
        await db.flush()
        return record

    @staticmethod
    def _filters(
        student_id: Optional[UUID] = None,
        action: Optional[RecordAction] = None,
        category: Optional[RecordCategory] = None,
        performed_by: Optional[UUID] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> list:
        conditions = [StudentRecord.is_active.is_(True)]
        if student_id:
            conditions.append(StudentRecord.student_id == student_id)
        if action:
            conditions.append(StudentRecord.action == action)
        if category:
            conditions.append(StudentRecord.category == category)
        if performed_by:
            conditions.append(StudentRecord.performed_by == performed_by)
        if start_date:
            conditions.append(StudentRecord.timestamp >= start_date)
        if end_date:
            conditions.append(StudentRecord.timestamp <= end_date)
        return conditions

    @staticmethod
    async def list_records(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 50,
        **filters: Any,
    ) -> Tuple[List[StudentRecord], int]:
        conditions = RecordService._filters(**filters)
        total_result = await db.execute(select(func.count()).select_from(StudentRecord).where(*conditions))
        result = await db.execute(
            select(StudentRecord)
            .where(*conditions)
            .order_by(StudentRecord.timestamp.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total_result.scalar_one()

    @staticmethod
    async def get_record(db: AsyncSession, record_id: UUID) -> Optional[StudentRecord]:
        result = await db.execute(
            select(StudentRecord).where(StudentRecord.id == record_id, StudentRecord.is_active.is_(True))
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_student_records(db: AsyncSession, student_id: UUID) -> List[StudentRecord]:
        result = await db.execute(
            select(StudentRecord)
            .where(*RecordService._filters(student_id=student_id))
            .order_by(StudentRecord.timestamp.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_timeline(db: AsyncSession, student_id: UUID) -> List[Dict[str, Any]]:
        records = await RecordService.get_student_records(db, student_id)
        return [
            {
                "id": r.id,
                "action": r.action,
                "category": r.category,
                "summary": r.summary(),
                "performed_by_name": r.performed_by_name,
                "timestamp": r.timestamp,
            }
            for r in records
        ]

    @staticmethod
    async def stats(db: AsyncSession) -> Dict[str, Any]:
        active = StudentRecord.is_active.is_(True)
        by_action_rows = await db.execute(
            select(StudentRecord.action, func.count()).where(active).group_by(StudentRecord.action)
        )
        by_category_rows = await db.execute(
            select(StudentRecord.category, func.count()).where(active).group_by(StudentRecord.category)
        )
        by_action = {RecordAction(a).value: n for a, n in by_action_rows.all()}
        return {
            "total": sum(by_action.values()),
            "by_action": by_action,
            "by_category": {RecordCategory(c).value: n for c, n in by_category_rows.all()},
        }

    @staticmethod
    async def update_details(db: AsyncSession, record: StudentRecord, details: Dict[str, Any]) -> StudentRecord:
        record.details = details
        await db.commit()
        await db.refresh(record)
        return record

    @staticmethod
    async def deactivate(db: AsyncSession, record: StudentRecord) -> None:
        record.is_active = False
        await db.commit()
