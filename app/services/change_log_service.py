"""Change Log Service - audit trail of admin-console mutations"""

from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.models.enums import ChangeAction, EntityType, UserRole
from app.models.records import ChangeLog
from app.models.user import User

logger = get_logger(__name__)


class ChangeLogService:

    @staticmethod
    async def log(
        db: AsyncSession,
        actor: User,
        action: ChangeAction,
        entity_type: EntityType,
        entity_id: Any,
        details: Optional[Dict[str, Any]] = None,
        ip: Optional[str] = None,
    ) -> ChangeLog:
        """Stage a change log row; the caller's transaction commits it"""
        entry = ChangeLog(
            user_id=str(actor.id),
            user_name=actor.name,
            user_role=UserRole(actor.role).value,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            details=details,
            ip=ip,
        )
        db.add(entry)
        await db.flush()
        return entry

    @staticmethod
    async def list_logs(
        db: AsyncSession,
        entity_type: Optional[EntityType] = None,
        user_id: Optional[str] = None,
        action: Optional[ChangeAction] = None,
        limit: int = 100,
    ) -> List[ChangeLog]:
        query = select(ChangeLog)
        if entity_type:
            query = query.where(ChangeLog.entity_type == entity_type)
        if user_id:
            query = query.where(ChangeLog.user_id == user_id)
        if action:
            query = query.where(ChangeLog.action == action)
        result = await db.execute(query.order_by(ChangeLog.timestamp.desc()).limit(limit))
        return list(result.scalars().all())

    @staticmethod
    async def get_log(db: AsyncSession, log_id: UUID) -> Optional[ChangeLog]:
        result = await db.execute(select(ChangeLog).where(ChangeLog.id == log_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_entity_history(db: AsyncSession, entity_type: EntityType, entity_id: str) -> List[ChangeLog]:
        result = await db.execute(
            select(ChangeLog)
            .where(ChangeLog.entity_type == entity_type, ChangeLog.entity_id == entity_id)
            .order_by(ChangeLog.timestamp.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def summary(db: AsyncSession, recent_limit: int = 10) -> Dict[str, Any]:
        """Totals by action and entity type plus the most recent entries"""
        by_action_rows = await db.execute(
            select(ChangeLog.action, func.count()).group_by(ChangeLog.action)
        )
        by_entity_rows = await db.execute(
            select(ChangeLog.entity_type, func.count()).group_by(ChangeLog.entity_type)
        )
        by_action = {ChangeAction(a).value: n for a, n in by_action_rows.all()}
        by_entity_type = {EntityType(e).value: n for e, n in by_entity_rows.all()}
        recent = await ChangeLogService.list_logs(db, limit=recent_limit)
        return {
            "total": sum(by_action.values()),
            "by_action": by_action,
            "by_entity_type": by_entity_type,
            "recent": recent,
        }

    @staticmethod
    async def delete_log(db: AsyncSession, log_id: UUID) -> bool:
        result = await db.execute(delete(ChangeLog).where(ChangeLog.id == log_id))
        await db.commit()
        return result.rowcount > 0
