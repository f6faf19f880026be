from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.enums import ChangeAction, EntityType
from app.models.user import User
from app.services.change_log_service import ChangeLogService
from app.schemas.records import ChangeLogResponse, ChangeLogSummary
from app.schemas.responses import SuccessResponse

router = APIRouter()


@router.get("", response_model=SuccessResponse[List[ChangeLogResponse]])
async def list_change_logs(
    entity_type: Optional[EntityType] = None,
    user_id: Optional[str] = None,
    action: Optional[ChangeAction] = None,
    limit: int = Query(100, ge=1, le=1000),
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """Newest first."""
    logs = await ChangeLogService.list_logs(db, entity_type=entity_type, user_id=user_id, action=action, limit=limit)
    return SuccessResponse(data=logs)


@router.get("/summary/dashboard", response_model=SuccessResponse[ChangeLogSummary])
async def change_log_summary(
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    return SuccessResponse(data=await ChangeLogService.summary(db))


@router.get("/entity/{entity_type}/{entity_id}", response_model=SuccessResponse[List[ChangeLogResponse]])
async def get_entity_history(
    entity_type: EntityType,
    entity_id: str,
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    return SuccessResponse(data=await ChangeLogService.get_entity_history(db, entity_type, entity_id))


@router.get("/{log_id}", response_model=SuccessResponse[ChangeLogResponse])
async def get_change_log(
    log_id: UUID,
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    log = await ChangeLogService.get_log(db, log_id)
    if not log:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Change log not found")
    return SuccessResponse(data=log)


@router.delete("/{log_id}", response_model=SuccessResponse)
async def delete_change_log(
    log_id: UUID,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    if not await ChangeLogService.delete_log(db, log_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Change log not found")
    return SuccessResponse(data=None, message="Change log deleted")
