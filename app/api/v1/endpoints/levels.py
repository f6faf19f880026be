from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.enums import ChangeAction, EntityType
from app.models.user import User
from app.services.academic_service import AcademicService
from app.services.change_log_service import ChangeLogService
from app.schemas.academic import LevelCreate, LevelResponse, LevelUpdate
from app.schemas.responses import SuccessResponse

router = APIRouter()


@router.get("", response_model=SuccessResponse[List[LevelResponse]])
async def list_levels(
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """Active levels, alphabetical."""
    return SuccessResponse(data=await AcademicService.list_levels(db))


@router.get("/{level_id}", response_model=SuccessResponse[LevelResponse])
async def get_level(
    level_id: UUID,
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    level = await AcademicService.get_level(db, level_id)
    if not level:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Level not found")
    return SuccessResponse(data=level)


@router.post("", response_model=SuccessResponse[LevelResponse], status_code=status.HTTP_201_CREATED)
async def create_level(
    level_in: LevelCreate,
    request: Request,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    try:
        level = await AcademicService.create_level(db, level_in)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    await ChangeLogService.log(
        db, current_user, ChangeAction.ADD, EntityType.LEVEL, level.id,
        details={"after": level_in.model_dump()}, ip=deps.client_ip(request),
    )
    return SuccessResponse(data=level, message="Level created successfully")


@router.put("/{level_id}", response_model=SuccessResponse[LevelResponse])
async def update_level(
    level_id: UUID,
    level_in: LevelUpdate,
    request: Request,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    level = await AcademicService.get_level(db, level_id)
    if not level:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Level not found")

    updates = level_in.model_dump(exclude_unset=True)
    before = {field: getattr(level, field) for field in updates}
    try:
        level = await AcademicService.update_level(db, level, updates)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    await ChangeLogService.log(
        db, current_user, ChangeAction.EDIT, EntityType.LEVEL, level.id,
        details={"before": before, "after": updates}, ip=deps.client_ip(request),
    )
    return SuccessResponse(data=level, message="Level updated successfully")


@router.delete("/{level_id}", response_model=SuccessResponse)
async def delete_level(
    level_id: UUID,
    request: Request,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """Soft delete: the level is hidden but classes keep their reference."""
    level = await AcademicService.get_level(db, level_id)
    if not level:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Level not found")
    await AcademicService.deactivate_level(db, level)
    await ChangeLogService.log(
        db, current_user, ChangeAction.DELETE, EntityType.LEVEL, level.id,
        details={"name": level.name, "code": level.code}, ip=deps.client_ip(request),
    )
    return SuccessResponse(data=None, message="Level deleted successfully")
