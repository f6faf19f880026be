from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.enums import RecordAction, RecordCategory
from app.models.records import StudentRecord
from app.models.user import User
from app.services.record_service import RecordService
from app.services.user_service import UserService
from app.schemas.records import (
    RecordStats,
    StudentRecordCreate,
    StudentRecordResponse,
    StudentRecordUpdate,
    TimelineEntry,
)
from app.schemas.responses import PaginatedResponse, PaginationMeta, SuccessResponse

router = APIRouter()


async def _get_record_or_404(db: AsyncSession, record_id: UUID) -> StudentRecord:
    record = await RecordService.get_record(db, record_id)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Record not found")
    return record


@router.get("", response_model=PaginatedResponse[StudentRecordResponse])
async def list_records(
    student_id: Optional[UUID] = None,
    action: Optional[RecordAction] = None,
    category: Optional[RecordCategory] = None,
    performed_by: Optional[UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    records, total = await RecordService.list_records(
        db,
        page=page,
        page_size=page_size,
        student_id=student_id,
        action=action,
        category=category,
        performed_by=performed_by,
        start_date=start_date,
        end_date=end_date,
    )
    return PaginatedResponse(data=records, meta=PaginationMeta.build(page, page_size, total))


@router.get("/stats/overview", response_model=SuccessResponse[RecordStats])
async def record_stats(
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    return SuccessResponse(data=await RecordService.stats(db))


@router.get("/student/{student_id}", response_model=SuccessResponse[List[StudentRecordResponse]])
async def get_student_records(
    student_id: UUID,
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    return SuccessResponse(data=await RecordService.get_student_records(db, student_id))


@router.get("/student/{student_id}/timeline", response_model=SuccessResponse[List[TimelineEntry]])
async def get_student_timeline(
    student_id: UUID,
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    return SuccessResponse(data=await RecordService.get_timeline(db, student_id))


@router.get("/{record_id}", response_model=SuccessResponse[StudentRecordResponse])
async def get_record(
    record_id: UUID,
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    return SuccessResponse(data=await _get_record_or_404(db, record_id))


@router.post("", response_model=SuccessResponse[StudentRecordResponse], status_code=status.HTTP_201_CREATED)
async def create_record(
    record_in: StudentRecordCreate,
    request: Request,
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    student = await UserService.get_user_by_id(db, record_in.student_id)
    if not student or not student.is_student:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    record = await RecordService.add_record(
        db,
        student=student,
        action=record_in.action,
        category=record_in.category,
        performed_by=current_user,
        details=record_in.details,
        related_class_id=record_in.related_class_id,
        related_assignment_id=record_in.related_assignment_id,
        ip_address=deps.client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    await db.commit()
    await db.refresh(record)
    return SuccessResponse(data=record, message="Record created")


@router.put("/{record_id}", response_model=SuccessResponse[StudentRecordResponse])
async def update_record(
    record_id: UUID,
    record_in: StudentRecordUpdate,
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """Only the details of a record can change."""
    record = await _get_record_or_404(db, record_id)
    record = await RecordService.update_details(db, record, record_in.details)
    return SuccessResponse(data=record, message="Record updated")


@router.delete("/{record_id}", response_model=SuccessResponse)
async def delete_record(
    record_id: UUID,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    record = await _get_record_or_404(db, record_id)
    await RecordService.deactivate(db, record)
    return SuccessResponse(data=None, message="Record deleted")
