from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.admissions import PotentialStudent
from app.models.enums import ChangeAction, EntityType, LeadSource, LeadStatus
from app.models.user import User
from app.services.admissions_service import AdmissionsService
from app.services.change_log_service import ChangeLogService
from app.schemas.admissions import (
    AssignLead,
    ConvertLead,
    LeadStats,
    PotentialStudentCreate,
    PotentialStudentResponse,
    PotentialStudentUpdate,
    StatusUpdate,
)
from app.schemas.responses import PaginatedResponse, PaginationMeta, SuccessResponse
from app.schemas.user import UserResponse

router = APIRouter()


async def _get_lead_or_404(db: AsyncSession, lead_id: UUID) -> PotentialStudent:
    lead = await AdmissionsService.get_lead(db, lead_id)
    if not lead:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Potential student not found")
    return lead


@router.get("", response_model=PaginatedResponse[PotentialStudentResponse])
async def list_potential_students(
    status_filter: Optional[LeadStatus] = Query(None, alias="status"),
    assigned_to: Optional[UUID] = None,
    source: Optional[LeadSource] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    leads, total = await AdmissionsService.list_leads(
        db, status=status_filter, assigned_to=assigned_to, source=source, page=page, page_size=page_size,
    )
    return PaginatedResponse(data=leads, meta=PaginationMeta.build(page, page_size, total))


@router.get("/stats/overview", response_model=SuccessResponse[LeadStats])
async def potential_student_stats(
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    return SuccessResponse(data=await AdmissionsService.stats(db))


@router.get("/{lead_id}", response_model=SuccessResponse[PotentialStudentResponse])
async def get_potential_student(
    lead_id: UUID,
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    return SuccessResponse(data=await _get_lead_or_404(db, lead_id))


@router.post("", response_model=SuccessResponse[PotentialStudentResponse], status_code=status.HTTP_201_CREATED)
async def create_potential_student(
    lead_in: PotentialStudentCreate,
    request: Request,
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    try:
        lead = await AdmissionsService.create_lead(db, lead_in)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    await ChangeLogService.log(
        db, current_user, ChangeAction.ADD, EntityType.POTENTIAL_STUDENT, lead.id,
        details={"name": lead.name, "email": lead.email}, ip=deps.client_ip(request),
    )
    return SuccessResponse(data=lead, message="Potential student created")


@router.put("/{lead_id}", response_model=SuccessResponse[PotentialStudentResponse])
async def update_potential_student(
    lead_id: UUID,
    lead_in: PotentialStudentUpdate,
    request: Request,
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    lead = await _get_lead_or_404(db, lead_id)
    updates = lead_in.model_dump(exclude_unset=True)
    lead = await AdmissionsService.update_lead(db, lead, updates)
    await ChangeLogService.log(
        db, current_user, ChangeAction.EDIT, EntityType.POTENTIAL_STUDENT, lead.id,
        details={"after": lead_in.model_dump(mode="json", exclude_unset=True)}, ip=deps.client_ip(request),
    )
    return SuccessResponse(data=lead, message="Potential student updated")


@router.patch("/{lead_id}/status", response_model=SuccessResponse[PotentialStudentResponse])
async def update_potential_student_status(
    lead_id: UUID,
    body: StatusUpdate,
    request: Request,
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    lead = await _get_lead_or_404(db, lead_id)
    old_status = LeadStatus(lead.status).value
    lead = await AdmissionsService.update_status(db, lead, body.status, body.notes)
    await ChangeLogService.log(
        db, current_user, ChangeAction.EDIT, EntityType.POTENTIAL_STUDENT, lead.id,
        details={"before": {"status": old_status}, "after": {"status": body.status.value}},
        ip=deps.client_ip(request),
    )
    return SuccessResponse(data=lead, message=f"Status updated to {body.status.value}")


@router.post("/{lead_id}/assign", response_model=SuccessResponse[PotentialStudentResponse])
async def assign_potential_student(
    lead_id: UUID,
    body: AssignLead,
    request: Request,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    lead = await _get_lead_or_404(db, lead_id)
    try:
        lead = await AdmissionsService.assign(db, lead, body.assigned_to)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    await ChangeLogService.log(
        db, current_user, ChangeAction.ASSIGN, EntityType.POTENTIAL_STUDENT, lead.id,
        details={"assigned_to": str(body.assigned_to)}, ip=deps.client_ip(request),
    )
    return SuccessResponse(data=lead, message="Potential student assigned")


@router.post("/{lead_id}/convert", response_model=SuccessResponse[UserResponse], status_code=status.HTTP_201_CREATED)
async def convert_potential_student(
    lead_id: UUID,
    request: Request,
    body: Optional[ConvertLead] = None,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Enrol a lead: creates an active student with the next free student code.
    The student links a Firebase account on first sign-in with the lead's email.
    """
    lead = await _get_lead_or_404(db, lead_id)
    try:
        student = await AdmissionsService.convert(db, lead, body or ConvertLead(), performed_by=current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    await ChangeLogService.log(
        db, current_user, ChangeAction.ADD, EntityType.STUDENT, student.id,
        details={"potential_student_id": str(lead.id), "student_code": student.student_code},
        ip=deps.client_ip(request),
    )
    return SuccessResponse(data=student, message=f"Converted to student {student.student_code}")


@router.delete("/{lead_id}", response_model=SuccessResponse)
async def delete_potential_student(
    lead_id: UUID,
    request: Request,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    lead = await _get_lead_or_404(db, lead_id)
    summary = {"name": lead.name, "email": lead.email}
    await AdmissionsService.delete_lead(db, lead)
    await ChangeLogService.log(
        db, current_user, ChangeAction.DELETE, EntityType.POTENTIAL_STUDENT, lead_id,
        details=summary, ip=deps.client_ip(request),
    )
    return SuccessResponse(data=None, message="Potential student deleted")
