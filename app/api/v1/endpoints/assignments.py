from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.assessment import Assignment
from app.models.enums import ChangeAction, EntityType
from app.models.user import User
from app.services.academic_service import AcademicService
from app.services.assessment_service import AssessmentService
from app.services.change_log_service import ChangeLogService
from app.schemas.assessment import AssignmentCreate, AssignmentResponse, AssignmentUpdate
from app.schemas.responses import SuccessResponse

router = APIRouter()


async def _get_assignment_or_404(db: AsyncSession, assignment_id: UUID) -> Assignment:
    assignment = await AssessmentService.get_assignment(db, assignment_id)
    if not assignment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment not found")
    return assignment


def _ensure_can_modify(assignment: Assignment, user: User) -> None:
    if user.is_teacher and assignment.created_by != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only modify your own assignments")


@router.get("", response_model=SuccessResponse[List[AssignmentResponse]])
async def list_assignments(
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    return SuccessResponse(data=await AssessmentService.list_assignments(db))


@router.get("/student/{student_id}", response_model=SuccessResponse[List[AssignmentResponse]])
async def get_student_assignments(
    student_id: UUID,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """Assignments set for the classes the student is enrolled in."""
    if current_user.is_student and current_user.id != student_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")
    return SuccessResponse(data=await AssessmentService.get_student_assignments(db, student_id))


@router.get("/class/{class_id}", response_model=SuccessResponse[List[AssignmentResponse]])
async def get_class_assignments(
    class_id: UUID,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    if current_user.is_student:
        cls = await AcademicService.get_class(db, class_id)
        if not cls or current_user.id not in cls.student_ids:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return SuccessResponse(data=await AssessmentService.get_class_assignments(db, class_id))


@router.get("/{assignment_id}", response_model=SuccessResponse[AssignmentResponse])
async def get_assignment(
    assignment_id: UUID,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    return SuccessResponse(data=await _get_assignment_or_404(db, assignment_id))


@router.post("", response_model=SuccessResponse[AssignmentResponse], status_code=status.HTTP_201_CREATED)
async def create_assignment(
    assignment_in: AssignmentCreate,
    request: Request,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    try:
        assignment = await AssessmentService.create_assignment(db, assignment_in, creator=current_user)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    await ChangeLogService.log(
        db, current_user, ChangeAction.ADD, EntityType.ASSIGNMENT, assignment.id,
        details={"after": assignment_in.model_dump(mode="json")}, ip=deps.client_ip(request),
    )
    return SuccessResponse(data=assignment, message="Assignment created successfully")


@router.put("/{assignment_id}", response_model=SuccessResponse[AssignmentResponse])
async def update_assignment(
    assignment_id: UUID,
    assignment_in: AssignmentUpdate,
    request: Request,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    assignment = await _get_assignment_or_404(db, assignment_id)
    _ensure_can_modify(assignment, current_user)

    updates = assignment_in.model_dump(exclude_unset=True)
    before = AssignmentResponse.model_validate(assignment).model_dump(mode="json", include=set(updates))
    try:
        assignment = await AssessmentService.update_assignment(db, assignment, dict(updates))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    await ChangeLogService.log(
        db, current_user, ChangeAction.EDIT, EntityType.ASSIGNMENT, assignment.id,
        details={"before": before, "after": assignment_in.model_dump(mode="json", exclude_unset=True)},
        ip=deps.client_ip(request),
    )
    return SuccessResponse(data=assignment, message="Assignment updated successfully")


@router.delete("/{assignment_id}", response_model=SuccessResponse)
async def delete_assignment(
    assignment_id: UUID,
    request: Request,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    assignment = await _get_assignment_or_404(db, assignment_id)
    _ensure_can_modify(assignment, current_user)
    title = assignment.title
    await AssessmentService.delete_assignment(db, assignment)
    await ChangeLogService.log(
        db, current_user, ChangeAction.DELETE, EntityType.ASSIGNMENT, assignment_id,
        details={"title": title}, ip=deps.client_ip(request),
    )
    return SuccessResponse(data=None, message="Assignment deleted successfully")
