from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.academic import Class
from app.models.enums import ChangeAction, EntityType, RecordAction, RecordCategory
from app.models.user import User
from app.services.academic_service import AcademicService
from app.services.change_log_service import ChangeLogService
from app.services.record_service import RecordService
from app.schemas.academic import ClassCreate, ClassDetail, ClassResponse, ClassUpdate, EnrollStudent
from app.schemas.responses import SuccessResponse

router = APIRouter()


async def _get_class_or_404(db: AsyncSession, class_id: UUID) -> Class:
    cls = await AcademicService.get_class(db, class_id)
    if not cls:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return cls


def _ensure_can_modify(cls: Class, user: User) -> None:
    """Admins modify any class; teachers only their own."""
    if user.is_admin:
        return
    if not user.is_teacher or not AcademicService.is_owner(cls, user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only modify your own classes")


@router.get("", response_model=SuccessResponse[List[ClassResponse]])
async def list_classes(
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Admins and staff see every active class; teachers their own.
    """
    teacher_id = current_user.id if current_user.is_teacher else None
    return SuccessResponse(data=await AcademicService.list_classes(db, teacher_id=teacher_id))


@router.get("/student/{student_id}", response_model=SuccessResponse[List[ClassResponse]])
async def get_student_classes(
    student_id: UUID,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    if current_user.is_student and current_user.id != student_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")
    return SuccessResponse(data=await AcademicService.get_student_classes(db, student_id))


@router.get("/teacher/{teacher_id}", response_model=SuccessResponse[List[ClassResponse]])
async def get_teacher_classes(
    teacher_id: UUID,
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    if current_user.is_teacher and current_user.id != teacher_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")
    return SuccessResponse(data=await AcademicService.list_classes(db, teacher_id=teacher_id))


@router.get("/{class_id}", response_model=SuccessResponse[ClassDetail])
async def get_class(
    class_id: UUID,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    cls = await _get_class_or_404(db, class_id)
    if current_user.is_student and current_user.id not in cls.student_ids:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return SuccessResponse(data=cls)


@router.post("", response_model=SuccessResponse[ClassDetail], status_code=status.HTTP_201_CREATED)
async def create_class(
    class_in: ClassCreate,
    request: Request,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    try:
        new_class = await AcademicService.create_class(db, class_in, owner=current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    await ChangeLogService.log(
        db, current_user, ChangeAction.ADD, EntityType.CLASS, new_class.id,
        details={"after": class_in.model_dump(mode="json")}, ip=deps.client_ip(request),
    )
    return SuccessResponse(data=new_class, message="Class created successfully")


@router.put("/{class_id}", response_model=SuccessResponse[ClassDetail])
async def update_class(
    class_id: UUID,
    class_in: ClassUpdate,
    request: Request,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    cls = await _get_class_or_404(db, class_id)
    _ensure_can_modify(cls, current_user)

    updates = class_in.model_dump(exclude_unset=True)
    if "teacher_id" in updates and not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can reassign a class")

    before = ClassResponse.model_validate(cls).model_dump(mode="json", include=set(updates))
    try:
        cls = await AcademicService.update_class(db, cls, updates)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    action = ChangeAction.REASSIGN if "teacher_id" in updates else ChangeAction.EDIT
    await ChangeLogService.log(
        db, current_user, action, EntityType.CLASS, cls.id,
        details={"before": before, "after": class_in.model_dump(mode="json", exclude_unset=True)},
        ip=deps.client_ip(request),
    )
    return SuccessResponse(data=cls, message="Class updated successfully")


@router.delete("/{class_id}", response_model=SuccessResponse)
async def delete_class(
    class_id: UUID,
    request: Request,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    cls = await _get_class_or_404(db, class_id)
    _ensure_can_modify(cls, current_user)
    await AcademicService.deactivate_class(db, cls)
    await ChangeLogService.log(
        db, current_user, ChangeAction.DELETE, EntityType.CLASS, cls.id,
        details={"name": cls.name}, ip=deps.client_ip(request),
    )
    return SuccessResponse(data=None, message="Class deleted successfully")


@router.post("/{class_id}/students", response_model=SuccessResponse[ClassDetail])
async def add_student_to_class(
    class_id: UUID,
    body: EnrollStudent,
    request: Request,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    cls = await _get_class_or_404(db, class_id)
    _ensure_can_modify(cls, current_user)
    try:
        student = await AcademicService.add_student(db, cls, body.student_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if student is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Student already in class")

    await RecordService.add_record(
        db,
        student=student,
        action=RecordAction.CLASS_ASSIGNMENT,
        category=RecordCategory.ACADEMIC,
        performed_by=current_user,
        details={"class_name": cls.name},
        related_class_id=cls.id,
        ip_address=deps.client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    await ChangeLogService.log(
        db, current_user, ChangeAction.ASSIGN, EntityType.CLASS, cls.id,
        details={"student_id": str(student.id), "student_name": student.name}, ip=deps.client_ip(request),
    )
    return SuccessResponse(data=cls, message="Student added to class")


@router.delete("/{class_id}/students/{student_id}", response_model=SuccessResponse[ClassDetail])
async def remove_student_from_class(
    class_id: UUID,
    student_id: UUID,
    request: Request,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    cls = await _get_class_or_404(db, class_id)
    _ensure_can_modify(cls, current_user)
    student = await AcademicService.remove_student(db, cls, student_id)
    if student is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not in class")

    await RecordService.add_record(
        db,
        student=student,
        action=RecordAction.CLASS_REMOVAL,
        category=RecordCategory.ACADEMIC,
        performed_by=current_user,
        details={"class_name": cls.name},
        related_class_id=cls.id,
        ip_address=deps.client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return SuccessResponse(data=cls, message="Student removed from class")
