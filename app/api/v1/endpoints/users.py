from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import EmailStr
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.logging import get_logger
from app.core.permissions import can_manage
from app.models.enums import ChangeAction, EntityType, UserRole, UserStatus
from app.models.user import User
from app.services.change_log_service import ChangeLogService
from app.services.user_service import UserService
from app.schemas.user import (
    AvailabilityResponse,
    FirebaseLink,
    PasswordReset,
    UserCreate,
    UserRegistrationResponse,
    UserResponse,
    UserUpdate,
)
from app.schemas.responses import PaginatedResponse, PaginationMeta, SuccessResponse

router = APIRouter()
logger = get_logger(__name__)


def _parse_csv(value: Optional[str], enum_cls) -> Optional[List]:
    if not value:
        return None
    try:
        return [enum_cls(v.strip()) for v in value.split(",") if v.strip()]
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _may_manage(actor: User, target: User) -> bool:
    return actor.id == target.id or can_manage(actor.role, target.role)


async def _get_user_or_404(db: AsyncSession, user_id: UUID) -> User:
    user = await UserService.get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("", response_model=PaginatedResponse[UserResponse])
async def list_users(
    role: Optional[str] = Query(None, description="Comma-separated roles"),
    status_filter: Optional[str] = Query(None, alias="status", description="Comma-separated statuses"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    List users visible to the caller: admins see everyone, teachers students
    and staff, staff only students.
    """
    if current_user.is_student:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")

    users, total = await UserService.list_users(
        db,
        viewer=current_user,
        roles=_parse_csv(role, UserRole),
        statuses=_parse_csv(status_filter, UserStatus),
        page=page,
        page_size=page_size,
    )
    return PaginatedResponse(data=users, meta=PaginationMeta.build(page, page_size, total))


@router.post("", response_model=SuccessResponse[UserRegistrationResponse], status_code=status.HTTP_201_CREATED)
async def register_user(
    user_in: UserCreate,
    current_user: Optional[User] = Depends(deps.get_optional_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Register a user whose Firebase Authentication account already exists.
    Students are given the next free student code.

    Anyone may register a student. Other roles need an admin caller, except
    for the very first admin.
    """
    if user_in.role != UserRole.STUDENT and not (current_user and current_user.is_admin):
        if await UserService.count_admins(db) > 0:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only admins can register staff, teachers or admins",
            )
    try:
        user = await UserService.create_user(db, user_in)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    message = f"User registered with student code {user.student_code}" if user.student_code else "User registered"
    return SuccessResponse(data=UserRegistrationResponse.model_validate(user), message=message)


@router.get("/check-email/{email}", response_model=SuccessResponse[AvailabilityResponse])
async def check_email(email: EmailStr, db: AsyncSession = Depends(deps.get_db)) -> Any:
    existing = await UserService.get_user_by_email(db, email)
    return SuccessResponse(data=AvailabilityResponse(available=existing is None))


@router.get("/check-username/{username}", response_model=SuccessResponse[AvailabilityResponse])
async def check_username(username: str, db: AsyncSession = Depends(deps.get_db)) -> Any:
    existing = await UserService.get_user_by_username(db, username)
    return SuccessResponse(data=AvailabilityResponse(available=existing is None))


@router.get("/firebase/{firebase_uid}", response_model=SuccessResponse[UserResponse])
async def get_user_by_firebase_uid(
    firebase_uid: str,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    user = await UserService.get_user_by_firebase_uid(db, firebase_uid)
    if not user or (current_user.is_student and user.id != current_user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return SuccessResponse(data=user)


@router.get("/{user_id}", response_model=SuccessResponse[UserResponse])
async def get_user(
    user_id: UUID,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    if current_user.is_student and current_user.id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")
    return SuccessResponse(data=await _get_user_or_404(db, user_id))


@router.put("/{user_id}", response_model=SuccessResponse[UserResponse])
async def update_user(
    user_id: UUID,
    user_in: UserUpdate,
    request: Request,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Staff edit students, teachers edit students and staff, admins edit
    anyone, and everyone edits themselves. Only admins change role or status.
    """
    user = await _get_user_or_404(db, user_id)
    if not _may_manage(current_user, user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")

    updates = user_in.model_dump(exclude_unset=True)
    if not current_user.is_admin and ({"role", "status"} & updates.keys()):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can change role or status")

    before = UserResponse.model_validate(user).model_dump(mode="json", include=set(updates))
    try:
        user = await UserService.update_user(db, user, updates)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    after = UserResponse.model_validate(user).model_dump(mode="json", include=set(updates))
    entity_type = EntityType.STUDENT if user.is_student else EntityType.USER
    await ChangeLogService.log(
        db, current_user, ChangeAction.EDIT, entity_type, user.id,
        details={"before": before, "after": after}, ip=deps.client_ip(request),
    )
    return SuccessResponse(data=user, message="User updated")


@router.delete("/{user_id}", response_model=SuccessResponse)
async def delete_user(
    user_id: UUID,
    request: Request,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """Delete a user. Nobody deletes themselves; the last admin is kept."""
    user = await _get_user_or_404(db, user_id)
    if user.id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account")
    if not can_manage(current_user.role, user.role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")

    summary = {"name": user.name, "email": user.email, "role": UserRole(user.role).value, "student_code": user.student_code}
    entity_type = EntityType.STUDENT if user.is_student else EntityType.USER
    try:
        await UserService.delete_user(db, user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    await ChangeLogService.log(
        db, current_user, ChangeAction.DELETE, entity_type, user_id, details=summary, ip=deps.client_ip(request),
    )
    return SuccessResponse(data=None, message="User deleted")


@router.put("/{user_id}/password", response_model=SuccessResponse)
async def reset_password(
    user_id: UUID,
    body: PasswordReset,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    user = await _get_user_or_404(db, user_id)
    await UserService.set_password(db, user, body.new_password)
    logger.info("Password reset by admin", extra={"user_id": str(user.id), "admin_id": str(current_user.id)})
    return SuccessResponse(data=None, message="Password updated")


@router.post("/{user_id}/link-firebase", response_model=SuccessResponse[UserResponse])
async def link_firebase(
    user_id: UUID,
    body: FirebaseLink,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    user = await _get_user_or_404(db, user_id)
    try:
        user = await UserService.link_firebase_uid(db, user, body.firebase_uid)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return SuccessResponse(data=user, message="Firebase account linked")
