import asyncio
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core import security
from app.core.firebase import FirebaseTokenError, verify_firebase_token
from app.core.logging import get_logger
from app.core.permissions import permissions_for
from app.models.enums import UserRole
from app.models.user import User
from app.services.user_service import UserService
from app.schemas.auth import (
    FirebaseLoginRequest,
    LoginRequest,
    LoginResponse,
    PasswordChange,
    PermissionsResponse,
    RefreshRequest,
    Token,
)
from app.schemas.user import ProfileUpdate, UserResponse
from app.schemas.responses import SuccessResponse

router = APIRouter()
logger = get_logger(__name__)


def _login_response(user: User) -> LoginResponse:
    role = UserRole(user.role).value
    tokens = security.create_token_pair(str(user.id), role)
    return LoginResponse(
        **tokens,
        role=role,
        user_id=str(user.id),
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=SuccessResponse[LoginResponse])
async def login(
    login_data: LoginRequest,
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Email and password login for accounts with a local password.
    Returns JWT access token, refresh token and the user.
    """
    user = await UserService.authenticate_user(db, email=login_data.email, password=login_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is not active")

    return SuccessResponse(data=_login_response(user), message="Login successful")


@router.post("/firebase-login", response_model=SuccessResponse[LoginResponse])
async def firebase_login(
    login_data: FirebaseLoginRequest,
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Exchange a Firebase ID token for a local JWT pair.

    The user is found by Firebase UID, or by email on first sign-in, in which
    case the UID is linked to that user.
    """
    try:
        claims = await asyncio.to_thread(verify_firebase_token, login_data.id_token)
    except RuntimeError as e:
        logger.error(f"Firebase login unavailable: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Firebase authentication is not configured")
    except FirebaseTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Firebase token")

    try:
        user = await UserService.resolve_firebase_user(db, claims)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No account registered for this Firebase user")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is not active")

    return SuccessResponse(data=_login_response(user), message="Login successful")


@router.post("/refresh", response_model=SuccessResponse[Token])
async def refresh_token(
    body: RefreshRequest,
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    payload = security.decode_token(body.refresh_token, expected_type=security.REFRESH_TOKEN_TYPE)
    user = None
    if payload and payload.get("sub"):
        try:
            user = await UserService.get_user_by_id(db, UUID(payload["sub"]))
        except ValueError:
            user = None
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    role = UserRole(user.role).value
    return SuccessResponse(
        data=Token(**security.create_token_pair(str(user.id), role), role=role, user_id=str(user.id))
    )


@router.get("/profile", response_model=SuccessResponse[UserResponse])
async def get_profile(current_user: User = Depends(deps.get_current_user)) -> Any:
    return SuccessResponse(data=current_user)


@router.put("/profile", response_model=SuccessResponse[UserResponse])
async def update_profile(
    profile_in: ProfileUpdate,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """Edit own profile. Role, status, Firebase UID and student code cannot change here."""
    updated = await UserService.update_user(db, current_user, profile_in.model_dump(exclude_unset=True))
    return SuccessResponse(data=updated, message="Profile updated")


@router.post("/logout", response_model=SuccessResponse)
async def logout(current_user: User = Depends(deps.get_current_user)) -> Any:
    """Tokens are stateless; the client discards them."""
    logger.info("User logged out", extra={"user_id": str(current_user.id)})
    return SuccessResponse(data=None, message="Logged out")


@router.get("/permissions", response_model=SuccessResponse[PermissionsResponse])
async def get_permissions(current_user: User = Depends(deps.get_current_user)) -> Any:
    role = UserRole(current_user.role)
    return SuccessResponse(
        data=PermissionsResponse(
            role=role.value,
            permissions=permissions_for(role),
            student_code=current_user.student_code,
        )
    )


@router.post("/change-password", response_model=SuccessResponse)
async def change_password(
    body: PasswordChange,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    changed = await UserService.change_password(db, current_user, body.current_password, body.new_password)
    if not changed:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
    return SuccessResponse(data=None, message="Password changed")
