"""User Pydantic Schemas"""

from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator

from app.models.enums import Gender, UserRole, UserStatus


class UserProfileFields(BaseModel):
    """Profile fields any user may edit on themselves"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    display_name: Optional[str] = None
    english_name: Optional[str] = None
    gender: Optional[Gender] = None
    dob: Optional[str] = None
    phone: Optional[str] = None
    parent_name: Optional[str] = None
    parent_phone: Optional[str] = None
    notes: Optional[str] = None


class UserCreate(UserProfileFields):
    """
    Registration payload.

    The caller has already created the Firebase Authentication account and
    passes its UID; the password is optional and only enables local login.
    """
    firebase_uid: str = Field(..., min_length=1, max_length=128)
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)
    username: str = Field(..., min_length=3, max_length=100)
    password: Optional[str] = Field(None, min_length=8)
    role: UserRole = UserRole.STUDENT
    status: UserStatus = UserStatus.POTENTIAL

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        return v.strip()


class UserUpdate(UserProfileFields):
    """Admin/staff edit of another user; role and status are admin-only"""
    email: Optional[EmailStr] = None
    username: Optional[str] = Field(None, min_length=3, max_length=100)
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v


class ProfileUpdate(UserProfileFields):
    """Self-service profile edit; identity, role, status and student code are fixed"""
    pass


class UserResponse(BaseModel):
    id: UUID
    firebase_uid: Optional[str] = None
    username: str
    email: str
    name: str
    display_name: Optional[str] = None
    english_name: Optional[str] = None
    gender: Optional[Gender] = None
    dob: Optional[str] = None
    phone: Optional[str] = None
    parent_name: Optional[str] = None
    parent_phone: Optional[str] = None
    notes: Optional[str] = None
    role: UserRole
    status: UserStatus
    student_code: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserRegistrationResponse(UserResponse):
    """Registration result; the allocated code is sent as ``studentCode``"""
    student_code: Optional[str] = Field(None, alias="studentCode")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class UserBrief(BaseModel):
    id: UUID
    name: str
    email: str
    role: UserRole
    student_code: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PasswordReset(BaseModel):
    """Admin sets a user's local password"""
    new_password: str = Field(..., min_length=8)


class FirebaseLink(BaseModel):
    firebase_uid: str = Field(..., min_length=1, max_length=128)


class AvailabilityResponse(BaseModel):
    available: bool
