"""User Service - Business Logic Layer"""

from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.models.user import STUDENT_CODE_INDEX, User
from app.models.enums import UserRole, UserStatus
from app.schemas.user import UserCreate
from app.core.permissions import MANAGEABLE_ROLES
from app.core.security import get_password_hash, verify_password
from app.services.student_code_service import (
    SQLUserRegistry,
    StudentCodeConflict,
    StudentCodeService,
)

logger = logging.getLogger(__name__)


class UserService:
    """Service layer for user-related operations"""

    @staticmethod
    async def get_user_by_id(db: AsyncSession, user_id: UUID) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_user_by_firebase_uid(db: AsyncSession, firebase_uid: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.firebase_uid == firebase_uid))
        return result.scalar_one_or_none()

    @staticmethod
    async def list_users(
        db: AsyncSession,
        viewer: User,
        roles: Optional[List[UserRole]] = None,
        statuses: Optional[List[UserStatus]] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Tuple[List[User], int]:
        """
        List users visible to ``viewer``, newest first.

        Admins see everyone, teachers see students and staff, staff see
        students. Requested roles outside that set are ignored.
        """
        visible = MANAGEABLE_ROLES[UserRole(viewer.role)]
        wanted = [r for r in (roles or visible) if r in visible]
        if not wanted:
            return [], 0

        conditions = [User.role.in_(wanted)]
        if statuses:
            conditions.append(User.status.in_(statuses))

        total_result = await db.execute(select(func.count()).select_from(User).where(*conditions))
        total = total_result.scalar_one()

        result = await db.execute(
            select(User)
            .where(*conditions)
            .order_by(User.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def _ensure_unique_identity(
        db: AsyncSession,
        email: Optional[str] = None,
        username: Optional[str] = None,
        firebase_uid: Optional[str] = None,
        exclude_id: Optional[UUID] = None,
    ) -> None:
        """Raise ValueError if another user already owns one of the identifiers"""
        checks = (
            (email, UserService.get_user_by_email, "Email already registered"),
            (username, UserService.get_user_by_username, "Username already taken"),
            (firebase_uid, UserService.get_user_by_firebase_uid, "Firebase account already linked to another user"),
        )
        for value, lookup, message in checks:
            if value is None:
                continue
            existing = await lookup(db, value)
            if existing and existing.id != exclude_id:
                raise ValueError(message)

    @staticmethod
    def _violates_student_code_index(error: IntegrityError) -> bool:
        return STUDENT_CODE_INDEX in str(error.orig)

    @staticmethod
    async def _insert_user(db: AsyncSession, values: Dict[str, Any]) -> User:
        """
        Insert inside a savepoint so a unique violation only undoes this row.

        Only a clash on the student code index is a retryable conflict; any
        other violation means the identity was registered concurrently.
        """
        user = User(**values)
        try:
            async with db.begin_nested():
                db.add(user)
        except IntegrityError as e:
            code = values.get("student_code")
            if code and UserService._violates_student_code_index(e):
                raise StudentCodeConflict(code) from e
            raise ValueError("User already exists") from e
        return user

    @staticmethod
    async def create_student_with_code(db: AsyncSession, values: Dict[str, Any]) -> User:
        """Insert a student row carrying a freshly allocated code, retrying on conflict"""
        service = StudentCodeService(SQLUserRegistry(db))

        async def insert(code: str) -> User:
            return await UserService._insert_user(db, {**values, "student_code": code})

        user = await service.allocate_with_retry(insert)
        logger.info("Student code allocated", extra={"user_id": str(user.id), "student_code": user.student_code})
        return user

    @staticmethod
    async def assign_student_code(db: AsyncSession, user: User) -> User:
        """Give an existing student row the next free code; the caller commits"""
        service = StudentCodeService(SQLUserRegistry(db))

        async def assign(code: str) -> User:
            try:
                async with db.begin_nested():
                    user.student_code = code
            except IntegrityError as e:
                if UserService._violates_student_code_index(e):
                    raise StudentCodeConflict(code) from e
                raise
            return user

        await service.allocate_with_retry(assign)
        logger.info("Student code allocated", extra={"user_id": str(user.id), "student_code": user.student_code})
        return user

    @staticmethod
    async def create_user(db: AsyncSession, user_in: UserCreate, auto_commit: bool = True) -> User:
        """
        Register a user already created in Firebase Authentication.

        Students receive the next free student code in the same insert. A
        student registered with status ``potential`` also gets a lead on the
        waiting list; failing to create the lead does not fail registration.

        Raises:
            ValueError: Duplicate email, username or Firebase UID
            StudentCodeConflict: Code allocation kept colliding
        """
        await UserService._ensure_unique_identity(
            db,
            email=user_in.email,
            username=user_in.username,
            firebase_uid=user_in.firebase_uid,
        )

        values = user_in.model_dump(exclude={"password"})
        values["hashed_password"] = get_password_hash(user_in.password) if user_in.password else None

        if user_in.role == UserRole.STUDENT:
            user = await UserService.create_student_with_code(db, values)
        else:
            user = await UserService._insert_user(db, values)

        if auto_commit:
            await db.commit()
            await db.refresh(user)

        if user.is_student and user.status == UserStatus.POTENTIAL:
            from app.services.admissions_service import AdmissionsService

            await AdmissionsService.create_lead_for_registration(db, user)

        logger.info("User registered", extra={"user_id": str(user.id), "role": UserRole(user.role).value})
        return user

    @staticmethod
    async def update_user(db: AsyncSession, user: User, updates: Dict[str, Any]) -> User:
        """
        Apply a partial update.

        A user becoming a student is allocated a code; one leaving the
        student role gives its code back.
        """
        await UserService._ensure_unique_identity(
            db,
            email=updates.get("email"),
            username=updates.get("username"),
            exclude_id=user.id,
        )

        old_role = UserRole(user.role)
        for field, value in updates.items():
            setattr(user, field, value)
        new_role = UserRole(user.role)
        await db.flush()

        if old_role != UserRole.STUDENT and new_role == UserRole.STUDENT and not user.student_code:
            await UserService.assign_student_code(db, user)
        elif old_role == UserRole.STUDENT and new_role != UserRole.STUDENT:
            user.student_code = None

        await db.commit()
        await db.refresh(user)
        return user

    @staticmethod
    async def delete_user(db: AsyncSession, user: User) -> None:
        """Delete a user. Last admin is protected. A student's code becomes reusable."""
        if user.is_admin and await UserService.count_admins(db) <= 1:
            raise ValueError("Cannot delete the last admin")
        await db.delete(user)
        await db.commit()
        logger.info("User deleted", extra={"user_id": str(user.id), "student_code": user.student_code})

    @staticmethod
    async def count_admins(db: AsyncSession) -> int:
        result = await db.execute(select(func.count()).select_from(User).where(User.role == UserRole.ADMIN))
        return result.scalar_one()

    @staticmethod
    async def set_password(db: AsyncSession, user: User, new_password: str) -> None:
        user.hashed_password = get_password_hash(new_password)
        await db.commit()

    @staticmethod
    async def change_password(db: AsyncSession, user: User, current_password: str, new_password: str) -> bool:
        if not verify_password(current_password, user.hashed_password):
            return False
        await UserService.set_password(db, user, new_password)
        return True

    @staticmethod
    async def authenticate_user(db: AsyncSession, email: str, password: str) -> Optional[User]:
        """Local email/password login; None on unknown email or bad password"""
        user = await UserService.get_user_by_email(db, email)
        if not user or not verify_password(password, user.hashed_password):
            return None
        return user

    @staticmethod
    async def link_firebase_uid(db: AsyncSession, user: User, firebase_uid: str) -> User:
        """
        Attach a Firebase UID to a user row.

        Raises:
            ValueError: The UID belongs to another user, or this user is already
                linked to a different UID
        """
        if user.firebase_uid == firebase_uid:
            return user
        if user.firebase_uid:
            raise ValueError("User is already linked to a different Firebase account")
        await UserService._ensure_unique_identity(db, firebase_uid=firebase_uid, exclude_id=user.id)
        user.firebase_uid = firebase_uid
        await db.commit()
        await db.refresh(user)
        logger.info("Firebase account linked", extra={"user_id": str(user.id)})
        return user

    @staticmethod
    async def resolve_firebase_user(db: AsyncSession, claims: Dict[str, Any]) -> Optional[User]:
        """
        Find the user for verified Firebase token claims.

        Looks up by UID first, then by email; an email match is linked to the
        UID so later logins hit the first lookup.
        """
        uid = claims.get("uid") or claims.get("sub")
        if not uid:
            return None
        user = await UserService.get_user_by_firebase_uid(db, uid)
        if user:
            return user

        email = claims.get("email")
        if not email:
            return None
        user = await UserService.get_user_by_email(db, email)
        if user is None:
            return None
        return await UserService.link_firebase_uid(db, user, uid)
