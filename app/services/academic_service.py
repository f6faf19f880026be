"""Academic Service - levels and classes"""

from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlalchemy import select, func, or_
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.models.academic import Level, Class
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.academic import ClassCreate, LevelCreate

logger = get_logger(__name__)


class AcademicService:

    # --- Levels ---

    @staticmethod
    async def list_levels(db: AsyncSession, include_inactive: bool = False) -> List[Level]:
        query = select(Level)
        if not include_inactive:
            query = query.where(Level.is_active.is_(True))
        result = await db.execute(query.order_by(Level.name))
        return list(result.scalars().all())

    @staticmethod
    async def get_level(db: AsyncSession, level_id: UUID) -> Optional[Level]:
        result = await db.execute(select(Level).where(Level.id == level_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def _ensure_level_unique(
        db: AsyncSession, name: Optional[str], code: Optional[str], exclude_id: Optional[UUID] = None
    ) -> None:
        """Names and codes are unique ignoring case"""
        conditions = []
        if name:
            conditions.append(func.lower(Level.name) == name.lower())
        if code:
            conditions.append(func.upper(Level.code) == code.upper())
        if not conditions:
            return
        query = select(Level).where(or_(*conditions))
        if exclude_id:
            query = query.where(Level.id != exclude_id)
        result = await db.execute(query.limit(1))
        if result.scalar_one_or_none():
            raise ValueError("Level name or code already exists")

    @staticmethod
    async def create_level(db: AsyncSession, level_in: LevelCreate) -> Level:
        await AcademicService._ensure_level_unique(db, level_in.name, level_in.code)
        level = Level(name=level_in.name, code=level_in.code, description=level_in.description)
        db.add(level)
        await db.commit()
        await db.refresh(level)
        return level

    @staticmethod
    async def update_level(db: AsyncSession, level: Level, updates: Dict[str, Any]) -> Level:
        await AcademicService._ensure_level_unique(db, updates.get("name"), updates.get("code"), exclude_id=level.id)
        for field, value in updates.items():
            setattr(level, field, value)
        await db.commit()
        await db.refresh(level)
        return level

    @staticmethod
    async def deactivate_level(db: AsyncSession, level: Level) -> None:
        level.deactivate()
        await db.commit()

    # --- Classes ---

    @staticmethod
    def _class_query():
        return select(Class).options(selectinload(Class.students), selectinload(Class.teacher))

    @staticmethod
    async def list_classes(db: AsyncSession, teacher_id: Optional[UUID] = None) -> List[Class]:
        query = AcademicService._class_query().where(Class.is_active.is_(True))
        if teacher_id:
            query = query.where(Class.teacher_id == teacher_id)
        result = await db.execute(query.order_by(Class.name))
        return list(result.scalars().all())

    @staticmethod
    async def get_class(db: AsyncSession, class_id: UUID) -> Optional[Class]:
        result = await db.execute(AcademicService._class_query().where(Class.id == class_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_student_classes(db: AsyncSession, student_id: UUID) -> List[Class]:
        result = await db.execute(
            AcademicService._class_query()
            .where(Class.is_active.is_(True), Class.students.any(User.id == student_id))
            .order_by(Class.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def _load_students(db: AsyncSession, student_ids: List[UUID]) -> List[User]:
        if not student_ids:
            return []
        result = await db.execute(
            select(User).where(User.id.in_(student_ids), User.role == UserRole.STUDENT)
        )
        students = list(result.scalars().all())
        if len(students) != len(set(student_ids)):
            raise ValueError("One or more students not found")
        return students

    @staticmethod
    async def _validate_teacher(db: AsyncSession, teacher_id: Optional[UUID]) -> None:
        if teacher_id is None:
            return
        teacher = await db.get(User, teacher_id)
        if not teacher or UserRole(teacher.role) not in (UserRole.TEACHER, UserRole.ADMIN):
            raise ValueError("Teacher not found")

    @staticmethod
    async def _validate_level(db: AsyncSession, level_id: Optional[UUID]) -> None:
        if level_id is not None and not await AcademicService.get_level(db, level_id):
            raise ValueError("Level not found")

    @staticmethod
    async def create_class(db: AsyncSession, class_in: ClassCreate, owner: User) -> Class:
        """
        Create a class. Teachers always own what they create; admins may name
        another teacher.
        """
        teacher_id = owner.id if owner.is_teacher or class_in.teacher_id is None else class_in.teacher_id
        await AcademicService._validate_teacher(db, teacher_id)
        await AcademicService._validate_level(db, class_in.level_id)
        students = await AcademicService._load_students(db, class_in.student_ids)

        new_class = Class(
            name=class_in.name,
            level_id=class_in.level_id,
            description=class_in.description,
            teacher_id=teacher_id,
        )
        new_class.students = students
        db.add(new_class)
        await db.commit()
        return await AcademicService.get_class(db, new_class.id)

    @staticmethod
    async def update_class(db: AsyncSession, cls: Class, updates: Dict[str, Any]) -> Class:
        if "teacher_id" in updates:
            await AcademicService._validate_teacher(db, updates["teacher_id"])
        if "level_id" in updates:
            await AcademicService._validate_level(db, updates["level_id"])
        for field, value in updates.items():
            setattr(cls, field, value)
        await db.commit()
        return await AcademicService.get_class(db, cls.id)

    @staticmethod
    async def deactivate_class(db: AsyncSession, cls: Class) -> None:
        cls.deactivate()
        await db.commit()

    @staticmethod
    async def add_student(db: AsyncSession, cls: Class, student_id: UUID) -> Optional[User]:
        """
        Enrol a student. Returns the student, or None if already enrolled.

        Raises:
            ValueError: Unknown user or not a student
        """
        students = await AcademicService._load_students(db, [student_id])
        student = students[0]
        if any(s.id == student.id for s in cls.students):
            return None
        cls.students.append(student)
        await db.flush()
        return student

    @staticmethod
    async def remove_student(db: AsyncSession, cls: Class, student_id: UUID) -> Optional[User]:
        for student in cls.students:
            if student.id == student_id:
                cls.students.remove(student)
                await db.flush()
                return student
        return None

    @staticmethod
    def is_owner(cls: Class, user: User) -> bool:
        return cls.teacher_id == user.id
