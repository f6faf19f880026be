"""Admissions Service - potential students (waiting list) and conversion"""

import re
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.core.security import get_password_hash
from app.models.admissions import PotentialStudent
from app.models.enums import (
    EnglishLevel,
    LeadSource,
    LeadStatus,
    RecordAction,
    RecordCategory,
    UserRole,
    UserStatus,
)
from app.models.user import User
from app.schemas.admissions import ConvertLead, PotentialStudentCreate
from app.utils.time import get_utc_now, start_of_month

logger = get_logger(__name__)

_USERNAME_CLEANUP = re.compile(r"[^a-z0-9._-]")


class AdmissionsService:

    @staticmethod
    async def list_leads(
        db: AsyncSession,
        status: Optional[LeadStatus] = None,
        assigned_to: Optional[UUID] = None,
        source: Optional[LeadSource] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[PotentialStudent], int]:
        conditions = []
        if status:
            conditions.append(PotentialStudent.status == status)
        if assigned_to:
            conditions.append(PotentialStudent.assigned_to == assigned_to)
        if source:
            conditions.append(PotentialStudent.source == source)

        total_result = await db.execute(
            select(func.count()).select_from(PotentialStudent).where(*conditions)
        )
        result = await db.execute(
            select(PotentialStudent)
            .where(*conditions)
            .order_by(PotentialStudent.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total_result.scalar_one()

    @staticmethod
    async def stats(db: AsyncSession) -> Dict[str, Any]:
        total = (await db.execute(select(func.count()).select_from(PotentialStudent))).scalar_one()
        this_month = (
            await db.execute(
                select(func.count())
                .select_from(PotentialStudent)
                .where(PotentialStudent.created_at >= start_of_month(get_utc_now()))
            )
        ).scalar_one()
        rows = await db.execute(
            select(PotentialStudent.status, func.count()).group_by(PotentialStudent.status)
        )
        by_status = {s.value: 0 for s in LeadStatus}
        for status, count in rows.all():
            by_status[LeadStatus(status).value] = count
        return {"total": total, "this_month": this_month, "by_status": by_status}

    @staticmethod
    async def get_lead(db: AsyncSession, lead_id: UUID) -> Optional[PotentialStudent]:
        result = await db.execute(select(PotentialStudent).where(PotentialStudent.id == lead_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_lead_by_email(db: AsyncSession, email: str) -> Optional[PotentialStudent]:
        result = await db.execute(select(PotentialStudent).where(PotentialStudent.email == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def create_lead(db: AsyncSession, lead_in: PotentialStudentCreate) -> PotentialStudent:
        if await AdmissionsService.get_lead_by_email(db, lead_in.email):
            raise ValueError("A potential student with this email already exists")
        lead = PotentialStudent(**lead_in.model_dump())
        db.add(lead)
        await db.commit()
        await db.refresh(lead)
        return lead

    @staticmethod
    async def create_lead_for_registration(db: AsyncSession, user: User) -> Optional[PotentialStudent]:
        """
        Put a newly registered potential student on the waiting list.

        Errors are logged and swallowed; registration has already succeeded.
        """
        try:
            if await AdmissionsService.get_lead_by_email(db, user.email):
                return None
            lead = PotentialStudent(
                name=user.name,
                english_name=user.english_name,
                email=user.email,
                phone=user.phone,
                gender=user.gender,
                dob=user.dob,
                parent_name=user.parent_name,
                parent_phone=user.parent_phone,
                english_level=EnglishLevel.BEGINNER,
                source=LeadSource.ADMIN_REGISTRATION,
                status=LeadStatus.PENDING,
                notes=user.notes or f"Created from registration. Student code: {user.student_code}",
            )
            async with db.begin_nested():
                db.add(lead)
            await db.commit()
            return lead
        except SQLAlchemyError as e:
            logger.warning(
                f"Could not create waiting-list entry for registered student: {e}",
                extra={"user_id": str(user.id)},
            )
            return None

    @staticmethod
    async def update_lead(db: AsyncSession, lead: PotentialStudent, updates: Dict[str, Any]) -> PotentialStudent:
        for field, value in updates.items():
            setattr(lead, field, value)
        await db.commit()
        await db.refresh(lead)
        return lead

    @staticmethod
    def apply_status(lead: PotentialStudent, status: LeadStatus, notes: Optional[str] = None) -> None:
        """
        Move a lead to ``status``, stamping the first contact and interview
        times and the enrolment time.
        """
        now = get_utc_now()
        lead.status = status
        if status == LeadStatus.CONTACTED and lead.contacted_at is None:
            lead.contacted_at = now
        elif status == LeadStatus.INTERVIEWED and lead.interviewed_at is None:
            lead.interviewed_at = now
        elif status == LeadStatus.ENROLLED:
            lead.enrolled_at = now
        if notes is not None:
            lead.notes = notes

    @staticmethod
    async def update_status(
        db: AsyncSession, lead: PotentialStudent, status: LeadStatus, notes: Optional[str] = None
    ) -> PotentialStudent:
        AdmissionsService.apply_status(lead, status, notes)
        await db.commit()
        await db.refresh(lead)
        return lead

    @staticmethod
    async def assign(db: AsyncSession, lead: PotentialStudent, assignee_id: UUID) -> PotentialStudent:
        assignee = await db.get(User, assignee_id)
        if not assignee or not assignee.is_teacher:
            raise ValueError("Potential students can only be assigned to teachers")
        lead.assigned_to = assignee.id
        await db.commit()
        await db.refresh(lead)
        return lead

    @staticmethod
    async def delete_lead(db: AsyncSession, lead: PotentialStudent) -> None:
        await db.delete(lead)
        await db.commit()

    @staticmethod
    async def _unique_username(db: AsyncSession, wanted: str) -> str:
        base = _USERNAME_CLEANUP.sub("", wanted.lower()) or "student"
        candidate = base
        suffix = 1
        while (await db.execute(select(User.id).where(User.username == candidate))).first():
            suffix += 1
            candidate = f"{base}{suffix}"
        return candidate

    @staticmethod
    async def convert(
        db: AsyncSession,
        lead: PotentialStudent,
        convert_in: ConvertLead,
        performed_by: User,
    ) -> User:
        """
        Turn a lead into an active student account with a student code.

        A lead created by self-registration already has a student account
        with the same email; that student is activated instead. New accounts
        have no Firebase UID yet and are linked on the student's first
        Firebase sign-in with the same email.

        Raises:
            ValueError: Lead already converted, or its email belongs to a
                non-student user
            StudentCodeConflict: Code allocation kept colliding
        """
        from app.services.academic_service import AcademicService
        from app.services.record_service import RecordService
        from app.services.user_service import UserService

        if lead.status == LeadStatus.ENROLLED or lead.converted_user_id:
            raise ValueError("Potential student already converted")
        existing = await UserService.get_user_by_email(db, lead.email)
        if existing and not existing.is_student:
            raise ValueError("A user with this email already exists")

        cls = None
        if convert_in.class_id:
            cls = await AcademicService.get_class(db, convert_in.class_id)
            if not cls:
                raise ValueError("Class not found")

        if existing:
            student = existing
            student.status = UserStatus.ACTIVE
            if not student.student_code:
                student = await UserService.assign_student_code(db, student)
        else:
            username = await AdmissionsService._unique_username(
                db, convert_in.username or lead.email.split("@")[0]
            )
            values = {
                "username": username,
                "email": lead.email,
                "hashed_password": get_password_hash(convert_in.password) if convert_in.password else None,
                "name": lead.name,
                "english_name": lead.english_name,
                "gender": lead.gender,
                "dob": lead.dob,
                "phone": lead.phone,
                "parent_name": lead.parent_name,
                "parent_phone": lead.parent_phone,
                "notes": lead.notes,
                "role": UserRole.STUDENT,
                "status": UserStatus.ACTIVE,
            }
            student = await UserService.create_student_with_code(db, values)

        AdmissionsService.apply_status(lead, LeadStatus.ENROLLED)
        lead.converted_user_id = student.id

        await RecordService.add_record(
            db,
            student=student,
            action=RecordAction.ENROLLMENT,
            category=RecordCategory.ADMINISTRATIVE,
            performed_by=performed_by,
            details={
                "program": ", ".join(lead.interested_programs or []) or None,
                "student_code": student.student_code,
                "potential_student_id": str(lead.id),
            },
        )
        if cls is not None:
            await AcademicService.add_student(db, cls, student.id)
            await RecordService.add_record(
                db,
                student=student,
                action=RecordAction.CLASS_ASSIGNMENT,
                category=RecordCategory.ACADEMIC,
                performed_by=performed_by,
                details={"class_name": cls.name},
                related_class_id=cls.id,
            )

        await db.commit()
        await db.refresh(student)
        logger.info(
            "Potential student converted",
            extra={"potential_student_id": str(lead.id), "user_id": str(student.id), "student_code": student.student_code},
        )
        return student
