"""Assessment Service - assignments and submissions"""

from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.models.academic import Class
from app.models.assessment import Assignment, Submission
from app.models.user import User
from app.schemas.assessment import AssignmentCreate
from app.utils.time import get_utc_now

logger = get_logger(__name__)


class AssessmentService:

    # --- Assignments ---

    @staticmethod
    def _assignment_query():
        return select(Assignment).options(selectinload(Assignment.classes))

    @staticmethod
    async def list_assignments(db: AsyncSession) -> List[Assignment]:
        result = await db.execute(AssessmentService._assignment_query().order_by(Assignment.due_date.desc()))
        return list(result.scalars().all())

    @staticmethod
    async def get_assignment(db: AsyncSession, assignment_id: UUID) -> Optional[Assignment]:
        result = await db.execute(AssessmentService._assignment_query().where(Assignment.id == assignment_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_class_assignments(db: AsyncSession, class_id: UUID) -> List[Assignment]:
        result = await db.execute(
            AssessmentService._assignment_query()
            .where(Assignment.classes.any(Class.id == class_id))
            .order_by(Assignment.due_date.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_student_assignments(db: AsyncSession, student_id: UUID) -> List[Assignment]:
        """Assignments set for any active class the student is enrolled in"""
        result = await db.execute(
            AssessmentService._assignment_query()
            .where(
                Assignment.classes.any(
                    (Class.is_active.is_(True)) & Class.students.any(User.id == student_id)
                )
            )
            .order_by(Assignment.due_date.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def _load_classes(db: AsyncSession, class_ids: List[UUID]) -> List[Class]:
        result = await db.execute(select(Class).where(Class.id.in_(class_ids)))
        classes = list(result.scalars().all())
        if len(classes) != len(set(class_ids)):
            raise ValueError("One or more classes not found")
        return classes

    @staticmethod
    async def create_assignment(db: AsyncSession, assignment_in: AssignmentCreate, creator: User) -> Assignment:
        classes = await AssessmentService._load_classes(db, assignment_in.class_ids)
        if creator.is_teacher and any(c.teacher_id != creator.id for c in classes):
            raise PermissionError("Teachers can only set assignments for their own classes")

        assignment = Assignment(
            **assignment_in.model_dump(exclude={"class_ids"}),
            created_by=creator.id,
        )
        assignment.classes = classes
        db.add(assignment)
        await db.commit()
        return await AssessmentService.get_assignment(db, assignment.id)

    @staticmethod
    async def update_assignment(db: AsyncSession, assignment: Assignment, updates: Dict[str, Any]) -> Assignment:
        class_ids = updates.pop("class_ids", None)
        if class_ids is not None:
            assignment.classes = await AssessmentService._load_classes(db, class_ids)
        for field, value in updates.items():
            setattr(assignment, field, value)
        await db.commit()
        return await AssessmentService.get_assignment(db, assignment.id)

    @staticmethod
    async def delete_assignment(db: AsyncSession, assignment: Assignment) -> None:
        await db.delete(assignment)
        await db.commit()

    # --- Submissions ---

    @staticmethod
    async def list_submissions(db: AsyncSession) -> List[Submission]:
        result = await db.execute(select(Submission).order_by(Submission.submitted_at.desc()))
        return list(result.scalars().all())

    @staticmethod
    async def get_submission(db: AsyncSession, submission_id: UUID) -> Optional[Submission]:
        result = await db.execute(select(Submission).where(Submission.id == submission_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_assignment_submissions(db: AsyncSession, assignment_id: UUID) -> List[Submission]:
        result = await db.execute(
            select(Submission)
            .where(Submission.assignment_id == assignment_id)
            .order_by(Submission.submitted_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_student_submissions(db: AsyncSession, student_id: UUID) -> List[Submission]:
        result = await db.execute(
            select(Submission)
            .where(Submission.student_id == student_id)
            .order_by(Submission.submitted_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def submit(db: AsyncSession, student: User, assignment_id: UUID, content: str) -> Submission:
        """
        Record a student's answer.

        Raises:
            ValueError: Assignment missing or already submitted
        """
        if not await AssessmentService.get_assignment(db, assignment_id):
            raise ValueError("Assignment not found")

        submission = Submission(assignment_id=assignment_id, student_id=student.id, content=content)
        try:
            async with db.begin_nested():
                db.add(submission)
        except IntegrityError as e:
            raise ValueError("Assignment already submitted") from e
        await db.commit()
        await db.refresh(submission)
        return submission

    @staticmethod
    async def update_content(db: AsyncSession, submission: Submission, content: str) -> Submission:
        if submission.is_graded:
            raise ValueError("Graded submissions cannot be edited")
        submission.content = content
        submission.submitted_at = get_utc_now()
        await db.commit()
        await db.refresh(submission)
        return submission

    @staticmethod
    async def grade(
        db: AsyncSession, submission: Submission, grader: User, score: int, feedback: Optional[str]
    ) -> Optional[int]:
        """Set the score; returns the previous score (None if first grading)"""
        previous = submission.score
        submission.score = score
        submission.feedback = feedback
        submission.graded_by = grader.id
        submission.graded_at = get_utc_now()
        await db.flush()
        return previous

    @staticmethod
    async def delete_submission(db: AsyncSession, submission: Submission) -> None:
        await db.delete(submission)
        await db.commit()
