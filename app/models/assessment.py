from sqlalchemy import Column, String, Text, Table, ForeignKey, DateTime, Date, Integer, UniqueConstraint, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.database import Base
from app.models.base import BaseModel, pg_enum
from app.models.enums import Skill
from app.utils.time import get_utc_now


class Assignment(BaseModel):
    """Homework set by a teacher or admin for one or more classes"""
    __tablename__ = "assignments"

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    skill = Column(pg_enum(Skill, "skill"), nullable=False)
    level = Column(String(100), nullable=False)
    due_date = Column(Date, nullable=False)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    classes = relationship(
        "Class",
        secondary="assignment_classes",
        back_populates="assignments",
    )
    submissions = relationship("Submission", back_populates="assignment", cascade="all, delete-orphan")

    @property
    def class_ids(self):
        return [c.id for c in self.classes]

    def __repr__(self) -> str:
        return f"<Assignment {self.title}>"


assignment_classes = Table(
    "assignment_classes",
    Base.metadata,
    Column("assignment_id", UUID(as_uuid=True), ForeignKey("assignments.id", ondelete="CASCADE"), primary_key=True),
    Column("class_id", UUID(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
)


class Submission(BaseModel):
    """
    A student's answer to an assignment.
    One per (assignment, student); ungraded until a teacher sets a score.
    """
    __tablename__ = "submissions"

    assignment_id = Column(UUID(as_uuid=True), ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    submitted_at = Column(DateTime, default=get_utc_now, nullable=False)

    score = Column(Integer, nullable=True)
    feedback = Column(Text, nullable=True)
    graded_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    graded_at = Column(DateTime, nullable=True)

    assignment = relationship("Assignment", back_populates="submissions")
    student = relationship("User", back_populates="submissions", foreign_keys=[student_id])

    __table_args__ = (
        UniqueConstraint("assignment_id", "student_id", name="uq_submission_assignment_student"),
        CheckConstraint("score IS NULL OR (score >= 0 AND score <= 100)", name="ck_submission_score_range"),
    )

    @property
    def is_graded(self) -> bool:
        return self.score is not None
