from sqlalchemy import Column, String, Text, Table, ForeignKey, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.database import Base
from app.models.base import BaseModel, StatusMixin
from app.utils.time import get_utc_now


class Level(BaseModel, StatusMixin):
    """
    Course level (e.g. Starters, Movers, KET, IELTS).
    Deleting a level only deactivates it.
    """
    __tablename__ = "levels"

    name = Column(String(100), unique=True, nullable=False)
    code = Column(String(20), unique=True, nullable=False)
    description = Column(Text, nullable=False, default="")

    classes = relationship("Class", back_populates="level")

    def __repr__(self) -> str:
        return f"<Level {self.code}>"


class Class(BaseModel, StatusMixin):
    """
    A taught group of students. Owned by the teacher who created it
    (or the teacher an admin assigns).
    """
    __tablename__ = "classes"

    name = Column(String(255), nullable=False)
    level_id = Column(UUID(as_uuid=True), ForeignKey("levels.id", ondelete="SET NULL"), nullable=True, index=True)
    description = Column(Text, nullable=False, default="")
    teacher_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    level = relationship("Level", back_populates="classes")
    teacher = relationship("User", back_populates="taught_classes")
    students = relationship(
        "User",
        secondary="class_students",
        back_populates="enrolled_classes",
    )
    assignments = relationship(
        "Assignment",
        secondary="assignment_classes",
        back_populates="classes",
    )

    @property
    def student_ids(self):
        return [s.id for s in self.students]

    def __repr__(self) -> str:
        return f"<Class {self.name}>"


class_students = Table(
    "class_students",
    Base.metadata,
    Column("class_id", UUID(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
    Column("student_id", UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("joined_at", DateTime, default=get_utc_now, nullable=False),
)
