"""User & Authentication Model"""

from sqlalchemy import Column, Index, String, Text
from sqlalchemy.orm import relationship

from app.models.base import BaseModel, pg_enum
from app.models.enums import Gender, UserRole, UserStatus

STUDENT_CODE_INDEX = "ix_users_student_code"
LOGIN_STATUSES = frozenset({UserStatus.ACTIVE, UserStatus.STUDYING})


class User(BaseModel):
    """
    Unified user model for every role (admin, teacher, staff, student).

    Each row carries both its internal UUID and, once linked, the Firebase
    Authentication UID of the same person. Students additionally own at most
    one student code (``SU-NNN``), unique across the table.
    """
    __tablename__ = "users"

    # Identity
    firebase_uid = Column(String(128), unique=True, nullable=True, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=True)

    # Personal information
    name = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=True)
    english_name = Column(String(255), nullable=True)
    gender = Column(pg_enum(Gender, "gender"), nullable=True)
    dob = Column(String(20), nullable=True)
    phone = Column(String(50), nullable=True)
    parent_name = Column(String(255), nullable=True)
    parent_phone = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    # Role & lifecycle
    role = Column(pg_enum(UserRole, "user_role"), nullable=False, default=UserRole.STUDENT, index=True)
    status = Column(pg_enum(UserStatus, "user_status"), nullable=False, default=UserStatus.POTENTIAL, index=True)
    student_code = Column(String(20), nullable=True)

    # Relationships
    taught_classes = relationship("Class", back_populates="teacher")
    enrolled_classes = relationship(
        "Class",
        secondary="class_students",
        back_populates="students",
    )
    submissions = relationship(
        "Submission",
        back_populates="student",
        foreign_keys="Submission.student_id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index(
            STUDENT_CODE_INDEX,
            "student_code",
            unique=True,
            postgresql_where=student_code.isnot(None),
        ),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_teacher(self) -> bool:
        return self.role == UserRole.TEACHER

    @property
    def is_staff(self) -> bool:
        return self.role == UserRole.STAFF

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT

    @property
    def is_active(self) -> bool:
        """Active staff and enrolled students may authenticate"""
        return self.status in LOGIN_STATUSES

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
