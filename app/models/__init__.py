"""Models Package - Export all models for easy imports"""

from app.models.base import BaseModel, StatusMixin
from app.models.enums import *
from app.models.user import User
from app.models.academic import Level, Class, class_students
from app.models.assessment import Assignment, Submission, assignment_classes
from app.models.admissions import PotentialStudent
from app.models.records import StudentRecord, ChangeLog


__all__ = [
    # Base classes
    "BaseModel",
    "StatusMixin",

    # User
    "User",

    # Academic
    "Level",
    "Class",
    "class_students",

    # Assessment
    "Assignment",
    "Submission",
    "assignment_classes",

    # Admissions
    "PotentialStudent",

    # Records
    "StudentRecord",
    "ChangeLog",
]
