"""Centralized Enum Definitions"""

import enum


# Users & Authentication
class UserRole(str, enum.Enum):
    """User roles for RBAC (students < staff < teachers < admin)"""
    STUDENT = "student"
    STAFF = "staff"
    TEACHER = "teacher"
    ADMIN = "admin"


class UserStatus(str, enum.Enum):
    """Lifecycle of a user account; only ACTIVE and STUDYING accounts may log in"""
    ACTIVE = "active"
    POTENTIAL = "potential"
    CONTACTED = "contacted"
    STUDYING = "studying"
    POSTPONED = "postponed"
    OFF = "off"
    ALUMNI = "alumni"


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


# Assessment
class Skill(str, enum.Enum):
    """Language skill an assignment targets"""
    READING = "reading"
    WRITING = "writing"
    LISTENING = "listening"
    SPEAKING = "speaking"
    GRAMMAR = "grammar"
    VOCABULARY = "vocabulary"


# Admissions
class EnglishLevel(str, enum.Enum):
    BEGINNER = "beginner"
    ELEMENTARY = "elementary"
    PRE_INTERMEDIATE = "pre-intermediate"
    INTERMEDIATE = "intermediate"
    UPPER_INTERMEDIATE = "upper-intermediate"
    ADVANCED = "advanced"


class LeadSource(str, enum.Enum):
    """How a potential student found the school"""
    WEBSITE = "website"
    REFERRAL = "referral"
    SOCIAL_MEDIA = "social_media"
    WALK_IN = "walk_in"
    ADMIN_REGISTRATION = "admin_registration"
    OTHER = "other"


class LeadStatus(str, enum.Enum):
    PENDING = "pending"
    CONTACTED = "contacted"
    INTERVIEWED = "interviewed"
    APPROVED = "approved"
    REJECTED = "rejected"
    ENROLLED = "enrolled"


# Records & audit
class RecordAction(str, enum.Enum):
    """Student activity record types"""
    ENROLLMENT = "enrollment"
    CLASS_ASSIGNMENT = "class_assignment"
    CLASS_REMOVAL = "class_removal"
    GRADE_UPDATE = "grade_update"
    ATTENDANCE = "attendance"
    PAYMENT = "payment"
    WITHDRAWAL = "withdrawal"
    RE_ENROLLMENT = "re_enrollment"
    PROFILE_UPDATE = "profile_update"
    STATUS_CHANGE = "status_change"
    NOTE_ADDED = "note_added"
    TEST_RESULT = "test_result"


class RecordCategory(str, enum.Enum):
    ACADEMIC = "academic"
    ADMINISTRATIVE = "administrative"
    FINANCIAL = "financial"
    ATTENDANCE = "attendance"
    ASSESSMENT = "assessment"


class ChangeAction(str, enum.Enum):
    """Audit log verbs"""
    ADD = "add"
    EDIT = "edit"
    DELETE = "delete"
    ASSIGN = "assign"
    REASSIGN = "reassign"


class EntityType(str, enum.Enum):
    """Audit log subjects"""
    CLASS = "class"
    LEVEL = "level"
    STUDENT = "student"
    USER = "user"
    ASSIGNMENT = "assignment"
    POTENTIAL_STUDENT = "potential_student"
