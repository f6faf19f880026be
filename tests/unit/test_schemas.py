"""Unit tests for request and response schemas."""

from datetime import date, datetime, timezone
from uuid import uuid4

import pytest
from pydantic import ValidationError

from app.models.enums import Skill, UserRole, UserStatus
from app.schemas.academic import LevelCreate, LevelUpdate
from app.schemas.admissions import PotentialStudentCreate
from app.schemas.assessment import AssignmentCreate, SubmissionGrade
from app.schemas.responses import PaginationMeta
from app.schemas.user import UserCreate, UserRegistrationResponse, UserResponse


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def _user_payload(**overrides):
    payload = {
        "firebase_uid": "fb-123",
        "email": "Jane.Doe@Example.com",
        "name": "Jane Doe",
        "username": "  janedoe  ",
    }
    payload.update(overrides)
    return payload


def test_user_create_defaults_to_potential_student():
    user = UserCreate(**_user_payload())
    assert user.role == UserRole.STUDENT
    assert user.status == UserStatus.POTENTIAL
    assert user.password is None


def test_user_create_normalizes_email_and_username():
    user = UserCreate(**_user_payload())
    assert user.email == "jane.doe@example.com"
    assert user.username == "janedoe"


def test_user_create_requires_firebase_uid():
    payload = _user_payload()
    del payload["firebase_uid"]
    with pytest.raises(ValidationError):
        UserCreate(**payload)


def test_user_create_rejects_short_password():
    with pytest.raises(ValidationError):
        UserCreate(**_user_payload(password="short"))


def test_user_create_has_no_student_code_field():
    """Codes are always allocated server-side."""
    user = UserCreate(**_user_payload(student_code="SU-999"))
    assert "student_code" not in user.model_dump()


class _StudentRow:
    id = uuid4()
    firebase_uid = "fb-1"
    username = "stud"
    email = "s@example.com"
    name = "Stu Dent"
    display_name = None
    english_name = "Stu"
    gender = None
    dob = None
    phone = None
    parent_name = None
    parent_phone = None
    notes = None
    role = UserRole.STUDENT
    status = UserStatus.ACTIVE
    student_code = "SU-004"
    created_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    updated_at = datetime(2024, 1, 2, tzinfo=timezone.utc)


def test_user_response_from_orm_like_object():
    resp = UserResponse.model_validate(_StudentRow())
    assert resp.student_code == "SU-004"
    assert resp.role == UserRole.STUDENT


def test_registration_response_sends_student_code_as_camel_case():
    resp = UserRegistrationResponse.model_validate(_StudentRow())
    body = resp.model_dump(mode="json", by_alias=True)
    assert body["studentCode"] == "SU-004"
    assert "student_code" not in body
    # FastAPI re-validates the dumped body against the response model
    assert UserRegistrationResponse.model_validate(body).student_code == "SU-004"


# ---------------------------------------------------------------------------
# Levels, assignments, leads
# ---------------------------------------------------------------------------

def test_level_code_upper_cased():
    level = LevelCreate(name="  Beginner 1 ", code=" b1 ")
    assert level.code == "B1"
    assert level.name == "Beginner 1"


def test_level_update_code_optional():
    assert LevelUpdate(description="x").code is None
    assert LevelUpdate(code="a2").code == "A2"


def test_assignment_requires_a_class():
    with pytest.raises(ValidationError):
        AssignmentCreate(title="Essay", skill=Skill.WRITING, level="B1", due_date=date(2030, 1, 1), class_ids=[])


def test_assignment_valid():
    a = AssignmentCreate(
        title="Essay", skill="writing", level="B1", due_date="2030-01-01", class_ids=[str(uuid4())]
    )
    assert a.skill == Skill.WRITING
    assert a.due_date == date(2030, 1, 1)


@pytest.mark.parametrize("score", [-1, 101])
def test_submission_grade_range(score):
    with pytest.raises(ValidationError):
        SubmissionGrade(score=score)


def test_submission_grade_bounds_accepted():
    assert SubmissionGrade(score=0).score == 0
    assert SubmissionGrade(score=100, feedback="Great").feedback == "Great"


def test_potential_student_email_lower_cased():
    lead = PotentialStudentCreate(name="Lead", email="LEAD@Example.com")
    assert lead.email == "lead@example.com"
    assert lead.interested_programs == []


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "total,page_size,pages",
    [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (95, 50, 2)],
)
def test_pagination_meta_total_pages(total, page_size, pages):
    meta = PaginationMeta.build(page=1, page_size=page_size, total=total)
    assert meta.total_pages == pages
