"""Unit tests for role permissions and the management hierarchy."""

import pytest

from app.core.permissions import can_manage, permissions_for
from app.models.enums import UserRole


def test_admin_has_every_flag():
    flags = permissions_for(UserRole.ADMIN)
    assert flags
    assert all(flags.values())


def test_student_flags():
    flags = permissions_for(UserRole.STUDENT)
    assert flags["can_submit_assignments"]
    assert flags["can_view_own_data"]
    assert not flags["can_manage_users"]
    assert not flags["can_manage_system"]


def test_teacher_grades_but_does_not_manage_system():
    flags = permissions_for(UserRole.TEACHER)
    assert flags["can_grade_submissions"]
    assert flags["can_manage_assignments"]
    assert not flags["can_manage_system"]
    assert not flags["can_delete_data"]


def test_permissions_for_returns_copy():
    permissions_for(UserRole.STAFF)["can_manage_system"] = True
    assert not permissions_for(UserRole.STAFF)["can_manage_system"]


def test_permissions_for_accepts_role_value():
    assert permissions_for("staff") == permissions_for(UserRole.STAFF)


@pytest.mark.parametrize(
    "actor,target,allowed",
    [
        (UserRole.ADMIN, UserRole.ADMIN, True),
        (UserRole.ADMIN, UserRole.TEACHER, True),
        (UserRole.TEACHER, UserRole.STUDENT, True),
        (UserRole.TEACHER, UserRole.STAFF, True),
        (UserRole.TEACHER, UserRole.TEACHER, False),
        (UserRole.TEACHER, UserRole.ADMIN, False),
        (UserRole.STAFF, UserRole.STUDENT, True),
        (UserRole.STAFF, UserRole.TEACHER, False),
        (UserRole.STUDENT, UserRole.STUDENT, False),
    ],
)
def test_can_manage(actor, target, allowed):
    assert can_manage(actor, target) is allowed
