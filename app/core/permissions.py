"""Role hierarchy and capability flags"""

from typing import Dict

from app.models.enums import UserRole

_BASE_FLAGS = {
    "can_manage_users": False,
    "can_manage_classes": False,
    "can_manage_levels": False,
    "can_manage_assignments": False,
    "can_view_all_data": False,
    "can_delete_data": False,
    "can_manage_system": False,
    "can_grade_submissions": False,
    "can_submit_assignments": False,
    "can_view_own_data": False,
    "can_view_own_classes": False,
    "can_view_own_students": False,
}

ROLE_PERMISSIONS: Dict[UserRole, Dict[str, bool]] = {
    UserRole.ADMIN: {flag: True for flag in _BASE_FLAGS},
    UserRole.STAFF: {
        **_BASE_FLAGS,
        "can_manage_users": True,
        "can_manage_classes": True,
        "can_manage_levels": True,
        "can_manage_assignments": True,
        "can_view_all_data": True,
    },
    UserRole.TEACHER: {
        **_BASE_FLAGS,
        "can_manage_assignments": True,
        "can_grade_submissions": True,
        "can_view_own_classes": True,
        "can_view_own_students": True,
    },
    UserRole.STUDENT: {
        **_BASE_FLAGS,
        "can_submit_assignments": True,
        "can_view_own_data": True,
        "can_view_own_classes": True,
    },
}

# Roles each role may see and manage (besides itself)
MANAGEABLE_ROLES: Dict[UserRole, frozenset] = {
    UserRole.ADMIN: frozenset(UserRole),
    UserRole.TEACHER: frozenset({UserRole.STUDENT, UserRole.STAFF}),
    UserRole.STAFF: frozenset({UserRole.STUDENT}),
    UserRole.STUDENT: frozenset(),
}


def permissions_for(role: UserRole) -> Dict[str, bool]:
    return dict(ROLE_PERMISSIONS.get(UserRole(role), _BASE_FLAGS))


def can_manage(actor_role: UserRole, target_role: UserRole) -> bool:
    """Whether a user with ``actor_role`` may edit or delete a ``target_role`` user"""
    return UserRole(target_role) in MANAGEABLE_ROLES[UserRole(actor_role)]
