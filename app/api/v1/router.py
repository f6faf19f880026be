"""API V1 Router"""

from fastapi import APIRouter

# Import endpoint routers
from app.api.v1.endpoints import (
    auth, users, admin, levels, classes,
    assignments, submissions, potential_students,
    student_records, change_logs
)

# Create API v1 router
api_router = APIRouter()

# Include endpoint routers with prefixes and tags
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin Maintenance"])
api_router.include_router(levels.router, prefix="/levels", tags=["Levels"])
api_router.include_router(classes.router, prefix="/classes", tags=["Classes"])
api_router.include_router(assignments.router, prefix="/assignments", tags=["Assignments"])
api_router.include_router(submissions.router, prefix="/submissions", tags=["Submissions"])
api_router.include_router(potential_students.router, prefix="/potential-students", tags=["Potential Students"])
api_router.include_router(student_records.router, prefix="/student-records", tags=["Student Records"])
api_router.include_router(change_logs.router, prefix="/change-logs", tags=["Change Logs"])
