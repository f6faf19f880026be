from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.assessment import Submission
from app.models.enums import RecordAction, RecordCategory
from app.models.user import User
from app.services.assessment_service import AssessmentService
from app.services.record_service import RecordService
from app.services.user_service import UserService
from app.schemas.assessment import SubmissionCreate, SubmissionGrade, SubmissionResponse, SubmissionUpdate
from app.schemas.responses import SuccessResponse

router = APIRouter()


async def _get_submission_or_404(db: AsyncSession, submission_id: UUID) -> Submission:
    submission = await AssessmentService.get_submission(db, submission_id)
    if not submission:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found")
    return submission


@router.get("", response_model=SuccessResponse[List[SubmissionResponse]])
async def list_submissions(
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    return SuccessResponse(data=await AssessmentService.list_submissions(db))


@router.get("/assignment/{assignment_id}", response_model=SuccessResponse[List[SubmissionResponse]])
async def get_assignment_submissions(
    assignment_id: UUID,
    current_user: User = Depends(deps.require_staff),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    return SuccessResponse(data=await AssessmentService.get_assignment_submissions(db, assignment_id))


@router.get("/student/{student_id}", response_model=SuccessResponse[List[SubmissionResponse]])
async def get_student_submissions(
    student_id: UUID,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    if current_user.is_student and current_user.id != student_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")
    return SuccessResponse(data=await AssessmentService.get_student_submissions(db, student_id))


@router.post("", response_model=SuccessResponse[SubmissionResponse], status_code=status.HTTP_201_CREATED)
async def create_submission(
    submission_in: SubmissionCreate,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """Students submit once per assignment."""
    if not current_user.is_student:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only students can submit assignments")
    try:
        submission = await AssessmentService.submit(db, current_user, submission_in.assignment_id, submission_in.content)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return SuccessResponse(data=submission, message="Submission received")


@router.put("/{submission_id}", response_model=SuccessResponse[SubmissionResponse])
async def update_submission(
    submission_id: UUID,
    submission_in: SubmissionUpdate,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    submission = await _get_submission_or_404(db, submission_id)
    if submission.student_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only edit your own submissions")
    try:
        submission = await AssessmentService.update_content(db, submission, submission_in.content)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return SuccessResponse(data=submission, message="Submission updated")


@router.put("/{submission_id}/grade", response_model=SuccessResponse[SubmissionResponse])
async def grade_submission(
    submission_id: UUID,
    grade_in: SubmissionGrade,
    request: Request,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    submission = await _get_submission_or_404(db, submission_id)
    previous = await AssessmentService.grade(db, submission, current_user, grade_in.score, grade_in.feedback)

    student = await UserService.get_user_by_id(db, submission.student_id)
    if student:
        await RecordService.add_record(
            db,
            student=student,
            action=RecordAction.GRADE_UPDATE,
            category=RecordCategory.ASSESSMENT,
            performed_by=current_user,
            details={"old_grade": previous, "new_grade": grade_in.score, "feedback": grade_in.feedback},
            related_assignment_id=submission.assignment_id,
            ip_address=deps.client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    await db.commit()
    await db.refresh(submission)
    return SuccessResponse(data=submission, message="Submission graded")


@router.delete("/{submission_id}", response_model=SuccessResponse)
async def delete_submission(
    submission_id: UUID,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """Admins and teachers delete any submission; students only their own ungraded ones."""
    submission = await _get_submission_or_404(db, submission_id)
    if current_user.is_student:
        if submission.student_id != current_user.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only delete your own submissions")
        if submission.is_graded:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Graded submissions cannot be deleted")
    elif not (current_user.is_admin or current_user.is_teacher):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")
    await AssessmentService.delete_submission(db, submission)
    return SuccessResponse(data=None, message="Submission deleted")
