"""Admin maintenance: student code registry"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.logging import get_logger
from app.models.enums import ChangeAction, EntityType
from app.models.user import User
from app.services.change_log_service import ChangeLogService
from app.services.student_code_service import (
    RegistryBackend,
    StudentCodeService,
    get_registry,
)
from app.schemas.student_code import (
    CodeChangeResponse,
    CompactionResponse,
    GapReportResponse,
    NextCodeResponse,
)
from app.schemas.responses import SuccessResponse

router = APIRouter()
logger = get_logger(__name__)


def _service(backend: RegistryBackend, db: AsyncSession) -> StudentCodeService:
    return StudentCodeService(get_registry(backend, db))


def _change(change) -> CodeChangeResponse:
    return CodeChangeResponse(id=str(change.id), name=change.name, old_code=change.old_code, new_code=change.new_code)


@router.get("/student-codes/next", response_model=SuccessResponse[NextCodeResponse])
async def preview_next_code(
    backend: RegistryBackend = Query(RegistryBackend.SQL),
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """Code the next student registration would receive. Nothing is reserved."""
    try:
        next_code, total = await _service(backend, db).preview_next_code()
    except RuntimeError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return SuccessResponse(data=NextCodeResponse(next_code=next_code, total_students=total))


@router.get("/student-codes/gaps", response_model=SuccessResponse[GapReportResponse])
async def student_code_gaps(
    backend: RegistryBackend = Query(RegistryBackend.SQL),
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    try:
        report = await _service(backend, db).gap_report()
    except RuntimeError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    message = f"Found {report.gap_count} gaps" if report.gap_count else "No gaps in student codes"
    return SuccessResponse(
        data=GapReportResponse(
            total_students=report.total_students,
            highest_code=report.highest_code,
            gaps=report.gaps,
            gap_count=report.gap_count,
        ),
        message=message,
    )


@router.post("/student-codes/reassign", response_model=SuccessResponse[CompactionResponse])
async def reassign_student_codes(
    request: Request,
    backend: RegistryBackend = Query(RegistryBackend.SQL),
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Renumber all students SU-001.. by registration order.

    A failed write stops the run; the response then has success=false and
    lists what was updated, what failed and what is still pending.
    """
    try:
        report = await _service(backend, db).compact()
    except RuntimeError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    if report.updated:
        await ChangeLogService.log(
            db, current_user, ChangeAction.REASSIGN, EntityType.STUDENT, "student-codes",
            details={
                "backend": backend.value,
                "updated": len(report.updated),
                "failed": len(report.failed),
                "pending": len(report.pending),
            },
            ip=deps.client_ip(request),
        )

    return SuccessResponse(
        success=report.success,
        data=CompactionResponse(
            updated=[_change(c) for c in report.updated],
            failed=[_change(c) for c in report.failed],
            pending=[_change(c) for c in report.pending],
            message=report.message,
        ),
        message=report.message,
    )
