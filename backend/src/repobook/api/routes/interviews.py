"""
Mock interview API routes.

- POST /interviews/token - Realtime session for a mock interview (auth optional)
- POST /interviews/feedback - Written feedback for a transcript
- POST /interviews/architecture - Architecture brief used to prime an interview
- GET /interviews - The caller's interviews
- GET /interviews/{interview_id} - One interview with its feedback
"""

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from repobook.api.auth import AuthContext, get_current_user, get_optional_user
from repobook.api.dependencies import get_interview_service
from repobook.api.schemas import (
    ArchitectureRequest,
    FeedbackRequest,
    InterviewDetail,
    InterviewSummary,
    InterviewTokenRequest,
    RepositorySchema,
    ResultResponse,
)
from repobook.db.connection import get_db
from repobook.db.repositories import InterviewRepository
from repobook.exceptions import InterviewNotFoundError
from repobook.interview.session import InterviewService

router = APIRouter(prefix="/interviews", tags=["interviews"])


@router.post("/token")
def create_token(
    request: InterviewTokenRequest,
    auth: Optional[AuthContext] = Depends(get_optional_user),
    service: InterviewService = Depends(get_interview_service),
) -> dict[str, Any]:
    """
    Issue a realtime session.

    Returns the realtime API's session payload (including the ephemeral
    client secret) with ``interviewId`` added. Anonymous callers get a
    null ``interviewId``.
    """
    grant = service.create_session(
        auth.user_id if auth else None,
        request.repo_name,
        request.file_context,
        request.architecture_context,
    )
    return {
        **grant.token,
        "interviewId": str(grant.interview_id) if grant.interview_id else None,
    }


@router.post("/feedback", response_model=ResultResponse)
def create_feedback(
    request: FeedbackRequest,
    auth: Optional[AuthContext] = Depends(get_optional_user),
    service: InterviewService = Depends(get_interview_service),
) -> ResultResponse:
    feedback = service.generate_feedback(
        auth.user_id if auth else None,
        request.transcript,
        request.repo_name,
        interview_id=request.interview_id,
    )
    return ResultResponse(result=feedback)


@router.post("/architecture", response_model=ResultResponse)
def create_architecture_brief(
    request: ArchitectureRequest,
    auth: Optional[AuthContext] = Depends(get_optional_user),
    service: InterviewService = Depends(get_interview_service),
) -> ResultResponse:
    brief = service.architecture_brief(
        request.repo_name, [item.to_model() for item in request.file_analyses]
    )
    return ResultResponse(result=brief)


@router.get("", response_model=list[InterviewSummary])
def list_interviews(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[InterviewSummary]:
    interviews = InterviewRepository(db).list_by_user(
        auth.user_id, limit=limit, offset=offset
    )
    return [InterviewSummary.model_validate(i) for i in interviews]


@router.get("/{interview_id}", response_model=InterviewDetail)
def get_interview(
    interview_id: UUID,
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> InterviewDetail:
    interview = InterviewRepository(db).get_for_user(interview_id, auth.user_id)
    if interview is None:
        raise InterviewNotFoundError(f"Interview not found: {interview_id}")

    return InterviewDetail(
        id=interview.id,
        status=interview.status,
        repository=RepositorySchema.model_validate(interview.repository),
        duration=interview.duration,
        created_at=interview.created_at,
        completed_at=interview.completed_at,
        feedback=interview.feedback.feedback if interview.feedback else None,
    )
