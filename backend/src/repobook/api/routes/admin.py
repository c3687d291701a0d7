"""
Admin API routes.

- GET /admin/stats - Platform totals and recent activity
- GET /admin/users/{user_id} - One user with credits and history
"""

from dataclasses import asdict
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from repobook.api.auth import AuthContext, require_admin
from repobook.api.schemas import (
    AdminAnalysisSummary,
    AdminInterviewSummary,
    AdminStats,
    AdminStatsResponse,
    AdminUserDetail,
    AdminUserSummary,
    AnalysisSummary,
    CreditStatusResponse,
    InterviewSummary,
    RepositorySchema,
    UserResponse,
)
from repobook.credits.ledger import CreditLedger
from repobook.db.connection import get_db
from repobook.db.repositories import (
    AnalysisRepository,
    InterviewRepository,
    UserRepository,
)
from repobook.exceptions import UserNotFoundError
from repobook.models.db import AnalysisStatus, InterviewStatus

router = APIRouter(prefix="/admin", tags=["admin"])

RECENT_LIMIT = 10


@router.get("/stats", response_model=AdminStatsResponse)
def get_stats(
    admin: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
) -> AdminStatsResponse:
    users = UserRepository(db)
    analyses = AnalysisRepository(db)
    interviews = InterviewRepository(db)

    stats = AdminStats(
        total_users=users.count(),
        total_analyses=analyses.count(),
        total_interviews=interviews.count(),
        completed_analyses=analyses.count_by_status(AnalysisStatus.COMPLETED),
        completed_interviews=interviews.count_by_status(InterviewStatus.COMPLETED),
        active_analyses=analyses.count_by_status(AnalysisStatus.PROCESSING),
        active_interviews=interviews.count_by_status(InterviewStatus.ACTIVE),
    )

    return AdminStatsResponse(
        stats=stats,
        recent_users=[
            AdminUserSummary.model_validate(u) for u in users.get_recent(RECENT_LIMIT)
        ],
        recent_analyses=[
            AdminAnalysisSummary(
                id=a.id,
                status=a.status,
                step=a.step,
                repository=RepositorySchema.model_validate(a.repository),
                created_at=a.created_at,
                updated_at=a.updated_at,
                completed_at=a.completed_at,
                user_email=a.user.email,
            )
            for a in analyses.get_recent(RECENT_LIMIT)
        ],
        recent_interviews=[
            AdminInterviewSummary(
                id=i.id,
                status=i.status,
                repository=RepositorySchema.model_validate(i.repository),
                duration=i.duration,
                created_at=i.created_at,
                completed_at=i.completed_at,
                user_email=i.user.email if i.user else None,
            )
            for i in interviews.get_recent(RECENT_LIMIT)
        ],
    )


@router.get("/users/{user_id}", response_model=AdminUserDetail)
def get_user_detail(
    user_id: UUID,
    admin: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
) -> AdminUserDetail:
    user = UserRepository(db).get(user_id)
    if user is None:
        raise UserNotFoundError(user_id)

    credit_status = CreditLedger(db).get_credit_status(user_id)
    db.commit()

    return AdminUserDetail(
        user=UserResponse.model_validate(user),
        credits=CreditStatusResponse(**asdict(credit_status)),
        analyses=[
            AnalysisSummary.model_validate(a)
            for a in AnalysisRepository(db).list_by_user(user_id)
        ],
        interviews=[
            InterviewSummary.model_validate(i)
            for i in InterviewRepository(db).list_by_user(user_id)
        ],
    )
