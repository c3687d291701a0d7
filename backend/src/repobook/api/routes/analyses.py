"""
Analysis history API routes.

- GET /analyses - The caller's analyses, newest first
- GET /analyses/{analysis_id} - One analysis with diagrams and reports
- GET /analyses/{analysis_id}/resume - Snapshot to continue an analysis
- GET /analyses/{analysis_id}/book - The compiled book of a finished analysis
"""

import json
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from repobook.api.auth import AuthContext, get_current_user
from repobook.api.dependencies import get_document_pipeline
from repobook.api.schemas import (
    AnalysisDetail,
    AnalysisSummary,
    ArchitectureContextSchema,
    BookSchema,
    DiagramSchema,
    FileAnalysisSchema,
    ReportSchema,
    RepositorySchema,
    ResumeResponse,
)
from repobook.db.connection import get_db
from repobook.db.repositories import AnalysisRepository, ReportRepository
from repobook.exceptions import AnalysisNotFoundError
from repobook.models.pipeline import file_analyses_from_json
from repobook.pipeline.orchestrator import DocumentPipeline
from repobook.pipeline.state import ArchitectureContext

router = APIRouter(prefix="/analyses", tags=["analyses"])


@router.get("", response_model=list[AnalysisSummary])
def list_analyses(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[AnalysisSummary]:
    analyses = AnalysisRepository(db).list_by_user(auth.user_id, limit=limit, offset=offset)
    return [AnalysisSummary.model_validate(a) for a in analyses]


@router.get("/{analysis_id}", response_model=AnalysisDetail)
def get_analysis(
    analysis_id: UUID,
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> AnalysisDetail:
    analysis = AnalysisRepository(db).get_for_user(analysis_id, auth.user_id)
    if analysis is None:
        raise AnalysisNotFoundError(f"Analysis not found: {analysis_id}")

    context = ArchitectureContext.from_json(analysis.architecture_context)
    return AnalysisDetail(
        id=analysis.id,
        status=analysis.status,
        step=analysis.step,
        repository=RepositorySchema.model_validate(analysis.repository),
        created_at=analysis.created_at,
        updated_at=analysis.updated_at,
        completed_at=analysis.completed_at,
        architecture_context=ArchitectureContextSchema(**context.to_dict()),
        file_analyses=[
            FileAnalysisSchema(path=item.path, analysis=item.analysis)
            for item in file_analyses_from_json(analysis.file_context)
        ],
        diagrams=[DiagramSchema.model_validate(d) for d in analysis.diagrams],
        reports=[ReportSchema.model_validate(r) for r in analysis.reports],
    )


@router.get("/{analysis_id}/resume", response_model=ResumeResponse)
def resume_analysis(
    analysis_id: UUID,
    auth: AuthContext = Depends(get_current_user),
    pipeline: DocumentPipeline = Depends(get_document_pipeline),
) -> ResumeResponse:
    snapshot = pipeline.resume(auth.user_id, analysis_id)
    return ResumeResponse(
        analysis_id=snapshot.analysis_id,
        step=snapshot.step,
        status=snapshot.status,
        repo_name=snapshot.repository_name,
        repo_url=snapshot.repository_url,
        file_analyses=[
            FileAnalysisSchema(path=item.path, analysis=item.analysis)
            for item in snapshot.file_analyses
        ],
        context=ArchitectureContextSchema(**snapshot.context.to_dict()),
    )


@router.get("/{analysis_id}/book", response_model=BookSchema)
def get_book(
    analysis_id: UUID,
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BookSchema:
    analysis = AnalysisRepository(db).get_for_user(analysis_id, auth.user_id)
    if analysis is None:
        raise AnalysisNotFoundError(f"Analysis not found: {analysis_id}")

    report = ReportRepository(db).latest_for_analysis(analysis.id)
    if report is None:
        raise AnalysisNotFoundError(f"No book compiled yet for analysis {analysis_id}")
    return BookSchema.model_validate(json.loads(report.book_json))
