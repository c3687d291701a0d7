"""
API schemas for RepoBook.

Pydantic models for request/response validation. Field names are camelCase
on the wire and snake_case in Python.
"""

import math
from datetime import datetime
from typing import Any, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from repobook.models.db import AnalysisStatus, InterviewStatus
from repobook.models.pipeline import (
    DEFAULT_TAG,
    DiagramAsset,
    FileAnalysis,
    ImageAsset,
)
from repobook.pipeline.state import ArchitectureContext


class CamelModel(BaseModel):
    """Base schema with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _finite_or_none(value: Optional[float]) -> Optional[float]:
    if value is None or math.isinf(value):
        return None
    return value


# ===== Auth =====


class SignupRequest(CamelModel):
    email: str
    password: str = Field(min_length=8)
    name: Optional[str] = None


class TokenRequest(CamelModel):
    email: str
    password: str


class UserResponse(CamelModel):
    """Public view of a user."""

    id: UUID
    email: str
    name: Optional[str] = None
    is_admin: bool
    api_key_prefix: Optional[str] = None
    document_credits: int
    interview_credits: int
    created_at: datetime


class SignupResponse(CamelModel):
    user: UserResponse
    api_key: str


class ApiKeyResponse(CamelModel):
    api_key: str


# ===== GitHub =====


class RepoFileSchema(CamelModel):
    path: str
    size: Optional[int] = None
    url: Optional[str] = None


class RepoListingResponse(CamelModel):
    """Repository metadata plus its source files."""

    repo: str
    owner: str
    name: str
    description: Optional[str] = None
    default_branch: str
    files: list[RepoFileSchema] = Field(default_factory=list)


class FileContentResponse(CamelModel):
    content: str


# ===== File analysis =====


class FileAnalysisSchema(CamelModel):
    path: str
    analysis: str

    def to_model(self) -> FileAnalysis:
        return FileAnalysis(path=self.path, analysis=self.analysis)


class AnalyzeFileRequest(CamelModel):
    content: str
    path: str
    language: Optional[str] = None


class AnalyzeFileResponse(CamelModel):
    analysis: str


class AnalyzeFilesRequest(CamelModel):
    repo_url: str


class AnalyzeFilesResponse(CamelModel):
    repo: str
    file_analyses: list[FileAnalysisSchema]


# ===== Document pipeline =====


class ArchitectureContextSchema(CamelModel):
    textual: str = ""
    structure: str = ""
    visuals: str = ""

    def to_model(self) -> ArchitectureContext:
        return ArchitectureContext(
            textual=self.textual, structure=self.structure, visuals=self.visuals
        )


class ImageAssetSchema(CamelModel):
    url: str
    tag: str = DEFAULT_TAG

    def to_model(self) -> ImageAsset:
        return ImageAsset(url=self.url, tag=self.tag or DEFAULT_TAG)


class DiagramAssetSchema(CamelModel):
    type: str
    url: str
    code: str = ""
    tag: str = DEFAULT_TAG

    def to_model(self) -> DiagramAsset:
        return DiagramAsset(
            diagram_type=self.type,
            url=self.url,
            code=self.code,
            tag=self.tag or DEFAULT_TAG,
        )


class StartDocumentRequest(CamelModel):
    """Start a new Analysis (step 1)."""

    repo_url: str = ""
    file_analyses: list[FileAnalysisSchema] = Field(default_factory=list)


class AdvanceDocumentRequest(CamelModel):
    """Run step 1-4 of an existing Analysis."""

    step: int
    repo_url: Optional[str] = None
    analysis_id: Optional[UUID] = None
    context: Optional[ArchitectureContextSchema] = None
    custom_images: list[Union[ImageAssetSchema, str]] = Field(default_factory=list)
    generated_diagrams: list[DiagramAssetSchema] = Field(default_factory=list)
    file_analyses: Optional[list[FileAnalysisSchema]] = None

    def image_assets(self) -> list[ImageAsset]:
        """Plain URL strings are accepted as untagged images."""
        return [
            ImageAsset(url=image) if isinstance(image, str) else image.to_model()
            for image in self.custom_images
        ]


class ChapterSchema(CamelModel):
    title: str
    content: str


class BookSchema(CamelModel):
    title: str
    chapters: list[ChapterSchema]


class StageResponse(CamelModel):
    result: str
    analysis_id: UUID
    step: int
    book: Optional[BookSchema] = None


# ===== Diagrams =====


class DiagramRequest(CamelModel):
    repo_name: Optional[str] = None
    context: str = ""
    diagram_type: str = ""


class DiagramResponse(CamelModel):
    success: bool
    url: str
    code: str


class DiagramBatchRequest(CamelModel):
    repo_name: Optional[str] = None
    context: str
    diagram_types: list[str] = Field(min_length=1)


class DiagramOutcomeSchema(CamelModel):
    status: str
    url: Optional[str] = None
    code: Optional[str] = None
    error: Optional[str] = None


class DiagramBatchResponse(CamelModel):
    results: dict[str, DiagramOutcomeSchema]


class UploadSignatureResponse(CamelModel):
    timestamp: int
    folder: str
    signature: str
    api_key: str
    cloud_name: str


# ===== Credits =====


class CreditStatusResponse(CamelModel):
    """
    Credit counters for display.

    Admin counters are unlimited and serialize as null.
    """

    is_admin: bool
    document_credits: Optional[float] = None
    interview_credits: Optional[float] = None
    document_credits_reset_at: Optional[datetime] = None
    interview_credits_reset_at: Optional[datetime] = None
    document_time_until_reset: Optional[int] = None
    interview_time_until_reset: Optional[int] = None

    @field_validator("document_credits", "interview_credits", mode="before")
    @classmethod
    def _unlimited_as_null(cls, value: Optional[float]) -> Optional[float]:
        return _finite_or_none(value)


# ===== Analyses =====


class RepositorySchema(CamelModel):
    id: UUID
    name: str
    url: str


class DiagramSchema(CamelModel):
    id: UUID
    diagram_type: str
    tag: Optional[str] = None
    image_url: str
    mermaid_code: str = ""
    created_at: datetime


class ReportSchema(CamelModel):
    id: UUID
    title: str
    book_json: str
    created_at: datetime


class AnalysisSummary(CamelModel):
    id: UUID
    status: AnalysisStatus
    step: int
    repository: RepositorySchema
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None


class AnalysisDetail(AnalysisSummary):
    architecture_context: ArchitectureContextSchema
    file_analyses: list[FileAnalysisSchema] = Field(default_factory=list)
    diagrams: list[DiagramSchema] = Field(default_factory=list)
    reports: list[ReportSchema] = Field(default_factory=list)


class ResumeResponse(CamelModel):
    """Snapshot needed to continue an Analysis."""

    analysis_id: UUID
    step: int
    status: AnalysisStatus
    repo_name: str
    repo_url: str
    file_analyses: list[FileAnalysisSchema]
    context: ArchitectureContextSchema


# ===== Interviews =====


class InterviewTokenRequest(CamelModel):
    repo_name: str
    file_context: str = ""
    architecture_context: str = ""


class FeedbackRequest(CamelModel):
    transcript: list[str]
    repo_name: str
    interview_id: Optional[UUID] = None


class ArchitectureRequest(CamelModel):
    repo_name: str
    file_analyses: list[FileAnalysisSchema]


class ResultResponse(CamelModel):
    result: str


class InterviewSummary(CamelModel):
    id: UUID
    status: InterviewStatus
    repository: RepositorySchema
    duration: Optional[int] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


class InterviewDetail(InterviewSummary):
    feedback: Optional[str] = None


# ===== Admin =====


class AdminStats(CamelModel):
    total_users: int
    total_analyses: int
    total_interviews: int
    completed_analyses: int
    completed_interviews: int
    active_analyses: int
    active_interviews: int


class AdminUserSummary(CamelModel):
    id: UUID
    email: str
    name: Optional[str] = None
    is_admin: bool
    created_at: datetime


class AdminAnalysisSummary(AnalysisSummary):
    user_email: Optional[str] = None


class AdminInterviewSummary(InterviewSummary):
    user_email: Optional[str] = None


class AdminStatsResponse(CamelModel):
    stats: AdminStats
    recent_users: list[AdminUserSummary]
    recent_analyses: list[AdminAnalysisSummary]
    recent_interviews: list[AdminInterviewSummary]


class AdminUserDetail(CamelModel):
    user: UserResponse
    credits: CreditStatusResponse
    analyses: list[AnalysisSummary]
    interviews: list[InterviewSummary]


class HealthResponse(CamelModel):
    status: str
    database: str
    details: Optional[dict[str, Any]] = None
