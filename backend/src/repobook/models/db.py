"""
SQLAlchemy database models for RepoBook.

These models represent the database schema for users, repositories,
document-generation runs (analyses) and interview sessions.
"""

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

DEFAULT_CREDITS = 2


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class AnalysisStatus(str, enum.Enum):
    """Lifecycle of a document-generation run."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"  # Not reached by the pipeline today, kept for operators


ACTIVE_ANALYSIS_STATUSES = (AnalysisStatus.PENDING, AnalysisStatus.PROCESSING)


class InterviewStatus(str, enum.Enum):
    """Lifecycle of a mock interview session."""

    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class User(Base):
    """Account holding credentials and per-action credit counters."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )
    name: Mapped[Optional[str]] = mapped_column(String(255))
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Authentication (single API key per user, SHA-256 hashed)
    api_key_hash: Mapped[Optional[str]] = mapped_column(
        String(64), unique=True, index=True
    )
    api_key_prefix: Mapped[Optional[str]] = mapped_column(String(32))

    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Credits
    document_credits: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_CREDITS
    )
    interview_credits: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_CREDITS
    )
    document_credits_reset_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True)
    )
    interview_credits_reset_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True)
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    analyses: Mapped[list["Analysis"]] = relationship(back_populates="user")
    interviews: Mapped[list["Interview"]] = relationship(back_populates="user")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r}, is_admin={self.is_admin})>"


class Repository(Base):
    """Canonical GitHub repository reference shared by analyses and interviews."""

    __tablename__ = "repositories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(
        String(1024), nullable=False, unique=True, index=True
    )  # Identity key, immutable once created

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    analyses: Mapped[list["Analysis"]] = relationship(back_populates="repository")
    interviews: Mapped[list["Interview"]] = relationship(back_populates="repository")

    def __repr__(self) -> str:
        return f"<Repository(id={self.id}, name={self.name!r}, url={self.url!r})>"


class Analysis(Base):
    """
    One document-generation run.

    `file_context` and `architecture_context` are JSON text blobs and form
    the resumability checkpoint of the pipeline.
    """

    __tablename__ = "analyses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    repository_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    status: Mapped[AnalysisStatus] = mapped_column(
        Enum(
            AnalysisStatus,
            name="analysis_status",
            values_callable=_enum_values,
            native_enum=False,
        ),
        nullable=False,
        default=AnalysisStatus.PENDING,
        index=True,
    )
    step: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    file_context: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    architecture_context: Mapped[str] = mapped_column(
        Text, nullable=False, default="{}"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    user: Mapped["User"] = relationship(back_populates="analyses")
    repository: Mapped["Repository"] = relationship(back_populates="analyses")
    diagrams: Mapped[list["Diagram"]] = relationship(
        back_populates="analysis", cascade="all, delete-orphan"
    )
    reports: Mapped[list["Report"]] = relationship(
        back_populates="analysis", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_analyses_repo_status_updated", "repository_id", "status", "updated_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Analysis(id={self.id}, status={self.status.value!r}, step={self.step})>"
        )


class Diagram(Base):
    """User-uploaded image (empty mermaid_code) or AI-generated diagram."""

    __tablename__ = "diagrams"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    analysis_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("analyses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    diagram_type: Mapped[str] = mapped_column(String(255), nullable=False)
    tag: Mapped[Optional[str]] = mapped_column(String(255))  # Section name
    image_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    mermaid_code: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    analysis: Mapped["Analysis"] = relationship(back_populates="diagrams")

    @property
    def is_user_upload(self) -> bool:
        return not self.mermaid_code

    def __repr__(self) -> str:
        return f"<Diagram(id={self.id}, type={self.diagram_type!r})>"


class Report(Base):
    """Final compiled book for an Analysis."""

    __tablename__ = "reports"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    analysis_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("analyses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    book_json: Mapped[str] = mapped_column(Text, nullable=False)  # Raw LLM output

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    analysis: Mapped["Analysis"] = relationship(back_populates="reports")

    def __repr__(self) -> str:
        return f"<Report(id={self.id}, title={self.title!r})>"


class Interview(Base):
    """A realtime mock interview about a repository."""

    __tablename__ = "interviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    repository_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[InterviewStatus] = mapped_column(
        Enum(
            InterviewStatus,
            name="interview_status",
            values_callable=_enum_values,
            native_enum=False,
        ),
        nullable=False,
        default=InterviewStatus.ACTIVE,
        index=True,
    )
    file_context: Mapped[str] = mapped_column(Text, nullable=False, default="")
    architecture_context: Mapped[str] = mapped_column(
        Text, nullable=False, default=""
    )  # Plain text, primes the realtime assistant
    duration: Mapped[Optional[int]] = mapped_column(Integer)  # Seconds

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    user: Mapped[Optional["User"]] = relationship(back_populates="interviews")
    repository: Mapped["Repository"] = relationship(back_populates="interviews")
    feedback: Mapped[Optional["InterviewFeedback"]] = relationship(
        back_populates="interview", cascade="all, delete-orphan", uselist=False
    )

    def __repr__(self) -> str:
        return f"<Interview(id={self.id}, status={self.status.value!r})>"


class InterviewFeedback(Base):
    """LLM-written feedback produced after an interview ends."""

    __tablename__ = "interview_feedback"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    interview_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("interviews.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    feedback: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    interview: Mapped["Interview"] = relationship(back_populates="feedback")


class RateLimit(Base):
    """Keyed fixed-window counter shared by every server instance."""

    __tablename__ = "rate_limits"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    key: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reset_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<RateLimit(key={self.key!r}, count={self.count})>"
