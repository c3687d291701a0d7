"""
Document pipeline orchestrator.

Drives an Analysis through Vision -> Structure -> Visuals -> Bind. Every
stage commits the step change before calling the LLM and the stage output
after it, so a failed call leaves the Analysis at its last good state and the
client can simply retry the same step.
"""

import json
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from repobook.credits.ledger import CreditLedger, CreditType
from repobook.db.repositories import (
    AnalysisRepository,
    DiagramRepository,
    RepoRepository,
)
from repobook.exceptions import (
    AnalysisNotFoundError,
    BookFormatError,
    CreditsExhaustedError,
    InvalidInputError,
    InvalidStageTransitionError,
    RepositoryReferenceError,
)
from repobook.github.resolver import UNKNOWN, RepositoryRef, resolve_repository
from repobook.llm.service import CompletionService
from repobook.models.db import Analysis, AnalysisStatus, Diagram, Report
from repobook.models.pipeline import (
    DiagramAsset,
    FileAnalysis,
    ImageAsset,
    file_analyses_from_json,
    file_analyses_to_json,
)
from repobook.pipeline import prompts
from repobook.pipeline.file_analysis import aggregate_context
from repobook.pipeline.state import (
    ArchitectureContext,
    PipelineState,
    Stage,
    StageInput,
    advance,
    check_transition,
)

logger = logging.getLogger(__name__)

USER_UPLOAD_TYPE = "User Upload"

_LEADING_MARKDOWN_FENCE = re.compile(r"^```markdown\s*")
_LEADING_FENCE = re.compile(r"^```\s*")
_TRAILING_FENCE = re.compile(r"```$")


class Chapter(BaseModel):
    title: str
    content: str


class Book(BaseModel):
    """Final artifact produced by the Bind stage."""

    title: str
    chapters: List[Chapter]


@dataclass
class StageResult:
    """Outcome of running one stage."""

    analysis_id: uuid.UUID
    step: Stage
    result: str
    book: Optional[Book] = None


@dataclass
class ResumeSnapshot:
    """Everything a client needs to continue an Analysis."""

    analysis_id: uuid.UUID
    step: int
    status: AnalysisStatus
    repository_name: str
    repository_url: str
    file_analyses: List[FileAnalysis] = field(default_factory=list)
    context: ArchitectureContext = field(default_factory=ArchitectureContext)


def strip_markdown_fence(text: str) -> str:
    """Remove a code fence the model wrapped around a markdown chapter."""
    text = _LEADING_MARKDOWN_FENCE.sub("", text)
    text = _LEADING_FENCE.sub("", text)
    return _TRAILING_FENCE.sub("", text)


def compile_book(raw: str, expected_chapters: int = len(prompts.CHAPTER_TITLES)) -> Book:
    """
    Parse and validate the Bind stage output.

    Raises:
        BookFormatError: If the text is not a book object or the chapter
            count does not match
    """
    try:
        book = Book.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        raise BookFormatError(f"Compiled book is not valid JSON: {e}") from e

    if len(book.chapters) != expected_chapters:
        raise BookFormatError(
            f"Compiled book has {len(book.chapters)} chapters, "
            f"expected {expected_chapters}"
        )
    return book


def _repo_label(ref: RepositoryRef) -> str:
    return ref.name if ref.owner == UNKNOWN else ref.full_name


class DocumentPipeline:
    """
    Run document pipeline stages for a user.

    Args:
        session: Database session; the pipeline commits at its checkpoints
        completions: LLM completion service
        ledger: Credit ledger (defaults to one bound to the same session)
    """

    def __init__(
        self,
        session: Session,
        completions: CompletionService,
        ledger: Optional[CreditLedger] = None,
    ):
        self.session = session
        self.completions = completions
        self.ledger = ledger or CreditLedger(session)
        self.analyses = AnalysisRepository(session)
        self.repositories = RepoRepository(session)
        self.diagrams = DiagramRepository(session)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def start(
        self,
        user_id: uuid.UUID,
        repo_url: str,
        file_analyses: Sequence[FileAnalysis],
    ) -> StageResult:
        """
        Create an Analysis and run the Vision stage.

        Raises:
            RepositoryReferenceError: If the repository reference is blank
            InvalidInputError: If no file analyses are supplied
            CreditsExhaustedError: If the user has no document credits
            LLMServiceError: If the Vision call fails (the Analysis and the
                consumed credit are kept)
        """
        if not repo_url or not repo_url.strip():
            raise RepositoryReferenceError("Repository URL is required")
        if not file_analyses:
            raise InvalidInputError("Invalid file analyses data")

        check = self.ledger.check_credits(user_id, CreditType.DOCUMENT)
        if not check.has_credits:
            raise CreditsExhaustedError(
                CreditType.DOCUMENT.value, check.reset_at, self.ledger.reset_hours
            )

        ref = resolve_repository(repo_url)
        repository = self.repositories.upsert(ref)
        analysis = self.analyses.create(
            user_id=user_id,
            repository_id=repository.id,
            status=AnalysisStatus.PROCESSING,
            step=int(Stage.VISION),
            file_context=file_analyses_to_json(file_analyses),
            architecture_context=ArchitectureContext().to_json(),
        )
        self.ledger.consume_credit(user_id, CreditType.DOCUMENT)
        self.session.commit()
        logger.info(
            f"Started analysis {analysis.id} for {ref.canonical_url} "
            f"({len(file_analyses)} files)"
        )

        output = self._run_vision(ref, list(file_analyses))
        self._persist(analysis, Stage.VISION, ArchitectureContext(), output)
        return StageResult(analysis_id=analysis.id, step=Stage.VISION, result=output)

    def advance(
        self,
        user_id: uuid.UUID,
        step: int,
        repo_url: Optional[str] = None,
        analysis_id: Optional[uuid.UUID] = None,
        context: Optional[ArchitectureContext] = None,
        custom_images: Sequence[ImageAsset] = (),
        generated_diagrams: Sequence[DiagramAsset] = (),
        file_analyses: Optional[Sequence[FileAnalysis]] = None,
    ) -> StageResult:
        """
        Run stage `step` of an existing Analysis.

        The Analysis is located by explicit id first, then by the user's most
        recently updated active Analysis of the repository, then by the user's
        most recently updated active Analysis overall.

        Raises:
            AnalysisNotFoundError: If no Analysis can be located
            InvalidStageTransitionError: If `step` is not a retry or the next stage
            LLMServiceError: If the stage call fails
            BookFormatError: If the Bind output is not a valid book
        """
        analysis = self._locate(user_id, analysis_id, repo_url)
        if analysis.status == AnalysisStatus.COMPLETED:
            raise InvalidStageTransitionError(analysis.step, step)

        stage = check_transition(analysis.step, step)

        base = ArchitectureContext.from_json(analysis.architecture_context).merged(
            context
        )
        analyses = file_analyses_from_json(analysis.file_context)
        if not analyses and file_analyses:
            analyses = list(file_analyses)
            analysis.file_context = file_analyses_to_json(analyses)

        ref = resolve_repository(analysis.repository.url)

        # The step only moves once the stage output is stored
        analysis.status = AnalysisStatus.PROCESSING
        self.session.commit()

        book = None
        if stage == Stage.VISION:
            output = self._run_vision(ref, analyses)
        elif stage == Stage.STRUCTURE:
            output = self._run_structure(ref, analyses)
        elif stage == Stage.VISUALS:
            output = self._run_visuals(
                ref, analyses, custom_images, generated_diagrams
            )
        else:
            output, book = self._run_bind(ref, base)

        self._persist(
            analysis,
            stage,
            base,
            output,
            custom_images=custom_images,
            generated_diagrams=generated_diagrams,
            book=book,
        )
        return StageResult(analysis_id=analysis.id, step=stage, result=output, book=book)

    def resume(self, user_id: uuid.UUID, analysis_id: uuid.UUID) -> ResumeSnapshot:
        """
        Load the persisted state of an Analysis.

        Raises:
            AnalysisNotFoundError: If the Analysis does not exist for this user
        """
        analysis = self.analyses.get_for_user(analysis_id, user_id)
        if analysis is None:
            raise AnalysisNotFoundError(f"Analysis not found: {analysis_id}")

        return ResumeSnapshot(
            analysis_id=analysis.id,
            step=analysis.step,
            status=analysis.status,
            repository_name=analysis.repository.name,
            repository_url=analysis.repository.url,
            file_analyses=file_analyses_from_json(analysis.file_context),
            context=ArchitectureContext.from_json(analysis.architecture_context),
        )

    # ------------------------------------------------------------------
    # Lookup and persistence
    # ------------------------------------------------------------------

    def _locate(
        self,
        user_id: uuid.UUID,
        analysis_id: Optional[uuid.UUID],
        repo_url: Optional[str],
    ) -> Analysis:
        if analysis_id is not None:
            analysis = self.analyses.get_for_user(analysis_id, user_id)
            if analysis is None:
                raise AnalysisNotFoundError(f"Analysis not found: {analysis_id}")
            return analysis

        analysis = None
        if repo_url and repo_url.strip():
            ref = resolve_repository(repo_url)
            repository = self.repositories.get_by_url(ref.canonical_url)
            if repository is not None:
                analysis = self.analyses.find_active(user_id, repository.id)

        if analysis is None:
            analysis = self.analyses.find_active(user_id)
        if analysis is None:
            raise AnalysisNotFoundError("No active analysis found")
        return analysis

    def _persist(
        self,
        analysis: Analysis,
        stage: Stage,
        base: ArchitectureContext,
        output: str,
        custom_images: Sequence[ImageAsset] = (),
        generated_diagrams: Sequence[DiagramAsset] = (),
        book: Optional[Book] = None,
    ) -> None:
        state = advance(PipelineState(stage=stage, context=base), StageInput(stage, output))
        analysis.architecture_context = state.context.to_json()
        analysis.step = int(stage)

        if stage == Stage.VISUALS:
            self._record_diagrams(analysis, custom_images, generated_diagrams)

        if stage == Stage.BIND and book is not None:
            self.session.add(
                Report(analysis_id=analysis.id, title=book.title, book_json=output)
            )
            analysis.status = AnalysisStatus.COMPLETED
            analysis.completed_at = datetime.now(timezone.utc)

        self.session.commit()
        logger.info(f"Analysis {analysis.id} finished step {int(stage)}")

    def _record_diagrams(
        self,
        analysis: Analysis,
        custom_images: Sequence[ImageAsset],
        generated_diagrams: Sequence[DiagramAsset],
    ) -> None:
        known = self.diagrams.image_urls(analysis.id)

        for image in custom_images:
            if image.url in known:
                continue
            known.add(image.url)
            self.session.add(
                Diagram(
                    analysis_id=analysis.id,
                    diagram_type=USER_UPLOAD_TYPE,
                    tag=image.tag,
                    image_url=image.url,
                    mermaid_code="",
                )
            )

        for diagram in generated_diagrams:
            if diagram.url in known:
                continue
            known.add(diagram.url)
            self.session.add(
                Diagram(
                    analysis_id=analysis.id,
                    diagram_type=diagram.diagram_type,
                    tag=diagram.tag,
                    image_url=diagram.url,
                    mermaid_code=diagram.code,
                )
            )

    # ------------------------------------------------------------------
    # Stage runners
    # ------------------------------------------------------------------

    def _complete_chapter(self, stage: Stage, prompt: prompts.StagePrompt) -> str:
        raw = self.completions.complete(
            prompt.system,
            prompt.user,
            json_mode=prompt.json_mode,
            purpose=prompts.stage_purpose(stage),
        )
        return strip_markdown_fence(raw)

    def _run_vision(self, ref: RepositoryRef, analyses: List[FileAnalysis]) -> str:
        prompt = prompts.vision_prompt(_repo_label(ref), aggregate_context(analyses))
        return self._complete_chapter(Stage.VISION, prompt)

    def _run_structure(self, ref: RepositoryRef, analyses: List[FileAnalysis]) -> str:
        prompt = prompts.structure_prompt(_repo_label(ref), aggregate_context(analyses))
        return self._complete_chapter(Stage.STRUCTURE, prompt)

    def _run_visuals(
        self,
        ref: RepositoryRef,
        analyses: List[FileAnalysis],
        custom_images: Sequence[ImageAsset],
        generated_diagrams: Sequence[DiagramAsset],
    ) -> str:
        prompt = prompts.blueprint_prompt(
            _repo_label(ref),
            aggregate_context(analyses),
            custom_images,
            generated_diagrams,
        )
        return self._complete_chapter(Stage.VISUALS, prompt)

    def _run_bind(
        self, ref: RepositoryRef, context: ArchitectureContext
    ) -> tuple[str, Book]:
        prompt = prompts.bind_prompt(_repo_label(ref), context)
        raw = self.completions.complete(
            prompt.system,
            prompt.user,
            json_mode=True,
            purpose=prompts.stage_purpose(Stage.BIND),
        )
        return raw, compile_book(raw)
