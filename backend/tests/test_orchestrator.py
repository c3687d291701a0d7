"""Tests for the document pipeline orchestrator."""

import json
import uuid

import pytest

from conftest import BOOK_JSON, FakeProvider
from repobook.credits.ledger import CreditLedger
from repobook.db.repositories import DiagramRepository, ReportRepository
from repobook.exceptions import (
    AnalysisNotFoundError,
    BookFormatError,
    CreditsExhaustedError,
    InvalidInputError,
    InvalidStageTransitionError,
    LLMServiceError,
    RepositoryReferenceError,
)
from repobook.llm.service import CompletionService
from repobook.models.db import Analysis, AnalysisStatus
from repobook.models.pipeline import DiagramAsset, FileAnalysis, ImageAsset
from repobook.pipeline.orchestrator import (
    USER_UPLOAD_TYPE,
    DocumentPipeline,
    compile_book,
    strip_markdown_fence,
)
from repobook.pipeline.state import ArchitectureContext, Stage

REPO_URL = "https://github.com/octo/demo"
FILES = [
    FileAnalysis("src/app.py", "Entry point."),
    FileAnalysis("README.md", "Docs."),
]


@pytest.fixture
def pipeline(db_session, completions) -> DocumentPipeline:
    return DocumentPipeline(db_session, completions)


def run_to(pipeline, user_id, step):
    result = pipeline.start(user_id, REPO_URL, FILES)
    for next_step in range(2, step + 1):
        result = pipeline.advance(user_id, next_step, analysis_id=result.analysis_id)
    return result


class TestStart:
    def test_runs_vision_and_consumes_credit(self, pipeline, user, db_session, fake_provider):
        result = pipeline.start(user[0].id, REPO_URL, FILES)

        assert result.step == Stage.VISION
        assert result.result.startswith("## Generated chapter")
        assert "```" not in result.result

        analysis = db_session.get(Analysis, result.analysis_id)
        assert analysis.step == 1
        assert analysis.status == AnalysisStatus.PROCESSING
        assert analysis.repository.url == REPO_URL
        assert ArchitectureContext.from_json(analysis.architecture_context).textual == result.result

        db_session.refresh(user[0])
        assert user[0].document_credits == 1
        assert "### File: src/app.py" in fake_provider.calls[0]["user"]

    def test_no_credits(self, pipeline, make_user, db_session, fake_provider):
        broke, _ = make_user(document_credits=0)

        with pytest.raises(CreditsExhaustedError):
            pipeline.start(broke.id, REPO_URL, FILES)

        assert db_session.query(Analysis).filter_by(user_id=broke.id).count() == 0
        assert fake_provider.calls == []

    def test_admin_spends_nothing(self, pipeline, make_user, db_session):
        admin, _ = make_user(is_admin=True, document_credits=0)

        pipeline.start(admin.id, REPO_URL, FILES)

        db_session.refresh(admin)
        assert admin.document_credits == 0

    def test_invalid_input(self, pipeline, user):
        with pytest.raises(RepositoryReferenceError):
            pipeline.start(user[0].id, "  ", FILES)
        with pytest.raises(InvalidInputError):
            pipeline.start(user[0].id, REPO_URL, [])

    def test_llm_failure_keeps_analysis_and_credit(self, db_session, user):
        def fail(system, prompt, json_mode):
            raise RuntimeError("upstream down")

        pipeline = DocumentPipeline(db_session, CompletionService(FakeProvider(fail)))

        with pytest.raises(LLMServiceError):
            pipeline.start(user[0].id, REPO_URL, FILES)

        analysis = db_session.query(Analysis).filter_by(user_id=user[0].id).one()
        assert analysis.step == 1
        db_session.refresh(user[0])
        assert user[0].document_credits == 1

        # Retrying step 1 on the same analysis succeeds without another credit
        retry = DocumentPipeline(
            db_session, CompletionService(FakeProvider())
        ).advance(user[0].id, 1, repo_url=REPO_URL)
        assert retry.analysis_id == analysis.id
        db_session.refresh(user[0])
        assert user[0].document_credits == 1


class TestAdvance:
    def test_full_run_compiles_book(self, pipeline, user, db_session, fake_provider):
        result = run_to(pipeline, user[0].id, 4)

        assert result.step == Stage.BIND
        assert result.result == BOOK_JSON
        assert len(result.book.chapters) == 3

        analysis = db_session.get(Analysis, result.analysis_id)
        assert analysis.status == AnalysisStatus.COMPLETED
        assert analysis.completed_at is not None
        report = ReportRepository(db_session).latest_for_analysis(analysis.id)
        assert report.title == result.book.title
        assert json.loads(report.book_json) == json.loads(BOOK_JSON)

        bind_call = fake_provider.calls[-1]
        assert bind_call["json_mode"] is True
        assert "### File:" not in bind_call["user"]

    def test_stage_outputs_accumulate(self, pipeline, user, db_session):
        result = run_to(pipeline, user[0].id, 3)

        context = ArchitectureContext.from_json(
            db_session.get(Analysis, result.analysis_id).architecture_context
        )
        assert context.textual and context.structure and context.visuals

    def test_completed_analysis_cannot_advance(self, pipeline, user):
        result = run_to(pipeline, user[0].id, 4)

        with pytest.raises(InvalidStageTransitionError):
            pipeline.advance(user[0].id, 4, analysis_id=result.analysis_id)

    def test_skipping_a_stage_is_rejected(self, pipeline, user, fake_provider):
        result = pipeline.start(user[0].id, REPO_URL, FILES)
        calls = len(fake_provider.calls)

        with pytest.raises(InvalidStageTransitionError):
            pipeline.advance(user[0].id, 3, analysis_id=result.analysis_id)
        assert len(fake_provider.calls) == calls

    def test_client_context_overlays_stored_context(self, pipeline, user, fake_provider):
        result = run_to(pipeline, user[0].id, 3)

        pipeline.advance(
            user[0].id,
            4,
            analysis_id=result.analysis_id,
            context=ArchitectureContext(textual="EDITED VISION"),
        )

        assert "EDITED VISION" in fake_provider.calls[-1]["user"]

    def test_invalid_book_is_not_stored(self, db_session, user):
        def responder(system, prompt, json_mode):
            return '{"title": "Half", "chapters": []}' if json_mode else "chapter"

        pipeline = DocumentPipeline(db_session, CompletionService(FakeProvider(responder)))
        result = run_to(pipeline, user[0].id, 3)

        with pytest.raises(BookFormatError):
            pipeline.advance(user[0].id, 4, analysis_id=result.analysis_id)

        analysis = db_session.get(Analysis, result.analysis_id)
        assert analysis.step == 3
        assert analysis.status == AnalysisStatus.PROCESSING
        assert ReportRepository(db_session).latest_for_analysis(analysis.id) is None

    def test_visuals_records_diagrams_once(self, pipeline, user, db_session, fake_provider):
        result = run_to(pipeline, user[0].id, 2)
        images = [ImageAsset("https://img/a.png", tag="Deployment")]
        diagrams = [DiagramAsset("Sequence Diagram", "https://img/seq.png", "graph TD")]

        pipeline.advance(
            user[0].id,
            3,
            analysis_id=result.analysis_id,
            custom_images=images,
            generated_diagrams=diagrams,
        )
        pipeline.advance(
            user[0].id,
            3,
            analysis_id=result.analysis_id,
            custom_images=images,
            generated_diagrams=diagrams,
        )

        stored = DiagramRepository(db_session).list_by_analysis(result.analysis_id)
        assert sorted(d.image_url for d in stored) == ["https://img/a.png", "https://img/seq.png"]
        upload = next(d for d in stored if d.image_url == "https://img/a.png")
        assert upload.diagram_type == USER_UPLOAD_TYPE
        assert upload.tag == "Deployment"

        blueprint_prompt = fake_provider.calls[-1]["user"]
        assert "#### Section: Deployment" in blueprint_prompt
        assert "https://img/seq.png" in blueprint_prompt


class TestLocate:
    def test_by_repository_url(self, pipeline, user):
        started = pipeline.start(user[0].id, REPO_URL, FILES)

        result = pipeline.advance(user[0].id, 2, repo_url=REPO_URL + "/")

        assert result.analysis_id == started.analysis_id

    def test_falls_back_to_latest_active(self, pipeline, user):
        started = pipeline.start(user[0].id, REPO_URL, FILES)

        result = pipeline.advance(user[0].id, 2)

        assert result.analysis_id == started.analysis_id

    def test_other_users_analysis_is_invisible(self, pipeline, user, make_user):
        started = pipeline.start(user[0].id, REPO_URL, FILES)
        other, _ = make_user()

        with pytest.raises(AnalysisNotFoundError):
            pipeline.advance(other.id, 2, analysis_id=started.analysis_id)
        with pytest.raises(AnalysisNotFoundError):
            pipeline.advance(other.id, 2, repo_url=REPO_URL)

    def test_unknown_id(self, pipeline, user):
        with pytest.raises(AnalysisNotFoundError):
            pipeline.advance(user[0].id, 2, analysis_id=uuid.uuid4())


class TestResume:
    def test_snapshot_roundtrip(self, pipeline, user):
        result = run_to(pipeline, user[0].id, 2)

        snapshot = pipeline.resume(user[0].id, result.analysis_id)

        assert snapshot.step == 2
        assert snapshot.status == AnalysisStatus.PROCESSING
        assert snapshot.repository_url == REPO_URL
        assert snapshot.repository_name == "demo"
        assert snapshot.file_analyses == FILES
        assert snapshot.context.structure == result.result
        assert snapshot.context.visuals == ""

    def test_resumed_analysis_continues(self, pipeline, user):
        result = run_to(pipeline, user[0].id, 2)
        snapshot = pipeline.resume(user[0].id, result.analysis_id)

        # A fresh pipeline (new request) picks up where the last one stopped
        next_result = pipeline.advance(
            user[0].id, snapshot.step + 1, analysis_id=snapshot.analysis_id
        )
        assert next_result.step == Stage.VISUALS

    def test_failed_stage_keeps_last_good_step(self, pipeline, user, fake_provider):
        result = run_to(pipeline, user[0].id, 1)
        working = fake_provider.responder

        def fail(system, prompt, json_mode):
            raise RuntimeError("upstream down")

        fake_provider.responder = fail
        with pytest.raises(LLMServiceError):
            pipeline.advance(user[0].id, 2, analysis_id=result.analysis_id)

        snapshot = pipeline.resume(user[0].id, result.analysis_id)
        assert snapshot.step == 1
        assert snapshot.context.structure == ""

        # The failed stage cannot be skipped; it has to be run again
        with pytest.raises(InvalidStageTransitionError):
            pipeline.advance(user[0].id, snapshot.step + 2, analysis_id=result.analysis_id)

        fake_provider.responder = working
        pipeline.advance(user[0].id, snapshot.step + 1, analysis_id=result.analysis_id)
        assert pipeline.resume(user[0].id, result.analysis_id).context.structure != ""


class TestHelpers:
    def test_strip_markdown_fence(self):
        assert strip_markdown_fence("```markdown\n# Title\n```") == "# Title\n"
        assert strip_markdown_fence("```\ntext```") == "text"
        assert strip_markdown_fence("plain") == "plain"

    def test_compile_book(self):
        assert compile_book(BOOK_JSON).title.startswith("The Architecture")

    @pytest.mark.parametrize(
        "raw",
        ["not json", '{"title": "x"}', '{"title": "x", "chapters": [{"title": "a", "content": "b"}]}'],
    )
    def test_compile_book_rejects(self, raw):
        with pytest.raises(BookFormatError):
            compile_book(raw)


def test_ledger_is_shared_with_pipeline(db_session, completions):
    ledger = CreditLedger(db_session)
    assert DocumentPipeline(db_session, completions, ledger=ledger).ledger is ledger
