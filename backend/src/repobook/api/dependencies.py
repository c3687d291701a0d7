"""
Service providers for API routes.

Each external collaborator is built in exactly one function here so routes
stay thin and tests can swap any of them through
``app.dependency_overrides``.
"""

from typing import Generator, Optional

import httpx
from fastapi import Depends
from sqlalchemy.orm import Session

from repobook.credits.ledger import CreditLedger
from repobook.db.connection import get_db
from repobook.diagrams.generator import DiagramGenerator
from repobook.diagrams.renderer import MermaidRenderer
from repobook.diagrams.uploader import CloudinaryUploader
from repobook.github.client import GitHubClient
from repobook.interview.session import InterviewService
from repobook.llm.service import CompletionService, get_completion_service
from repobook.pipeline.orchestrator import DocumentPipeline


def get_github_client() -> Generator[GitHubClient, None, None]:
    """Yield a GitHub client for the duration of one request."""
    client = GitHubClient()
    try:
        yield client
    finally:
        client.close()


def get_ledger(db: Session = Depends(get_db)) -> CreditLedger:
    return CreditLedger(db)


def get_uploader() -> CloudinaryUploader:
    return CloudinaryUploader()


def get_renderer() -> MermaidRenderer:
    return MermaidRenderer()


def get_diagram_generator(
    completions: CompletionService = Depends(get_completion_service),
    renderer: MermaidRenderer = Depends(get_renderer),
    uploader: CloudinaryUploader = Depends(get_uploader),
) -> DiagramGenerator:
    return DiagramGenerator(completions, renderer=renderer, uploader=uploader)


def get_realtime_transport() -> Optional[httpx.BaseTransport]:
    """Transport for realtime session requests (None means the default)."""
    return None


def get_document_pipeline(
    db: Session = Depends(get_db),
    completions: CompletionService = Depends(get_completion_service),
    ledger: CreditLedger = Depends(get_ledger),
) -> DocumentPipeline:
    return DocumentPipeline(db, completions, ledger=ledger)


def get_interview_service(
    db: Session = Depends(get_db),
    completions: CompletionService = Depends(get_completion_service),
    ledger: CreditLedger = Depends(get_ledger),
    transport: Optional[httpx.BaseTransport] = Depends(get_realtime_transport),
) -> InterviewService:
    return InterviewService(db, completions, ledger=ledger, transport=transport)
