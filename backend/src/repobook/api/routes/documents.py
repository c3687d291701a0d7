"""
Document pipeline API routes.

- POST /documents - Start an Analysis and run step 1 (Vision)
- POST /documents/advance - Run step 1-4 of an existing Analysis
- POST /documents/diagrams - Generate one diagram
- POST /documents/diagrams/batch - Generate several diagram types in parallel
"""

import logging

from fastapi import APIRouter, Depends

from repobook.api.auth import AuthContext, get_current_user
from repobook.api.dependencies import get_diagram_generator, get_document_pipeline
from repobook.api.schemas import (
    AdvanceDocumentRequest,
    BookSchema,
    DiagramBatchRequest,
    DiagramBatchResponse,
    DiagramOutcomeSchema,
    DiagramRequest,
    DiagramResponse,
    StageResponse,
    StartDocumentRequest,
)
from repobook.diagrams.batch import DiagramBatch
from repobook.diagrams.generator import DiagramGenerator
from repobook.pipeline.orchestrator import DocumentPipeline, StageResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


def _stage_response(result: StageResult) -> StageResponse:
    return StageResponse(
        result=result.result,
        analysis_id=result.analysis_id,
        step=int(result.step),
        book=BookSchema.model_validate(result.book.model_dump())
        if result.book is not None
        else None,
    )


@router.post("", response_model=StageResponse)
def start_document(
    request: StartDocumentRequest,
    auth: AuthContext = Depends(get_current_user),
    pipeline: DocumentPipeline = Depends(get_document_pipeline),
) -> StageResponse:
    """
    Start a new Analysis.

    Costs one document credit; a user without credits gets 403 with the
    time until their counter resets.
    """
    result = pipeline.start(
        auth.user_id,
        request.repo_url,
        [item.to_model() for item in request.file_analyses],
    )
    return _stage_response(result)


@router.post("/advance", response_model=StageResponse)
def advance_document(
    request: AdvanceDocumentRequest,
    auth: AuthContext = Depends(get_current_user),
    pipeline: DocumentPipeline = Depends(get_document_pipeline),
) -> StageResponse:
    """
    Run a stage of an existing Analysis.

    Step 4 also returns the compiled book.
    """
    result = pipeline.advance(
        auth.user_id,
        request.step,
        repo_url=request.repo_url,
        analysis_id=request.analysis_id,
        context=request.context.to_model() if request.context else None,
        custom_images=request.image_assets(),
        generated_diagrams=[d.to_model() for d in request.generated_diagrams],
        file_analyses=[item.to_model() for item in request.file_analyses]
        if request.file_analyses
        else None,
    )
    return _stage_response(result)


@router.post("/diagrams", response_model=DiagramResponse)
def generate_diagram(
    request: DiagramRequest,
    auth: AuthContext = Depends(get_current_user),
    generator: DiagramGenerator = Depends(get_diagram_generator),
) -> DiagramResponse:
    diagram = generator.generate(request.diagram_type, request.context, request.repo_name)
    return DiagramResponse(success=True, url=diagram.url, code=diagram.source_code)


@router.post("/diagrams/batch", response_model=DiagramBatchResponse)
def generate_diagram_batch(
    request: DiagramBatchRequest,
    auth: AuthContext = Depends(get_current_user),
    generator: DiagramGenerator = Depends(get_diagram_generator),
) -> DiagramBatchResponse:
    """
    Generate several diagram types concurrently.

    Each type reports its own outcome; one failure never fails the batch.
    """
    with DiagramBatch(generator) as batch:
        for diagram_type in dict.fromkeys(request.diagram_types):
            batch.submit(diagram_type, request.context, request.repo_name)
        outcomes = batch.results()

    results = {}
    for diagram_type, outcome in outcomes.items():
        results[diagram_type] = DiagramOutcomeSchema(
            status=outcome.status,
            url=outcome.diagram.url if outcome.diagram else None,
            code=outcome.diagram.source_code if outcome.diagram else None,
            error=outcome.error,
        )
    ok = sum(1 for o in results.values() if o.url)
    logger.info(f"Diagram batch for user {auth.user_id}: {ok}/{len(results)} succeeded")
    return DiagramBatchResponse(results=results)
