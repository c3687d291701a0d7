"""
RepoBook FastAPI Application.

Main API application for turning GitHub repositories into books.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from repobook.api.routes import (
    admin,
    analyses,
    analyze,
    auth,
    credits,
    documents,
    github,
    interviews,
    uploads,
)
from repobook.api.schemas import HealthResponse
from repobook.config import settings
from repobook.exceptions import (
    BookFormatError,
    CreditsExhaustedError,
    GitHubError,
    InsufficientCreditsError,
    InvalidInputError,
    InvalidStageTransitionError,
    LLMPayloadError,
    NotFoundError,
    RateLimitExceededError,
    UpstreamError,
)
from repobook.logging_config import setup_logging
from repobook.startup import run_all_startup_checks

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Runs startup checks before the application starts serving requests.
    """
    # Initialize logging first
    setup_logging(context="api")

    logger.info("Running startup checks...")
    run_all_startup_checks()
    logger.info("Application startup complete")

    yield

    logger.info("Application shutdown complete")


app = FastAPI(
    lifespan=lifespan,
    title="RepoBook API",
    description="API for turning GitHub repositories into AI-written books",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ===== Error mapping =====


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, str(exc))


@app.exception_handler(CreditsExhaustedError)
async def credits_exhausted_handler(
    request: Request, exc: CreditsExhaustedError
) -> JSONResponse:
    return _error(
        status.HTTP_403_FORBIDDEN,
        str(exc),
        creditsExhausted=True,
        timeUntilReset=exc.hours_until_reset(),
        resetAt=exc.reset_at.isoformat() if exc.reset_at else None,
    )


@app.exception_handler(InsufficientCreditsError)
async def insufficient_credits_handler(
    request: Request, exc: InsufficientCreditsError
) -> JSONResponse:
    return _error(status.HTTP_403_FORBIDDEN, str(exc), creditsExhausted=True)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, str(exc))


@app.exception_handler(InvalidStageTransitionError)
async def stage_transition_handler(
    request: Request, exc: InvalidStageTransitionError
) -> JSONResponse:
    return _error(status.HTTP_409_CONFLICT, str(exc))


@app.exception_handler(RateLimitExceededError)
async def rate_limit_handler(
    request: Request, exc: RateLimitExceededError
) -> JSONResponse:
    return _error(status.HTTP_429_TOO_MANY_REQUESTS, str(exc))


@app.exception_handler(GitHubError)
async def github_error_handler(request: Request, exc: GitHubError) -> JSONResponse:
    # Pass GitHub's own 404 through; everything else is a gateway failure
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return _error(status.HTTP_404_NOT_FOUND, str(exc))
    if exc.status_code == status.HTTP_400_BAD_REQUEST:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))
    logger.error(f"GitHub error on {request.url.path}: {exc}")
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
    logger.error(f"{exc.service} failure on {request.url.path}: {exc}")
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


@app.exception_handler(LLMPayloadError)
@app.exception_handler(BookFormatError)
async def llm_output_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unusable LLM output on {request.url.path}: {exc}")
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


# ===== Health =====


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint - API health check."""
    return {
        "status": "ok",
        "message": "RepoBook API is running",
        "version": "0.1.0",
    }


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    """Health check endpoint."""
    from repobook.db.connection import check_connection

    db_status = "healthy" if check_connection() else "unhealthy"

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        database=db_status,
    )


app.include_router(auth.router)
app.include_router(github.router)
app.include_router(analyze.router)
app.include_router(documents.router)
app.include_router(credits.router)
app.include_router(analyses.router)
app.include_router(interviews.router)
app.include_router(uploads.router)
app.include_router(admin.router)
