"""
Mock interview sessions.

An interview is a realtime voice conversation run by the browser directly
against the realtime API with a short-lived token issued here. This module
provisions that token, keeps the Interview record and turns the final
transcript into written feedback.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

import httpx
from sqlalchemy.orm import Session

from repobook.config import settings
from repobook.credits.ledger import CreditLedger, CreditType
from repobook.db.repositories import InterviewRepository, RepoRepository
from repobook.exceptions import (
    CreditsExhaustedError,
    InterviewNotFoundError,
    InterviewSessionError,
)
from repobook.github.resolver import resolve_repository
from repobook.llm.service import CompletionService
from repobook.models.db import Interview, InterviewStatus
from repobook.models.pipeline import FileAnalysis
from repobook.pipeline import prompts
from repobook.pipeline.file_analysis import aggregate_context
from repobook.pipeline.orchestrator import strip_markdown_fence
from repobook.utils.clock import as_utc

logger = logging.getLogger(__name__)

FEEDBACK_SYSTEM_PROMPT = (
    "You are a senior technical interviewer experienced in evaluating "
    "software engineering candidates."
)


@dataclass
class SessionGrant:
    """Realtime session payload (includes the ephemeral token) plus our record id."""

    token: dict[str, Any]
    interview_id: Optional[uuid.UUID]


def interviewer_instructions(
    repo_name: str, file_context: str, architecture_context: str
) -> str:
    """System instructions for the realtime interviewer."""
    return f"""
You are a senior engineering manager conducting a highly technical mock interview.
The candidate is the author of the GitHub repository: "{repo_name}".

**Your Goal**:
Assess the candidate's understanding of their own code, their architectural decisions, and their general software engineering knowledge.
The interview should last approximately 2 minutes.
Greet the candidate with a professional greeting at the start of the interview. Start talking first; do not wait for the candidate to start talking.
Do not answer the candidate's questions when they are irrelevant or off topic. Only clarify genuine doubts about a question. You are the interviewer: maintain decorum and professionalism.

**Repository Context**:
Use the following analysis to ground your questions. Do not hallucinate files that don't exist.

---
### Codebase Analysis (File Scan)
{file_context}

---
### System Architecture (Deep Analysis)
{architecture_context}
---

**Interview Strategy**:
1. **Intro**: Briefly introduce yourself and ask them to give a high-level overview of what this project does.
2. **Deep Dive**: Pick 3-4 specific complex files or architectural patterns from the context and ask "Why did you implement X this way?" or "Explain how the data flows in component Y".
3. **Critique**: If you see potential issues (security, performance) in the context, ask how they would address them.
4. **Wrap-up**: After about 2-3 minutes, give brief feedback summarizing the interview and thank them.

**Tone**: Professional, inquisitive, direct, but encouraging.
""".strip()


def feedback_prompt(repo_name: str, transcript: Sequence[str]) -> str:
    consolidated = "\n".join(transcript)
    return f"""
Context: Use the following interview transcript to evaluate the candidate's performance. The interview was regarding the repository: "{repo_name}".

Transcript:
{consolidated}

Task:
Provide a detailed structured feedback report in clean, readable Markdown format.
Use bold headers, bullet points, and code blocks where necessary to make it easy to read.
Include the following sections:
1. **Overall Assessment**: A brief, encouraging summary of how the interview went.
2. **Technical Strengths**: Key technical concepts the candidate explained well.
3. **Areas for Improvement**: Specific gaps in knowledge or communication.
4. **Communication Style**: Clarity, conciseness, and confidence.
5. **Final Rating**: A score out of 10 with a brief justification.
"""


class InterviewService:
    """
    Provision realtime sessions and write interview feedback.

    Args:
        session: Database session
        completions: LLM completion service (feedback and briefs)
        ledger: Credit ledger (defaults to one bound to the same session)
        transport: Optional httpx transport for the realtime API (tests)
    """

    def __init__(
        self,
        session: Session,
        completions: CompletionService,
        ledger: Optional[CreditLedger] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.session = session
        self.completions = completions
        self.ledger = ledger or CreditLedger(session)
        self.interviews = InterviewRepository(session)
        self.repositories = RepoRepository(session)
        self.transport = transport

    def _request_realtime_session(self, instructions: str) -> dict[str, Any]:
        try:
            with httpx.Client(
                timeout=settings.llm_timeout_seconds, transport=self.transport
            ) as client:
                response = client.post(
                    settings.openai_realtime_url,
                    headers={"Authorization": f"Bearer {settings.openai_api_key}"},
                    json={
                        "model": settings.openai_realtime_model,
                        "voice": settings.openai_realtime_voice,
                        "instructions": instructions,
                    },
                )
        except httpx.RequestError as e:
            raise InterviewSessionError(f"Realtime session request failed: {e}") from e

        if response.status_code >= 400:
            raise InterviewSessionError(f"OpenAI API Error: {response.text}")
        return response.json()

    def create_session(
        self,
        user_id: Optional[uuid.UUID],
        repo_name: str,
        file_context: str,
        architecture_context: str,
    ) -> SessionGrant:
        """
        Issue a realtime session for a mock interview.

        Authenticated users spend one interview credit, only after the
        session has been granted. Anonymous callers get a session with no
        record and no credit tracking.

        Raises:
            CreditsExhaustedError: If the user has no interview credits
            RepositoryReferenceError: If the repository name is blank
            InterviewSessionError: If the realtime API refuses (the record is
                kept as failed)
        """
        instructions = interviewer_instructions(
            repo_name, file_context, architecture_context
        )

        if user_id is None:
            logger.info(f"Issuing anonymous interview session for {repo_name}")
            return SessionGrant(
                token=self._request_realtime_session(instructions), interview_id=None
            )

        check = self.ledger.check_credits(user_id, CreditType.INTERVIEW)
        if not check.has_credits:
            raise CreditsExhaustedError(
                CreditType.INTERVIEW.value, check.reset_at, self.ledger.reset_hours
            )

        repository = self.repositories.upsert(resolve_repository(repo_name))
        interview = self.interviews.create(
            user_id=user_id,
            repository_id=repository.id,
            status=InterviewStatus.ACTIVE,
            file_context=file_context,
            architecture_context=architecture_context,
        )
        self.session.commit()

        try:
            token = self._request_realtime_session(instructions)
        except InterviewSessionError:
            interview.status = InterviewStatus.FAILED
            self.session.commit()
            logger.error(f"Realtime session for interview {interview.id} failed")
            raise

        self.ledger.consume_credit(user_id, CreditType.INTERVIEW)
        self.session.commit()
        logger.info(f"Started interview {interview.id} for user {user_id}")
        return SessionGrant(token=token, interview_id=interview.id)

    def generate_feedback(
        self,
        user_id: Optional[uuid.UUID],
        transcript: Sequence[str],
        repo_name: str,
        interview_id: Optional[uuid.UUID] = None,
    ) -> str:
        """
        Write feedback for an interview transcript.

        When the interview belongs to the user the feedback is stored and the
        interview is completed with its duration.

        Raises:
            InterviewNotFoundError: If an authenticated user names an unknown interview
            LLMServiceError: If the feedback call fails
        """
        interview: Optional[Interview] = None
        if user_id is not None and interview_id is not None:
            interview = self.interviews.get_for_user(interview_id, user_id)
            if interview is None:
                raise InterviewNotFoundError(f"Interview not found: {interview_id}")

        feedback = self.completions.complete(
            FEEDBACK_SYSTEM_PROMPT,
            feedback_prompt(repo_name, transcript),
            purpose="interview-feedback",
        )

        if interview is not None:
            now = datetime.now(timezone.utc)
            self.interviews.save_feedback(interview, feedback)
            interview.status = InterviewStatus.COMPLETED
            interview.completed_at = now
            interview.duration = int((now - as_utc(interview.created_at)).total_seconds())
            self.session.commit()
            logger.info(f"Stored feedback for interview {interview.id}")

        return feedback

    def architecture_brief(
        self, repo_name: str, file_analyses: Sequence[FileAnalysis]
    ) -> str:
        """Structure narrative of a repository, used to prime an interview."""
        prompt = prompts.structure_prompt(repo_name, aggregate_context(file_analyses))
        raw = self.completions.complete(
            prompt.system, prompt.user, purpose="interview-architecture"
        )
        return strip_markdown_fence(raw)
