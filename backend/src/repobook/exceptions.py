"""Custom exceptions for RepoBook."""

from datetime import datetime
from typing import Optional

from repobook.utils.clock import hours_until_reset


class RepoBookError(Exception):
    """Base class for all RepoBook domain errors."""


class NotFoundError(RepoBookError):
    """Base class for lookups that found nothing."""


class UserNotFoundError(NotFoundError):
    """Raised when a credit or auth operation targets a missing user."""

    def __init__(self, user_id: object):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class InsufficientCreditsError(RepoBookError):
    """Raised when a credit is consumed while the counter is already zero."""

    def __init__(self, credit_type: str):
        self.credit_type = credit_type
        super().__init__(f"No {credit_type} credits available")


class CreditsExhaustedError(RepoBookError):
    """
    Raised by workflows when a credit check fails before any work starts.

    This is a business condition rather than a failure: the API renders it as
    a structured payload so clients can show a countdown.
    """

    def __init__(
        self, credit_type: str, reset_at: Optional[datetime], reset_hours: int = 48
    ):
        self.credit_type = credit_type
        self.reset_at = reset_at
        super().__init__(
            f"You have used all your {credit_type} credits. "
            f"Credits reset every {reset_hours} hours."
        )

    def hours_until_reset(self, now: Optional[datetime] = None) -> Optional[int]:
        """Hours until the credit timer expires, rounded up."""
        return hours_until_reset(self.reset_at, now)


class InvalidInputError(RepoBookError):
    """Raised when a request is missing data an operation needs."""


class RepositoryReferenceError(InvalidInputError):
    """Raised when a repository reference is missing or blank."""


class AnalysisNotFoundError(NotFoundError):
    """Raised when no Analysis can be located for a pipeline request."""


class InterviewNotFoundError(NotFoundError):
    """Raised when an interview does not exist for the requesting user."""


class InvalidStageTransitionError(RepoBookError):
    """Raised when a pipeline request moves backwards or skips a stage."""

    def __init__(self, current: int, requested: int):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot move from step {current} to step {requested}; "
            f"only a retry of step {current} or step {current + 1} is allowed"
        )


class RateLimitExceededError(RepoBookError):
    """Raised when a keyed rate limit has been reached."""

    def __init__(self, key: str):
        self.key = key
        super().__init__("Too many requests. Please try again later.")


class LLMPayloadError(RepoBookError):
    """Raised when a JSON response from the LLM holds no usable value."""


class BookFormatError(RepoBookError):
    """Raised when the compiled book is not a valid book JSON object."""


class UpstreamError(RepoBookError):
    """An external collaborator (LLM, GitHub, CDN, realtime API) failed."""

    service = "upstream"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class LLMServiceError(UpstreamError):
    """The LLM completion call failed."""

    service = "llm"


class GitHubError(UpstreamError):
    """The GitHub REST API call failed."""

    service = "github"

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class DiagramGenerationError(UpstreamError):
    """Generating, rendering or uploading a diagram failed."""

    service = "diagram"


class InterviewSessionError(UpstreamError):
    """Provisioning a realtime interview session failed."""

    service = "realtime"
