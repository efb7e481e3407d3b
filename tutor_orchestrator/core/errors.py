"""
Error taxonomy for the orchestration core.

Every failure of a reply-generation call resolves to one of these kinds so an
HTTP layer can map them to stable status codes.
"""

from typing import Optional


class OrchestratorError(Exception):
    """Base class for all orchestration errors."""
    status_code = 500
    public_message = "An unexpected error occurred"


class NotFoundError(OrchestratorError):
    """User, language or tier could not be resolved."""
    status_code = 404

    @property
    def public_message(self) -> str:
        return str(self)


class InvalidArgumentError(OrchestratorError):
    """Request carried a value the core cannot serve, such as an unsupported language."""
    status_code = 400

    @property
    def public_message(self) -> str:
        return str(self)


class RateLimitExceededError(OrchestratorError):
    """Daily token budget would be exceeded by this request."""
    status_code = 429

    def __init__(self, message: str, remaining_tokens: int):
        super().__init__(message)
        self.remaining_tokens = remaining_tokens

    @property
    def public_message(self) -> str:
        return str(self)


class ProviderError(OrchestratorError):
    """Completion provider failed, after retries where the failure was retryable.

    The full diagnostic detail stays on the exception; end users only ever see
    ``public_message``.
    """
    status_code = 503
    public_message = "AI service temporarily unavailable. Please try again."

    def __init__(
        self,
        message: str,
        provider_status: Optional[int] = None,
        body: Optional[str] = None,
        attempts: int = 1
    ):
        super().__init__(message)
        self.provider_status = provider_status
        self.body = body
        self.attempts = attempts
