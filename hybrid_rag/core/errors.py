"""
Error taxonomy shared by the pipeline and the API layer.

Routes map these to HTTP statuses:
  QueryValidationError → 400
  ServiceNotReady      → 503
  ProviderError        → 500 (rate limit exhausted or hard provider error)

An empty retrieval result is not an error and has no class here.
"""

from __future__ import annotations


class QueryValidationError(ValueError):
    """Raised when the user query is missing, blank, or not a string."""


class ServiceNotReady(RuntimeError):
    """Raised when an embedding / index / store handle is not available yet."""

    def __init__(self, service: str, message: str | None = None):
        self.service = service
        super().__init__(message or f"{service} not initialized")


class ProviderError(RuntimeError):
    """Base class for answer-generation provider failures."""

    def __init__(self, provider: str, message: str, status_code: int | None = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"{provider} error: {message}")


class ProviderHardError(ProviderError):
    """Non-2xx (other than a handled 429) or malformed provider response."""


class ProviderRateLimited(ProviderError):
    """HTTP 429 from a provider; ``retry_after`` is the suggested wait in seconds."""

    def __init__(
        self,
        provider: str,
        message: str,
        retry_after: float | None = None,
        attempts: int = 1,
    ):
        self.retry_after = retry_after
        self.attempts = attempts
        super().__init__(provider, message, status_code=429)
