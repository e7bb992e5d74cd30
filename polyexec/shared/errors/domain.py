"""
Domain Errors

Errors raised for caller mistakes and for cancelled submissions.
None of these indicate a platform fault.
"""
from typing import Any, Optional


class DomainError(Exception):
    """Base class for domain errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class RequestError(DomainError):
    """The request itself is unusable; retrying it unchanged will not help."""
    pass


class InvalidRequestError(RequestError):
    """Malformed request."""
    pass


class UnsupportedLanguageError(RequestError):
    """No kernel or container profile exists for the requested language."""

    def __init__(self, language: str, supported: Optional[list[str]] = None):
        self.language = language
        self.supported = sorted(supported or [])
        super().__init__(
            f"Unsupported language: {language!r}",
            details={"language": language, "supported": self.supported},
        )


class KernelNotFoundError(RequestError):
    """No kernel is registered under the given alias."""

    def __init__(self, alias: str):
        self.alias = alias
        super().__init__(f"No kernel registered for alias {alias!r}", details={"alias": alias})


class ExecutionCancelledError(DomainError):
    """The submission was cancelled or timed out before it completed."""
    pass


class InvalidStatusError(DomainError):
    """A state transition was attempted from the wrong state."""
    pass
