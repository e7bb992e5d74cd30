"""
Infrastructure Errors

Platform faults: the container engine or an interpreter session broke.
These are candidates for caller-level retry.
"""
from typing import Optional


class InfrastructureError(Exception):
    """Base class for infrastructure errors."""

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None
    ):
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)


class ContainerEngineError(InfrastructureError):
    """Container engine unreachable or returned an unexpected error."""
    pass


class ImagePullFailedError(InfrastructureError):
    """Image was missing locally and could not be pulled."""
    pass


class ContainerStartFailedError(InfrastructureError):
    """Container could not be created or started."""
    pass


class LogCollectionError(InfrastructureError):
    """Container ran but its logs could not be retrieved."""
    pass


class KernelError(InfrastructureError):
    """Interpreter session failed to start or died mid-submission."""
    pass
