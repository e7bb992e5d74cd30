"""
Shared error taxonomy.

Request errors are the caller's fault, infrastructure errors the
platform's. Failures of the submitted code are not exceptions at all.
"""

from polyexec.shared.errors.domain import (
    DomainError,
    RequestError,
    InvalidRequestError,
    UnsupportedLanguageError,
    KernelNotFoundError,
    ExecutionCancelledError,
    InvalidStatusError,
)
from polyexec.shared.errors.infrastructure import (
    InfrastructureError,
    ContainerEngineError,
    ImagePullFailedError,
    ContainerStartFailedError,
    LogCollectionError,
    KernelError,
)

__all__ = [
    "DomainError",
    "RequestError",
    "InvalidRequestError",
    "UnsupportedLanguageError",
    "KernelNotFoundError",
    "ExecutionCancelledError",
    "InvalidStatusError",
    "InfrastructureError",
    "ContainerEngineError",
    "ImagePullFailedError",
    "ContainerStartFailedError",
    "LogCollectionError",
    "KernelError",
]
