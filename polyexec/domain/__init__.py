"""
Domain Layer

Value objects, execution events, the container run entity and the
transcript reducer. Nothing here performs I/O.
"""

from .entities import ContainerRun, ContainerState
from .events import ErrorProduced, ExecutionEvent, Failed, OutputProduced, ValueReturned
from .services import TranscriptBuilder, reduce_events
from .value_objects import (
    ContainerSpec,
    ErrorKind,
    ExecutionMode,
    ExecutionRequest,
    ExecutionResult,
    LanguageProfile,
    ResourceLimit,
)

__all__ = [
    "ContainerRun",
    "ContainerState",
    "ContainerSpec",
    "ErrorKind",
    "ErrorProduced",
    "ExecutionEvent",
    "ExecutionMode",
    "ExecutionRequest",
    "ExecutionResult",
    "Failed",
    "LanguageProfile",
    "OutputProduced",
    "ResourceLimit",
    "TranscriptBuilder",
    "ValueReturned",
    "reduce_events",
]
