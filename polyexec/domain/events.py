"""
Execution Events

The closed set of events a kernel emits while running one submission.
Every event carries its emission order and the id of the session that
produced it.
"""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class OutputProduced:
    """A line written to standard output."""

    text: str
    sequence: int
    session_id: str


@dataclass(frozen=True)
class ErrorProduced:
    """A line written to standard error."""

    text: str
    sequence: int
    session_id: str


@dataclass(frozen=True)
class ValueReturned:
    """The formatted value of the submission's trailing expression."""

    text: str
    sequence: int
    session_id: str


@dataclass(frozen=True)
class Failed:
    """The submission failed; ``cause`` holds a traceback or similar detail."""

    message: str
    sequence: int
    session_id: str
    cause: Optional[str] = None


ExecutionEvent = Union[OutputProduced, ErrorProduced, ValueReturned, Failed]

EVENT_TYPES = (OutputProduced, ErrorProduced, ValueReturned, Failed)


class EventSequencer:
    """
    Hands out monotonically increasing sequence numbers for one session.

    Kernels own one sequencer each; numbers keep growing across submissions.
    """

    def __init__(self, session_id: str):
        self.session_id = session_id
        self._next = 0

    def _advance(self) -> int:
        value = self._next
        self._next += 1
        return value

    def output(self, text: str) -> OutputProduced:
        return OutputProduced(text=text, sequence=self._advance(), session_id=self.session_id)

    def error(self, text: str) -> ErrorProduced:
        return ErrorProduced(text=text, sequence=self._advance(), session_id=self.session_id)

    def value(self, text: str) -> ValueReturned:
        return ValueReturned(text=text, sequence=self._advance(), session_id=self.session_id)

    def failed(self, message: str, cause: Optional[str] = None) -> Failed:
        return Failed(message=message, sequence=self._advance(), session_id=self.session_id, cause=cause)
