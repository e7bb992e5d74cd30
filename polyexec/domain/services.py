"""
Domain Services

Transcript reduction: turns the ordered events of one submission into a
single ExecutionResult, the way a REPL transcript reads.
"""

from typing import Iterable, List, Optional

from polyexec.domain.events import (
    ErrorProduced,
    ExecutionEvent,
    Failed,
    OutputProduced,
    ValueReturned,
)
from polyexec.domain.value_objects import ErrorKind, ExecutionResult


class TranscriptBuilder:
    """
    Incremental form of the reducer.

    Feed events in emission order with ``add``; once a Failed event has been
    added the builder is closed and ignores everything after it.
    """

    def __init__(self) -> None:
        self._lines: List[str] = []
        self._failure: Optional[Failed] = None

    @property
    def closed(self) -> bool:
        return self._failure is not None

    def add(self, event: ExecutionEvent) -> bool:
        """
        Apply one event.

        Returns:
            False once the transcript is closed and further events are ignored
        """
        if self._failure is not None:
            return False

        if isinstance(event, (OutputProduced, ErrorProduced, ValueReturned)):
            self._append_line(event.text)
        elif isinstance(event, Failed):
            self._append_line(f"Error: {event.message}")
            self._failure = event
            return False
        else:
            raise TypeError(f"Unknown execution event: {type(event).__name__}")
        return True

    def _append_line(self, text: str) -> None:
        self._lines.append(text if text.endswith("\n") else text + "\n")

    def build(self) -> ExecutionResult:
        transcript = "".join(self._lines)
        if self._failure is not None:
            return ExecutionResult(
                transcript=transcript,
                succeeded=False,
                error_detail=self._failure.message,
                error_kind=ErrorKind.EXECUTION,
            )
        return ExecutionResult(transcript=transcript, succeeded=True)


def reduce_events(events: Iterable[ExecutionEvent]) -> ExecutionResult:
    """
    Reduce one submission's events to an ExecutionResult.

    Events are applied in the order given. Output and error lines are
    interleaved as emitted, a returned value becomes a line of its own, and
    the first Failed event appends ``"Error: <message>"`` and stops the
    reduction.

    Args:
        events: Events of a single submission in emission order

    Returns:
        ExecutionResult; succeeded is False iff a Failed event was seen
    """
    builder = TranscriptBuilder()
    for event in events:
        if not builder.add(event):
            break
    return builder.build()
