"""
Kernel Port Interface

Defines the contract for a long-lived interpreter session.
This is an output port - implemented by infrastructure layer (kernels).
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator

from polyexec.domain.events import ExecutionEvent


class IKernelPort(ABC):
    """
    Port interface for one stateful interpreter session.

    State (variables, definitions, imports) persists across submissions.
    Callers must not run two submissions on the same kernel at once; the
    kernel registry serializes access.
    """

    @property
    @abstractmethod
    def session_id(self) -> str:
        """Identifier stamped on every event this session emits."""
        pass

    @property
    @abstractmethod
    def language(self) -> str:
        """Canonical language name, e.g. ``python``."""
        pass

    @abstractmethod
    async def start(self) -> None:
        """
        Start the session. Called once before the first submission.

        Raises:
            KernelError: If the interpreter could not be started
        """
        pass

    @abstractmethod
    def submit(self, code: str) -> AsyncIterator[ExecutionEvent]:
        """
        Submit code and stream the resulting events.

        The iterator ends when the kernel reports the submission complete,
        successfully or not. Closing the iterator early (``aclose``) ends
        the subscription.

        Args:
            code: Source code for this session's language

        Returns:
            Async iterator of events in emission order

        Raises:
            KernelError: If the session died while running the submission
        """
        pass

    @abstractmethod
    async def shutdown(self) -> None:
        """Stop the session and release its resources."""
        pass
