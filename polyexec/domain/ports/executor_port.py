"""
Executor Port Interface

Defines the contract shared by both execution strategies.
This is an input port - called by the execution gateway.
"""

from abc import ABC, abstractmethod
from typing import List

from polyexec.domain.value_objects import ExecutionRequest, ExecutionResult


class IExecutorPort(ABC):
    """
    Port interface for code execution engines.

    Implementations report failures of the submitted code as
    ``succeeded=False`` results and raise only for request errors,
    cancellation and infrastructure faults.
    """

    @abstractmethod
    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        """
        Execute one submission.

        Args:
            request: Execution request value object

        Returns:
            ExecutionResult with transcript and verdict

        Raises:
            UnsupportedLanguageError: If the language is not served
            ExecutionCancelledError: If the cancellation token fired
            InfrastructureError: For platform faults
        """
        pass

    @abstractmethod
    def supported_languages(self) -> List[str]:
        """Languages this engine accepts."""
        pass
