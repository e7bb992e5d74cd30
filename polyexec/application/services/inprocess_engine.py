"""
In-Process Execution Engine

Routes a submission to the shared interpreter session for its language,
collects the session's events and reduces them to a transcript.
"""

from typing import AsyncIterator, List, Optional

from polyexec.application.services.kernel_registry import KernelHandle, KernelRegistry
from polyexec.domain.events import ExecutionEvent
from polyexec.domain.ports import IExecutorPort
from polyexec.domain.services import TranscriptBuilder
from polyexec.domain.value_objects import ExecutionRequest, ExecutionResult
from polyexec.infrastructure.logging import get_logger
from polyexec.shared.cancellation import CancellationToken, run_cancellable
from polyexec.shared.errors import KernelNotFoundError, UnsupportedLanguageError

logger = get_logger(__name__)


class InProcessExecutionEngine(IExecutorPort):
    """
    Executes code on long-lived in-process kernels.

    Variables and definitions persist between submissions to the same
    kernel; that is the session semantics, not a leak.
    """

    def __init__(self, registry: KernelRegistry):
        self._registry = registry

    def supported_languages(self) -> List[str]:
        return self._registry.aliases()

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        """
        Execute code on the kernel registered for ``request.language``.

        Args:
            request: Execution request value object

        Returns:
            Reduced ExecutionResult

        Raises:
            UnsupportedLanguageError: If no kernel serves the language
            ExecutionCancelledError: If the token fired while waiting for
                the kernel or while the submission was running
            KernelError: If the session died
        """
        try:
            handle = self._registry.resolve(request.language)
        except KernelNotFoundError:
            raise UnsupportedLanguageError(request.language, self.supported_languages())

        token = request.cancellation
        await handle.acquire(token)
        try:
            logger.debug(
                "Submitting code to kernel",
                language=request.language,
                session_id=handle.session_id,
            )
            builder = TranscriptBuilder()
            await self._collect(handle, request.code, builder, token)
        finally:
            handle.release()

        result = builder.build()
        logger.info(
            "In-process execution finished",
            language=request.language,
            session_id=handle.session_id,
            succeeded=result.succeeded,
        )
        return result

    async def _collect(
        self,
        handle: KernelHandle,
        code: str,
        builder: TranscriptBuilder,
        token: Optional[CancellationToken],
    ) -> None:
        """
        Drain one submission's event stream into ``builder``.

        The stream is always closed before returning, including on
        cancellation, so no subscription outlives the submission.
        """
        stream: AsyncIterator[ExecutionEvent] = handle.kernel.submit(code)
        try:
            while True:
                try:
                    event = await run_cancellable(_next_event(stream), token)
                except StopAsyncIteration:
                    break
                builder.add(event)
        finally:
            await stream.aclose()


async def _next_event(stream: AsyncIterator[ExecutionEvent]) -> ExecutionEvent:
    return await stream.__anext__()
