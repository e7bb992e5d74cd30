"""
Execute Code Command

Caller-facing entry point. Validates a submission, layers the timeout on
the cancellation token, dispatches to the configured engine and turns
every outcome into an ExecutionResult.
"""

from typing import Dict, List, Optional

from polyexec.domain.ports import IExecutorPort
from polyexec.domain.value_objects import (
    ErrorKind,
    ExecutionMode,
    ExecutionRequest,
    ExecutionResult,
)
from polyexec.infrastructure.logging import get_logger
from polyexec.shared.cancellation import CancellationToken
from polyexec.shared.errors import (
    ExecutionCancelledError,
    InfrastructureError,
    InvalidRequestError,
    RequestError,
)

logger = get_logger(__name__)


class ExecutionGateway:
    """
    Dispatches submissions to the engine selected by ExecutionMode.

    Holds no execution logic of its own. Only request validation, timeout
    linking and error normalisation live here.

    Example:
        gateway = ExecutionGateway({ExecutionMode.IN_PROCESS: engine})
        result = await gateway.execute_code("python", "print('hi')")
        assert result.transcript == "hi\\n"
    """

    def __init__(
        self,
        engines: Dict[ExecutionMode, IExecutorPort],
        default_mode: ExecutionMode = ExecutionMode.IN_PROCESS,
        default_timeout_seconds: Optional[float] = None,
    ):
        """
        Args:
            engines: Engine per execution mode; at least the default mode
            default_mode: Mode used when a call does not name one
            default_timeout_seconds: Applied when a request has no timeout
        """
        if default_mode not in engines:
            raise ValueError(f"No engine configured for default mode {default_mode.value}")
        self._engines = dict(engines)
        self._default_mode = default_mode
        self._default_timeout = default_timeout_seconds

    @property
    def default_mode(self) -> ExecutionMode:
        return self._default_mode

    def modes(self) -> List[ExecutionMode]:
        return list(self._engines)

    def supported_languages(self, mode: Optional[ExecutionMode] = None) -> List[str]:
        engine = self._engines.get(mode or self._default_mode)
        return engine.supported_languages() if engine else []

    async def execute_code(
        self,
        language: str,
        code: str,
        cancellation: Optional[CancellationToken] = None,
        timeout_seconds: Optional[float] = None,
        mode: Optional[ExecutionMode] = None,
    ) -> ExecutionResult:
        """
        Execute ``code`` in ``language``.

        Never raises for request, execution, infrastructure or cancellation
        outcomes; inspect ``succeeded`` and ``error_kind`` instead.
        """
        request = ExecutionRequest(
            language=language,
            code=code,
            cancellation=cancellation,
            timeout_seconds=timeout_seconds,
        )
        return await self.execute(request, mode=mode)

    async def execute(
        self,
        request: ExecutionRequest,
        mode: Optional[ExecutionMode] = None,
    ) -> ExecutionResult:
        selected = mode or self._default_mode
        try:
            self._validate(request)
            engine = self._engines.get(selected)
            if engine is None:
                raise InvalidRequestError(f"Execution mode {selected.value} is not enabled")
        except RequestError as e:
            logger.info("Rejected execution request", language=request.language, error=e.message)
            return ExecutionResult.failure(ErrorKind.REQUEST, e.message)

        token = CancellationToken.linked_to(request.cancellation)
        timeout = request.timeout_seconds or self._default_timeout
        if timeout:
            token.cancel_after(timeout)
        linked = ExecutionRequest(
            language=request.language,
            code=request.code,
            cancellation=token,
            timeout_seconds=timeout,
        )

        try:
            return await engine.execute(linked)
        except RequestError as e:
            logger.info("Rejected execution request", language=request.language, error=e.message)
            return ExecutionResult.failure(ErrorKind.REQUEST, e.message)
        except ExecutionCancelledError as e:
            logger.info("Execution cancelled", language=request.language, reason=e.message)
            return ExecutionResult.failure(ErrorKind.CANCELLED, e.message)
        except InfrastructureError as e:
            logger.error(
                "Execution infrastructure failure",
                language=request.language,
                mode=selected.value,
                error=e.message,
                cause=str(e.original_error) if e.original_error else None,
            )
            return ExecutionResult.failure(ErrorKind.INFRASTRUCTURE, e.message)
        finally:
            token.dispose()

    @staticmethod
    def _validate(request: ExecutionRequest) -> None:
        if not isinstance(request.language, str) or not request.language.strip():
            raise InvalidRequestError("language must be a non-empty string")
        if not isinstance(request.code, str):
            raise InvalidRequestError("code must be a string")
        if request.timeout_seconds is not None and request.timeout_seconds <= 0:
            raise InvalidRequestError("timeout_seconds must be positive")
