"""
Unit tests for ExecutionGateway.
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from polyexec.application.commands import ExecutionGateway
from polyexec.domain.ports import IExecutorPort
from polyexec.domain.value_objects import ErrorKind, ExecutionMode, ExecutionResult
from polyexec.shared.cancellation import CancellationToken
from polyexec.shared.errors import (
    ContainerEngineError,
    ExecutionCancelledError,
    UnsupportedLanguageError,
)


@pytest.fixture
def engine():
    mock = Mock(spec=IExecutorPort)
    mock.execute = AsyncMock(return_value=ExecutionResult(transcript="hi\n", succeeded=True))
    mock.supported_languages.return_value = ["python"]
    return mock


@pytest.fixture
def gateway(engine):
    return ExecutionGateway({ExecutionMode.IN_PROCESS: engine})


class TestExecutionGateway:
    """Tests for ExecutionGateway."""

    @pytest.mark.asyncio
    async def test_dispatches_to_engine(self, gateway, engine):
        result = await gateway.execute_code("python", "print('hi')")

        assert result == ExecutionResult(transcript="hi\n", succeeded=True)
        request = engine.execute.await_args.args[0]
        assert request.language == "python"
        assert request.code == "print('hi')"
        assert isinstance(request.cancellation, CancellationToken)

    @pytest.mark.asyncio
    async def test_empty_code_is_allowed(self, gateway, engine):
        await gateway.execute_code("python", "")

        engine.execute.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("language", ["", "   "])
    async def test_empty_language_is_request_error(self, gateway, engine, language):
        result = await gateway.execute_code(language, "print(1)")

        assert result.succeeded is False
        assert result.error_kind == ErrorKind.REQUEST
        engine.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_string_code_is_request_error(self, gateway):
        result = await gateway.execute_code("python", None)

        assert result.error_kind == ErrorKind.REQUEST

    @pytest.mark.asyncio
    async def test_unsupported_language_is_request_error(self, gateway, engine):
        engine.execute.side_effect = UnsupportedLanguageError("cobol", ["python"])

        result = await gateway.execute_code("cobol", "DISPLAY 'HI'.")

        assert result.succeeded is False
        assert result.error_kind == ErrorKind.REQUEST
        assert "cobol" in result.error_detail

    @pytest.mark.asyncio
    async def test_infrastructure_fault_is_normalised(self, gateway, engine):
        engine.execute.side_effect = ContainerEngineError("Docker daemon unreachable")

        result = await gateway.execute_code("python", "print(1)")

        assert result.succeeded is False
        assert result.error_kind == ErrorKind.INFRASTRUCTURE
        assert result.error_detail == "Docker daemon unreachable"

    @pytest.mark.asyncio
    async def test_cancellation_is_normalised(self, gateway, engine):
        engine.execute.side_effect = ExecutionCancelledError("Execution cancelled")

        result = await gateway.execute_code("python", "print(1)")

        assert result.error_kind == ErrorKind.CANCELLED

    @pytest.mark.asyncio
    async def test_timeout_fires_linked_token(self, gateway, engine):
        async def slow(request):
            await request.cancellation.wait()
            raise ExecutionCancelledError(request.cancellation.reason)

        engine.execute.side_effect = slow

        result = await gateway.execute_code("python", "import time", timeout_seconds=0.01)

        assert result.error_kind == ErrorKind.CANCELLED
        assert "timed out" in result.error_detail

    @pytest.mark.asyncio
    async def test_caller_token_propagates_and_is_unlinked_after(self, gateway, engine):
        seen = {}

        async def capture(request):
            seen["token"] = request.cancellation
            return ExecutionResult(transcript="", succeeded=True)

        engine.execute.side_effect = capture
        caller_token = CancellationToken()

        await gateway.execute_code("python", "pass", cancellation=caller_token)
        caller_token.cancel()

        assert seen["token"] is not caller_token
        assert seen["token"].cancelled is False

    @pytest.mark.asyncio
    async def test_caller_cancel_reaches_engine(self, gateway, engine):
        started = asyncio.Event()

        async def slow(request):
            started.set()
            reason = await request.cancellation.wait()
            raise ExecutionCancelledError(reason)

        engine.execute.side_effect = slow
        caller_token = CancellationToken()

        task = asyncio.create_task(gateway.execute_code("python", "x", cancellation=caller_token))
        await started.wait()
        caller_token.cancel("user pressed stop")
        result = await task

        assert result.error_kind == ErrorKind.CANCELLED
        assert result.error_detail == "user pressed stop"

    @pytest.mark.asyncio
    async def test_disabled_mode_is_request_error(self, gateway):
        result = await gateway.execute_code("python", "1", mode=ExecutionMode.CONTAINER)

        assert result.error_kind == ErrorKind.REQUEST

    def test_default_mode_must_have_engine(self, engine):
        with pytest.raises(ValueError):
            ExecutionGateway({ExecutionMode.CONTAINER: engine})

    def test_supported_languages(self, gateway):
        assert gateway.supported_languages() == ["python"]
