"""
End-to-end gateway tests wired through build_gateway.
"""

import shutil

import pytest

from polyexec.domain.value_objects import ErrorKind, ExecutionMode
from polyexec.infrastructure.config import Settings
from polyexec.infrastructure.dependencies import build_gateway
from polyexec.tests.fixtures import FakeContainerEngine


@pytest.mark.integration
@pytest.mark.skipif(shutil.which("bash") is None, reason="bash not installed")
class TestInProcessGateway:
    @pytest.mark.asyncio
    async def test_python_and_bash_sessions(self):
        async with build_gateway(Settings(execution_mode=ExecutionMode.IN_PROCESS)) as container:
            gateway = container.gateway
            first = await gateway.execute_code("python", "counter = 1")
            second = await gateway.execute_code("py", "counter += 1\ncounter")
            shell = await gateway.execute_code("bash", "echo from-bash")

        assert first.succeeded is True
        assert first.transcript == ""
        assert second.transcript == "2\n"
        assert shell.transcript == "from-bash\n"

    @pytest.mark.asyncio
    async def test_unsupported_language(self):
        async with build_gateway(Settings(execution_mode=ExecutionMode.IN_PROCESS)) as container:
            result = await container.gateway.execute_code("cobol", "DISPLAY 'HI'.")

        assert result.error_kind == ErrorKind.REQUEST
        assert "python" in result.error_detail


class TestContainerGateway:
    @pytest.mark.asyncio
    async def test_container_mode_uses_sandbox(self, tmp_path):
        engine = FakeContainerEngine(logs="42\n")
        settings = Settings(
            execution_mode=ExecutionMode.CONTAINER,
            workspace_root=str(tmp_path),
            memory_limit_mb=64,
        )

        async with build_gateway(settings, container_engine=engine) as container:
            assert container.registry is None
            result = await container.gateway.execute_code("python", "print(42)")

        assert result.transcript == "42\n"
        assert engine.specs[0].memory_limit_bytes == 64 * 1024 * 1024
        assert engine.ops()[-1] == "close"

    @pytest.mark.asyncio
    async def test_pull_failure_is_infrastructure(self, tmp_path):
        engine = FakeContainerEngine(image_present=False, fail_pull=True)
        settings = Settings(execution_mode=ExecutionMode.CONTAINER, workspace_root=str(tmp_path))

        async with build_gateway(settings, container_engine=engine) as container:
            result = await container.gateway.execute_code("python", "print(1)")

        assert result.succeeded is False
        assert result.error_kind == ErrorKind.INFRASTRUCTURE
        assert "manifest unknown" in result.error_detail
        assert engine.created == []
        assert list(tmp_path.iterdir()) == []
