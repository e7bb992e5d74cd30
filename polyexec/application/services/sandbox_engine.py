"""
Sandboxed Execution Engine

Runs each submission in a fresh, resource-limited container with the code
written to a temporary workspace that is bind-mounted read-only.
"""

from typing import AsyncContextManager, Callable, Dict, List, Mapping, Optional

from polyexec.application.services.container_lifecycle import ContainerLifecycleManager
from polyexec.domain.entities import ContainerRun
from polyexec.domain.ports import IExecutorPort
from polyexec.domain.value_objects import (
    BindMount,
    ContainerSpec,
    ErrorKind,
    ExecutionRequest,
    ExecutionResult,
    LanguageProfile,
    ResourceLimit,
)
from polyexec.infrastructure.logging import get_logger
from polyexec.infrastructure.workspace import Workspace, temporary_workspace
from polyexec.shared.errors import ExecutionCancelledError, UnsupportedLanguageError

logger = get_logger(__name__)

WorkspaceFactory = Callable[[Optional[str]], AsyncContextManager[Workspace]]


class SandboxedExecutionEngine(IExecutorPort):
    """
    One container per submission, nothing shared between runs.

    Example:
        engine = SandboxedExecutionEngine(
            lifecycle=ContainerLifecycleManager(DockerContainerEngine()),
            profiles=build_language_profiles(),
            limits=ResourceLimit.from_megabytes(512, 1.0),
        )
        result = await engine.execute(ExecutionRequest("python", "print(1)"))
    """

    def __init__(
        self,
        lifecycle: ContainerLifecycleManager,
        profiles: Mapping[str, LanguageProfile],
        limits: ResourceLimit,
        workspace_mount_path: str = "/workspace",
        network_mode: str = "none",
        user: Optional[str] = None,
        workspace_root: Optional[str] = None,
        workspace_factory: WorkspaceFactory = temporary_workspace,
    ):
        self._lifecycle = lifecycle
        self._profiles: Dict[str, LanguageProfile] = dict(profiles)
        self._limits = limits
        self._mount_path = workspace_mount_path
        self._network_mode = network_mode
        self._user = user
        self._workspace_root = workspace_root
        self._workspace_factory = workspace_factory

    def supported_languages(self) -> List[str]:
        return sorted(self._profiles)

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        """
        Run ``request.code`` in a new container.

        Raises:
            UnsupportedLanguageError: If no profile exists for the language
            ExecutionCancelledError: If the run was cancelled or timed out
            InfrastructureError: If the container engine failed
        """
        profile = self._profiles.get(request.language)
        if profile is None:
            raise UnsupportedLanguageError(request.language, self.supported_languages())

        async with self._workspace_factory(self._workspace_root) as workspace:
            workspace.write_file(profile.filename, request.code)
            spec = self._build_spec(request.language, profile, str(workspace.path))
            logger.info(
                "Starting sandbox run",
                language=request.language,
                image=spec.image,
            )
            run = await self._lifecycle.run(spec, request.cancellation)

        return self._to_result(request.language, run)

    def _build_spec(self, language: str, profile: LanguageProfile, host_path: str) -> ContainerSpec:
        return ContainerSpec(
            image=profile.image,
            command=profile.command,
            working_dir=self._mount_path,
            limits=self._limits,
            binds=(
                BindMount(host_path=host_path, container_path=self._mount_path, read_only=True),
            ),
            network_mode=self._network_mode,
            user=self._user,
            labels={"polyexec.language": language},
        )

    def _to_result(self, language: str, run: ContainerRun) -> ExecutionResult:
        if run.cancelled:
            raise ExecutionCancelledError(run.failure_reason or "Execution cancelled")

        logger.info(
            "Sandbox run finished",
            language=language,
            container_id=run.container_id,
            exit_code=run.exit_code,
            state=run.state.value,
        )
        if run.exit_code == 0:
            return ExecutionResult(transcript=run.logs, succeeded=True)

        # Logs double as the transcript so partial output is not lost.
        return ExecutionResult(
            transcript=run.logs,
            succeeded=False,
            error_detail=run.logs or f"Process exited with code {run.exit_code}",
            error_kind=ErrorKind.EXECUTION,
        )
