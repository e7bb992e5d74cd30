"""
Dependency wiring.

Builds the kernel registry, the container engine and the gateway from
Settings. Interfaces (HTTP, CLI) only talk to the GatewayContainer.
"""

from typing import Dict, Optional

from polyexec.application.commands import ExecutionGateway
from polyexec.application.services import (
    ContainerLifecycleManager,
    InProcessExecutionEngine,
    KernelRegistry,
    SandboxedExecutionEngine,
)
from polyexec.domain.ports import IContainerEnginePort, IExecutorPort
from polyexec.domain.value_objects import ExecutionMode
from polyexec.infrastructure.config import Settings, build_language_profiles
from polyexec.infrastructure.docker import DockerContainerEngine
from polyexec.infrastructure.kernels import PythonKernel, ShellKernel
from polyexec.infrastructure.logging import get_logger

logger = get_logger(__name__)

PYTHON_ALIASES = ("python", "python3", "py")
SHELL_ALIASES = ("bash", "sh", "shell")


def build_kernel_registry(settings: Settings) -> KernelRegistry:
    """Register the built-in kernels plus any configured Jupyter kernelspecs."""
    registry = KernelRegistry()
    registry.register_many(PYTHON_ALIASES, PythonKernel)
    registry.register_many(SHELL_ALIASES, ShellKernel)

    if settings.jupyter_kernels:
        from polyexec.infrastructure.kernels.jupyter_kernel import JupyterKernel

        for alias, kernel_name in settings.jupyter_kernels.items():
            registry.register(
                alias,
                lambda alias=alias, kernel_name=kernel_name: JupyterKernel(
                    kernel_name=kernel_name,
                    language=alias,
                    startup_timeout=settings.jupyter_startup_timeout,
                ),
            )
    return registry


def build_container_engine(settings: Settings) -> IContainerEnginePort:
    return DockerContainerEngine(docker_url=settings.docker_url)


class GatewayContainer:
    """
    Owns the gateway and everything it needs to be started and closed.

    Only the engine for the configured mode is built, so in-process mode
    never touches Docker and container mode never starts kernels.
    """

    def __init__(
        self,
        settings: Settings,
        gateway: ExecutionGateway,
        registry: Optional[KernelRegistry] = None,
        container_engine: Optional[IContainerEnginePort] = None,
    ):
        self.settings = settings
        self.gateway = gateway
        self.registry = registry
        self.container_engine = container_engine

    async def start(self) -> None:
        if self.registry is not None:
            await self.registry.start()
        logger.info(
            "Execution gateway ready",
            mode=self.gateway.default_mode.value,
            languages=self.gateway.supported_languages(),
        )

    async def close(self) -> None:
        if self.registry is not None:
            await self.registry.shutdown()
        if self.container_engine is not None:
            await self.container_engine.close()

    async def __aenter__(self) -> "GatewayContainer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


def build_gateway(
    settings: Settings,
    container_engine: Optional[IContainerEnginePort] = None,
    registry: Optional[KernelRegistry] = None,
) -> GatewayContainer:
    """
    Build a GatewayContainer for ``settings.execution_mode``.

    Args:
        settings: Application settings
        container_engine: Engine override, e.g. a fake in tests
        registry: Kernel registry override
    """
    engines: Dict[ExecutionMode, IExecutorPort] = {}
    mode = settings.execution_mode

    if mode is ExecutionMode.IN_PROCESS:
        registry = registry or build_kernel_registry(settings)
        engines[mode] = InProcessExecutionEngine(registry)
    else:
        registry = None
        container_engine = container_engine or build_container_engine(settings)
        engines[mode] = SandboxedExecutionEngine(
            lifecycle=ContainerLifecycleManager(container_engine),
            profiles=build_language_profiles(settings.image_overrides),
            limits=settings.resource_limit(),
            workspace_mount_path=settings.workspace_mount_path,
            network_mode=settings.network_mode,
            user=settings.container_user,
            workspace_root=settings.workspace_root,
        )

    gateway = ExecutionGateway(
        engines,
        default_mode=mode,
        default_timeout_seconds=settings.default_timeout_seconds,
    )
    return GatewayContainer(settings, gateway, registry=registry, container_engine=container_engine)
