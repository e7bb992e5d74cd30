"""
Docker Container Engine

aiodocker implementation of IContainerEnginePort. Talks to the Docker
daemon over its socket or TCP endpoint.
"""

from typing import Any, AsyncIterator, Dict, Optional

from aiodocker import Docker
from aiodocker.exceptions import DockerError

from polyexec.domain.ports import IContainerEnginePort
from polyexec.domain.value_objects import ContainerSpec
from polyexec.infrastructure.logging import get_logger
from polyexec.shared.errors import (
    ContainerEngineError,
    ContainerStartFailedError,
    ImagePullFailedError,
    LogCollectionError,
)

logger = get_logger(__name__)


def _describe(error: Exception) -> str:
    if isinstance(error, DockerError):
        return f"{error.status} {error.message}"
    return str(error) or type(error).__name__


class DockerContainerEngine(IContainerEnginePort):
    """
    Docker engine adapter.

    The client is created lazily on first use so the adapter can be built
    outside a running event loop.
    """

    def __init__(self, docker_url: Optional[str] = None, docker: Optional[Docker] = None):
        """
        Args:
            docker_url: Daemon URL, e.g. unix:///var/run/docker.sock or
                tcp://localhost:2375; DOCKER_HOST is used when None
            docker: Pre-built client, mainly for tests
        """
        self._docker_url = docker_url
        self._docker = docker

    def _ensure_docker(self) -> Docker:
        if self._docker is None:
            self._docker = Docker(url=self._docker_url)
        return self._docker

    async def close(self, timeout: Optional[float] = None) -> None:
        if self._docker is not None:
            await self._docker.close()
            self._docker = None

    async def image_exists(self, image: str) -> bool:
        docker = self._ensure_docker()
        try:
            await docker.images.inspect(image)
            return True
        except DockerError as e:
            if e.status == 404:
                return False
            raise ContainerEngineError(f"Failed to inspect image {image}: {_describe(e)}", e)
        except OSError as e:
            raise ContainerEngineError(f"Docker daemon unreachable: {_describe(e)}", e)

    async def pull_image(self, image: str) -> AsyncIterator[Dict[str, Any]]:
        docker = self._ensure_docker()
        try:
            async for message in docker.images.pull(image, stream=True):
                if message.get("error"):
                    raise ImagePullFailedError(f"Failed to pull image {image}: {message['error']}")
                yield message
        except DockerError as e:
            raise ImagePullFailedError(f"Failed to pull image {image}: {_describe(e)}", e)
        except OSError as e:
            raise ContainerEngineError(f"Docker daemon unreachable: {_describe(e)}", e)

    def _build_config(self, spec: ContainerSpec) -> Dict[str, Any]:
        host_config: Dict[str, Any] = {
            "Binds": [bind.to_docker() for bind in spec.binds],
            "Memory": spec.memory_limit_bytes,
            "MemorySwap": spec.memory_limit_bytes,
            "NanoCpus": spec.limits.nano_cpus,
            "NetworkMode": spec.network_mode,
            "CapDrop": ["ALL"],
            "SecurityOpt": ["no-new-privileges"],
            "AutoRemove": False,
        }
        config: Dict[str, Any] = {
            "Image": spec.image,
            "Cmd": list(spec.command),
            "WorkingDir": spec.working_dir,
            "AttachStdout": True,
            "AttachStderr": True,
            "Tty": False,
            "Labels": dict(spec.labels),
            "HostConfig": host_config,
        }
        if spec.user:
            config["User"] = spec.user
        return config

    async def create_container(self, spec: ContainerSpec) -> str:
        docker = self._ensure_docker()
        try:
            container = await docker.containers.create(self._build_config(spec))
        except DockerError as e:
            raise ContainerStartFailedError(f"Failed to create container: {_describe(e)}", e)
        except OSError as e:
            raise ContainerEngineError(f"Docker daemon unreachable: {_describe(e)}", e)
        logger.debug("Docker container created", container_id=container.id, image=spec.image)
        return container.id

    async def start_container(self, container_id: str) -> None:
        docker = self._ensure_docker()
        try:
            await docker.containers.container(container_id).start()
        except DockerError as e:
            raise ContainerStartFailedError(
                f"Failed to start container {container_id}: {_describe(e)}", e
            )
        except OSError as e:
            raise ContainerEngineError(f"Docker daemon unreachable: {_describe(e)}", e)

    async def wait_container(self, container_id: str) -> int:
        docker = self._ensure_docker()
        try:
            result = await docker.containers.container(container_id).wait()
        except (DockerError, OSError) as e:
            raise ContainerEngineError(
                f"Failed to wait for container {container_id}: {_describe(e)}", e
            )
        return int(result["StatusCode"])

    async def kill_container(self, container_id: str) -> None:
        docker = self._ensure_docker()
        try:
            await docker.containers.container(container_id).kill()
        except DockerError as e:
            # 409: not running any more
            if e.status == 409:
                return
            raise ContainerEngineError(f"Failed to kill container {container_id}: {_describe(e)}", e)
        except OSError as e:
            raise ContainerEngineError(f"Docker daemon unreachable: {_describe(e)}", e)

    async def get_container_logs(self, container_id: str) -> str:
        docker = self._ensure_docker()
        try:
            lines = await docker.containers.container(container_id).log(
                stdout=True, stderr=True, follow=False
            )
        except (DockerError, OSError) as e:
            raise LogCollectionError(
                f"Failed to get logs for container {container_id}: {_describe(e)}", e
            )
        return "".join(lines)

    async def remove_container(self, container_id: str, force: bool = True) -> None:
        docker = self._ensure_docker()
        try:
            await docker.containers.container(container_id).delete(force=force)
        except DockerError as e:
            if e.status == 404:
                return
            raise ContainerEngineError(
                f"Failed to remove container {container_id}: {_describe(e)}", e
            )
        except OSError as e:
            raise ContainerEngineError(f"Docker daemon unreachable: {_describe(e)}", e)

    async def ping(self) -> bool:
        try:
            version = await self._ensure_docker().version()
            return version is not None
        except Exception as e:
            logger.error("Docker ping failed", error=str(e))
            return False
