"""
Container Engine Port Interface

Defines the contract for the remote container engine.
This is an output port - implemented by infrastructure layer (aiodocker).
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, Optional

from polyexec.domain.value_objects import ContainerSpec


class IContainerEnginePort(ABC):
    """
    Port interface for container engine operations.

    Every method may raise ContainerEngineError when the engine is
    unreachable or answers unexpectedly.
    """

    @abstractmethod
    async def image_exists(self, image: str) -> bool:
        """Inspect an image; False when it is not present locally."""
        pass

    @abstractmethod
    def pull_image(self, image: str) -> AsyncIterator[Dict[str, Any]]:
        """
        Pull an image, streaming status messages.

        Raises:
            ImagePullFailedError: If the pull fails
        """
        pass

    @abstractmethod
    async def create_container(self, spec: ContainerSpec) -> str:
        """
        Create (but do not start) a container.

        Returns:
            Container id

        Raises:
            ContainerStartFailedError: If creation is rejected
        """
        pass

    @abstractmethod
    async def start_container(self, container_id: str) -> None:
        """
        Start a created container.

        Raises:
            ContainerStartFailedError: If the container does not start
        """
        pass

    @abstractmethod
    async def wait_container(self, container_id: str) -> int:
        """Wait for the container process to exit; returns its exit code."""
        pass

    @abstractmethod
    async def kill_container(self, container_id: str) -> None:
        """Force-stop a running container."""
        pass

    @abstractmethod
    async def get_container_logs(self, container_id: str) -> str:
        """
        Return combined stdout and stderr (non-streaming).

        Raises:
            LogCollectionError: If the logs cannot be retrieved
        """
        pass

    @abstractmethod
    async def remove_container(self, container_id: str, force: bool = True) -> None:
        """Remove a container; raises ContainerEngineError on failure."""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Check the engine connection."""
        pass

    @abstractmethod
    async def close(self, timeout: Optional[float] = None) -> None:
        """Close the engine client."""
        pass
