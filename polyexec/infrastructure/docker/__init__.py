from .docker_engine import DockerContainerEngine

__all__ = ["DockerContainerEngine"]
