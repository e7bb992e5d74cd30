"""
Application Services

Kernel registry, the two execution engines and the container lifecycle
they share the container engine through.
"""

from .container_lifecycle import ContainerLifecycleManager
from .inprocess_engine import InProcessExecutionEngine
from .kernel_registry import KernelHandle, KernelRegistry
from .sandbox_engine import SandboxedExecutionEngine

__all__ = [
    "ContainerLifecycleManager",
    "InProcessExecutionEngine",
    "KernelHandle",
    "KernelRegistry",
    "SandboxedExecutionEngine",
]
