"""
Domain Ports

Port interfaces defining contracts between layers.
All dependencies on external systems are abstracted through ports.
"""

from .executor_port import IExecutorPort
from .kernel_port import IKernelPort
from .container_engine_port import IContainerEnginePort

__all__ = [
    "IExecutorPort",
    "IKernelPort",
    "IContainerEnginePort",
]
