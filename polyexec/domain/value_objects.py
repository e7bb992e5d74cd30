"""
Execution Value Objects

Immutable value objects shared by both execution strategies.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, Optional, Tuple

if TYPE_CHECKING:
    from polyexec.shared.cancellation import CancellationToken


class ExecutionMode(str, Enum):
    """Which engine the gateway dispatches to."""

    IN_PROCESS = "in_process"
    CONTAINER = "container"


class ErrorKind(str, Enum):
    """
    Why a result did not succeed.

    EXECUTION means the submitted code failed; INFRASTRUCTURE means the
    platform did. Only infrastructure faults are worth retrying.
    """

    NONE = "none"
    EXECUTION = "execution"
    REQUEST = "request"
    INFRASTRUCTURE = "infrastructure"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ExecutionRequest:
    """
    A code submission.

    Attributes:
        language: Kernel alias or container language name (case-sensitive)
        code: Source code; may be empty
        cancellation: Optional token the caller fires to abort
        timeout_seconds: Optional wall-clock budget, layered on the token
    """

    language: str
    code: str
    cancellation: Optional["CancellationToken"] = field(default=None, compare=False)
    timeout_seconds: Optional[float] = None


@dataclass(frozen=True)
class ExecutionResult:
    """
    Outcome of one submission, owned by the caller.

    Attributes:
        transcript: Reduced, human-readable output
        succeeded: False when the code failed or the run could not complete
        error_detail: Failure message or raw logs for a failed run
        error_kind: Category of the failure
    """

    transcript: str
    succeeded: bool
    error_detail: Optional[str] = None
    error_kind: ErrorKind = ErrorKind.NONE

    @classmethod
    def failure(cls, kind: ErrorKind, detail: str, transcript: str = "") -> "ExecutionResult":
        return cls(transcript=transcript, succeeded=False, error_detail=detail, error_kind=kind)

    def to_dict(self) -> Dict[str, object]:
        """Convert to dictionary for serialization."""
        return {
            "transcript": self.transcript,
            "succeeded": self.succeeded,
            "error_detail": self.error_detail,
            "error_kind": self.error_kind.value,
        }


@dataclass(frozen=True)
class ResourceLimit:
    """
    Container resource caps. Unbounded values are rejected.

    Attributes:
        memory_limit_bytes: Hard memory cap (swap is capped to the same value)
        cpu_limit_cores: CPU share in cores, converted to NanoCPUs
    """

    memory_limit_bytes: int = 512 * 1024 * 1024
    cpu_limit_cores: float = 1.0

    def __post_init__(self):
        if self.memory_limit_bytes <= 0:
            raise ValueError("memory_limit_bytes must be positive")
        if self.cpu_limit_cores <= 0:
            raise ValueError("cpu_limit_cores must be positive")

    @classmethod
    def from_megabytes(cls, memory_mb: int, cpu_cores: float) -> "ResourceLimit":
        return cls(memory_limit_bytes=int(memory_mb) * 1024 * 1024, cpu_limit_cores=cpu_cores)

    @property
    def nano_cpus(self) -> int:
        return int(self.cpu_limit_cores * 1_000_000_000)


@dataclass(frozen=True)
class BindMount:
    """Host directory mapped into a container."""

    host_path: str
    container_path: str
    read_only: bool = False

    def to_docker(self) -> str:
        mode = "ro" if self.read_only else "rw"
        return f"{self.host_path}:{self.container_path}:{mode}"


@dataclass(frozen=True)
class ContainerSpec:
    """
    Everything needed to create one sandbox container.

    Built fresh for every submission and never reused.
    """

    image: str
    command: Tuple[str, ...]
    working_dir: str
    limits: ResourceLimit
    binds: Tuple[BindMount, ...] = ()
    network_mode: str = "none"
    user: Optional[str] = None
    labels: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not self.image:
            raise ValueError("image must not be empty")
        if not self.command:
            raise ValueError("command must not be empty")
        if self.network_mode == "host":
            raise ValueError("host networking is not allowed for sandbox containers")

    @property
    def memory_limit_bytes(self) -> int:
        return self.limits.memory_limit_bytes

    @property
    def cpu_limit_cores(self) -> float:
        return self.limits.cpu_limit_cores


@dataclass(frozen=True)
class LanguageProfile:
    """
    How to run one language inside a container.

    Attributes:
        image: Image with the run tool pre-installed
        filename: Name the submitted code is written to in the workspace
        command: Argv run from the workspace directory
    """

    image: str
    filename: str
    command: Tuple[str, ...]

    def with_image(self, image: str) -> "LanguageProfile":
        return LanguageProfile(image=image, filename=self.filename, command=self.command)
