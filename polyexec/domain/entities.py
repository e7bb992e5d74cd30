"""
Container Run Entity

Tracks one sandbox submission through the container lifecycle:

    CREATED -> IMAGE_VERIFIED -> CONTAINER_STARTED -> LOGS_COLLECTED -> REMOVED

Any state before REMOVED may also move to FAILED. A run that reached
CONTAINER_STARTED still ends in REMOVED even when it failed; the failure
is kept in ``failure_reason``.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from polyexec.domain.value_objects import ContainerSpec
from polyexec.shared.errors import InvalidStatusError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContainerState(str, Enum):
    """Lifecycle state of one sandbox run."""

    CREATED = "created"
    IMAGE_VERIFIED = "image_verified"
    CONTAINER_STARTED = "container_started"
    LOGS_COLLECTED = "logs_collected"
    REMOVED = "removed"
    FAILED = "failed"


_TRANSITIONS = {
    ContainerState.CREATED: {ContainerState.IMAGE_VERIFIED, ContainerState.FAILED},
    ContainerState.IMAGE_VERIFIED: {ContainerState.CONTAINER_STARTED, ContainerState.FAILED, ContainerState.REMOVED},
    ContainerState.CONTAINER_STARTED: {ContainerState.LOGS_COLLECTED, ContainerState.FAILED, ContainerState.REMOVED},
    ContainerState.LOGS_COLLECTED: {ContainerState.REMOVED, ContainerState.FAILED},
    ContainerState.FAILED: {ContainerState.REMOVED},
    ContainerState.REMOVED: set(),
}


@dataclass
class ContainerRun:
    """
    One pass of a ContainerSpec through the container engine.

    ``container_id`` is set as soon as the engine creates the container and
    is what the unconditional removal step works from.
    """

    spec: ContainerSpec
    state: ContainerState = ContainerState.CREATED
    container_id: Optional[str] = None
    exit_code: Optional[int] = None
    logs: str = ""
    cancelled: bool = False
    failure_reason: Optional[str] = None
    history: List[ContainerState] = field(default_factory=lambda: [ContainerState.CREATED])
    created_at: datetime = field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None

    def _move(self, target: ContainerState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidStatusError(
                f"Cannot move container run from {self.state.value} to {target.value}",
                details={"from": self.state.value, "to": target.value},
            )
        self.state = target
        self.history.append(target)

    def mark_image_verified(self) -> None:
        self._move(ContainerState.IMAGE_VERIFIED)

    def mark_created(self, container_id: str) -> None:
        """Record the engine handle; the state does not change until start."""
        if self.state is not ContainerState.IMAGE_VERIFIED:
            raise InvalidStatusError("Container can only be created after the image is verified")
        self.container_id = container_id

    def mark_started(self) -> None:
        self._move(ContainerState.CONTAINER_STARTED)

    def mark_logs_collected(self, logs: str, exit_code: Optional[int]) -> None:
        self.logs = logs
        self.exit_code = exit_code
        self._move(ContainerState.LOGS_COLLECTED)

    def mark_cancelled(self, reason: str) -> None:
        self.cancelled = True
        self.failure_reason = reason

    def mark_failed(self, reason: str) -> None:
        self.failure_reason = reason
        if self.state is not ContainerState.FAILED:
            self._move(ContainerState.FAILED)

    def mark_removed(self) -> None:
        self._move(ContainerState.REMOVED)
        self.finished_at = _utcnow()

    @property
    def succeeded(self) -> bool:
        """True only for a run that exited 0 and was not cancelled."""
        return (
            not self.cancelled
            and self.failure_reason is None
            and self.exit_code == 0
            and ContainerState.LOGS_COLLECTED in self.history
        )

    @property
    def duration_ms(self) -> Optional[int]:
        if self.finished_at:
            delta = self.finished_at - self.created_at
            return int(delta.total_seconds() * 1000)
        return None
