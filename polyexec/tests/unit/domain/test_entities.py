"""
Unit tests for the ContainerRun entity.
"""

import pytest

from polyexec.domain.entities import ContainerRun, ContainerState
from polyexec.domain.value_objects import ContainerSpec, ResourceLimit
from polyexec.shared.errors import InvalidStatusError


@pytest.fixture
def run():
    spec = ContainerSpec(
        image="python:3.12-alpine",
        command=("python", "main.py"),
        working_dir="/workspace",
        limits=ResourceLimit(),
    )
    return ContainerRun(spec=spec)


class TestContainerRun:
    """Tests for ContainerRun state transitions."""

    def test_happy_path(self, run):
        run.mark_image_verified()
        run.mark_created("abc")
        run.mark_started()
        run.mark_logs_collected("hi\n", 0)
        run.mark_removed()

        assert run.state == ContainerState.REMOVED
        assert run.history == [
            ContainerState.CREATED,
            ContainerState.IMAGE_VERIFIED,
            ContainerState.CONTAINER_STARTED,
            ContainerState.LOGS_COLLECTED,
            ContainerState.REMOVED,
        ]
        assert run.succeeded is True
        assert run.duration_ms is not None

    def test_non_zero_exit_is_not_success(self, run):
        run.mark_image_verified()
        run.mark_created("abc")
        run.mark_started()
        run.mark_logs_collected("Traceback", 1)

        assert run.succeeded is False

    def test_cancelled_run_is_not_success(self, run):
        run.mark_image_verified()
        run.mark_created("abc")
        run.mark_started()
        run.mark_cancelled("Execution timed out after 1s")
        run.mark_logs_collected("", None)
        run.mark_removed()

        assert run.cancelled is True
        assert run.succeeded is False
        assert run.failure_reason == "Execution timed out after 1s"

    def test_failed_run_can_still_be_removed(self, run):
        run.mark_image_verified()
        run.mark_created("abc")
        run.mark_started()
        run.mark_failed("log collection failed")
        run.mark_removed()

        assert run.state == ContainerState.REMOVED
        assert ContainerState.FAILED in run.history
        assert run.succeeded is False

    def test_cannot_start_before_image_verified(self, run):
        with pytest.raises(InvalidStatusError):
            run.mark_started()

    def test_cannot_create_before_image_verified(self, run):
        with pytest.raises(InvalidStatusError):
            run.mark_created("abc")

    def test_removed_is_terminal(self, run):
        run.mark_image_verified()
        run.mark_removed()

        with pytest.raises(InvalidStatusError):
            run.mark_started()
