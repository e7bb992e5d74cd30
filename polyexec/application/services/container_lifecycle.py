"""
Container Lifecycle Manager

Drives one ContainerSpec through the container engine:

    CREATED -> IMAGE_VERIFIED -> CONTAINER_STARTED -> LOGS_COLLECTED -> REMOVED

Removal of a created container is unconditional. It runs from a finally
block on every exit path: failures, caller cancellation, timeouts and task
cancellation alike.
"""

import asyncio
from typing import Optional

from polyexec.domain.entities import ContainerRun
from polyexec.domain.ports import IContainerEnginePort
from polyexec.domain.value_objects import ContainerSpec
from polyexec.infrastructure.logging import get_logger
from polyexec.shared.cancellation import CancellationToken, run_cancellable
from polyexec.shared.errors import (
    ContainerEngineError,
    ContainerStartFailedError,
    ExecutionCancelledError,
    ImagePullFailedError,
    InfrastructureError,
    LogCollectionError,
)

logger = get_logger(__name__)


class ContainerLifecycleManager:
    """
    Runs sandbox containers to completion with guaranteed teardown.

    Infrastructure faults are raised to the caller after cleanup; a
    cancelled run is returned with ``cancelled=True`` so the caller can
    decide how to report it.
    """

    def __init__(self, engine: IContainerEnginePort, removal_timeout: float = 30.0):
        """
        Args:
            engine: Container engine port
            removal_timeout: Upper bound for the forced removal call
        """
        self._engine = engine
        self._removal_timeout = removal_timeout

    async def ensure_image(self, image: str) -> None:
        """
        Make sure ``image`` is present locally, pulling it if needed.

        Raises:
            ImagePullFailedError: If the image is missing and cannot be pulled
            ContainerEngineError: If the engine cannot be reached
        """
        if await self._engine.image_exists(image):
            return

        logger.info("Image not found locally, pulling", image=image)
        try:
            async for message in self._engine.pull_image(image):
                status = message.get("status")
                if status:
                    logger.info(
                        "Pulling image",
                        image=image,
                        status=status,
                        progress=message.get("progress", ""),
                    )
                if message.get("error"):
                    raise ImagePullFailedError(
                        f"Failed to pull image {image}: {message['error']}"
                    )
        except ImagePullFailedError:
            raise
        except InfrastructureError as e:
            raise ImagePullFailedError(f"Failed to pull image {image}: {e.message}", e)
        logger.info("Image pulled", image=image)

    async def run(
        self,
        spec: ContainerSpec,
        token: Optional[CancellationToken] = None,
    ) -> ContainerRun:
        """
        Run ``spec`` to completion and remove its container.

        Args:
            spec: Container specification for this submission
            token: Optional cancellation token

        Returns:
            The finished ContainerRun (state REMOVED or FAILED)

        Raises:
            ImagePullFailedError: Image could not be pulled; nothing created
            ContainerStartFailedError: Container could not be created/started
            LogCollectionError: Logs could not be retrieved
            ContainerEngineError: Engine unreachable
        """
        run = ContainerRun(spec=spec)

        try:
            if token is not None:
                token.raise_if_cancelled()
            await run_cancellable(self.ensure_image(spec.image), token)
            run.mark_image_verified()
        except ExecutionCancelledError as e:
            run.mark_cancelled(str(e))
            run.mark_failed(str(e))
            return run
        except InfrastructureError as e:
            run.mark_failed(e.message)
            raise

        try:
            await self._start(run)
            await self._wait_and_collect(run, token)
        except InfrastructureError as e:
            run.mark_failed(e.message)
            raise
        except BaseException as e:
            run.mark_failed(f"{type(e).__name__}: {e}")
            raise
        finally:
            await self._remove(run)

        return run

    async def _start(self, run: ContainerRun) -> None:
        try:
            container_id = await self._engine.create_container(run.spec)
        except ContainerStartFailedError:
            raise
        except InfrastructureError as e:
            raise ContainerStartFailedError(f"Failed to create container: {e.message}", e)
        run.mark_created(container_id)
        logger.info("Container created", container_id=container_id, image=run.spec.image)

        try:
            await self._engine.start_container(container_id)
        except ContainerStartFailedError:
            raise
        except InfrastructureError as e:
            raise ContainerStartFailedError(f"Failed to start container: {e.message}", e)
        run.mark_started()
        logger.info("Container started", container_id=container_id)

    async def _wait_and_collect(
        self,
        run: ContainerRun,
        token: Optional[CancellationToken],
    ) -> None:
        container_id = run.container_id
        exit_code: Optional[int] = None
        try:
            exit_code = await run_cancellable(self._engine.wait_container(container_id), token)
        except ExecutionCancelledError as e:
            logger.warning("Container run cancelled, killing", container_id=container_id, reason=str(e))
            run.mark_cancelled(str(e))
            try:
                await self._engine.kill_container(container_id)
            except InfrastructureError as kill_error:
                logger.warning(
                    "Failed to kill container",
                    container_id=container_id,
                    error=kill_error.message,
                )

        try:
            logs = await self._engine.get_container_logs(container_id)
        except InfrastructureError as e:
            if run.cancelled:
                # The run is reported as cancelled; partial logs are optional.
                logger.warning(
                    "Failed to collect logs of cancelled container",
                    container_id=container_id,
                    error=e.message,
                )
                logs = ""
            elif isinstance(e, LogCollectionError):
                raise
            else:
                raise LogCollectionError(f"Failed to collect logs: {e.message}", e)

        run.mark_logs_collected(logs, exit_code)
        logger.info(
            "Container logs collected",
            container_id=container_id,
            exit_code=exit_code,
            cancelled=run.cancelled,
        )

    async def _remove(self, run: ContainerRun) -> None:
        """Force-remove the run's container; never raises."""
        container_id = run.container_id
        if container_id is None:
            return
        try:
            await asyncio.shield(
                asyncio.wait_for(
                    self._engine.remove_container(container_id, force=True),
                    timeout=self._removal_timeout,
                )
            )
            run.mark_removed()
            logger.info("Container removed", container_id=container_id)
        except (ContainerEngineError, InfrastructureError, asyncio.TimeoutError) as e:
            logger.warning("Failed to remove container", container_id=container_id, error=str(e))
        except asyncio.CancelledError:
            logger.warning("Container removal interrupted by cancellation", container_id=container_id)
            raise
