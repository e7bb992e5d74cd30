"""
Test fixtures: in-memory fakes for the container engine and kernel ports.
"""

import asyncio
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

from polyexec.domain.events import EventSequencer, ExecutionEvent
from polyexec.domain.ports import IContainerEnginePort, IKernelPort
from polyexec.domain.value_objects import ContainerSpec
from polyexec.shared.errors import (
    ContainerEngineError,
    ContainerStartFailedError,
    ImagePullFailedError,
    LogCollectionError,
)


class FakeContainerEngine(IContainerEnginePort):
    """
    Records every call; failures are switched on per step.

    ``calls`` is a list of (operation, argument) tuples in call order.
    """

    def __init__(
        self,
        image_present: bool = True,
        exit_code: int = 0,
        logs: str = "",
        fail_pull: bool = False,
        fail_create: bool = False,
        fail_start: bool = False,
        fail_logs: bool = False,
        fail_remove: bool = False,
        block_wait: bool = False,
    ):
        self.image_present = image_present
        self.exit_code = exit_code
        self.logs = logs
        self.fail_pull = fail_pull
        self.fail_create = fail_create
        self.fail_start = fail_start
        self.fail_logs = fail_logs
        self.fail_remove = fail_remove
        self.block_wait = block_wait
        self.calls: List[tuple] = []
        self.specs: List[ContainerSpec] = []
        self.workspace_files: Dict[str, str] = {}
        self._counter = 0
        self._killed = asyncio.Event()

    def ops(self) -> List[str]:
        return [op for op, _ in self.calls]

    @property
    def created(self) -> List[str]:
        return [arg for op, arg in self.calls if op == "create"]

    @property
    def removed(self) -> List[str]:
        return [arg for op, arg in self.calls if op == "remove"]

    async def image_exists(self, image: str) -> bool:
        self.calls.append(("inspect", image))
        return self.image_present

    async def pull_image(self, image: str) -> AsyncIterator[Dict[str, Any]]:
        self.calls.append(("pull", image))
        yield {"status": f"Pulling from {image}"}
        if self.fail_pull:
            raise ImagePullFailedError(f"Failed to pull image {image}: manifest unknown")
        yield {"status": "Download complete"}
        self.image_present = True

    async def create_container(self, spec: ContainerSpec) -> str:
        if self.fail_create:
            self.calls.append(("create_failed", spec.image))
            raise ContainerStartFailedError("Failed to create container: no such image")
        self._counter += 1
        container_id = f"container-{self._counter}"
        self.calls.append(("create", container_id))
        self.specs.append(spec)
        # Capture what the code file looked like while the container existed.
        for bind in spec.binds:
            for path in Path(bind.host_path).iterdir():
                self.workspace_files[path.name] = path.read_text()
        return container_id

    async def start_container(self, container_id: str) -> None:
        self.calls.append(("start", container_id))
        if self.fail_start:
            raise ContainerStartFailedError(f"Failed to start container {container_id}: OCI error")

    async def wait_container(self, container_id: str) -> int:
        self.calls.append(("wait", container_id))
        if self.block_wait:
            await self._killed.wait()
            return 137
        return self.exit_code

    async def kill_container(self, container_id: str) -> None:
        self.calls.append(("kill", container_id))
        self._killed.set()

    async def get_container_logs(self, container_id: str) -> str:
        self.calls.append(("logs", container_id))
        if self.fail_logs:
            raise LogCollectionError(f"Failed to get logs for container {container_id}")
        return self.logs

    async def remove_container(self, container_id: str, force: bool = True) -> None:
        self.calls.append(("remove", container_id))
        if self.fail_remove:
            raise ContainerEngineError(f"Failed to remove container {container_id}")

    async def ping(self) -> bool:
        return True

    async def close(self, timeout: Optional[float] = None) -> None:
        self.calls.append(("close", None))


class ScriptedKernel(IKernelPort):
    """
    Kernel that replays scripted output.

    Each line of a submission is interpreted as ``kind:text`` where kind is
    out, err, value or fail. A line ``wait`` blocks until ``release`` is set.
    Tracks how many submissions run at once.
    """

    def __init__(self, session_id: str = "scripted-1", language: str = "scripted"):
        self._session_id = session_id
        self._language = language
        self._sequencer = EventSequencer(session_id)
        self.release = asyncio.Event()
        self.started = False
        self.stopped = False
        self.active = 0
        self.max_active = 0
        self.submissions: List[str] = []
        self.closed_streams = 0

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def language(self) -> str:
        return self._language

    async def start(self) -> None:
        self.started = True

    async def submit(self, code: str) -> AsyncIterator[ExecutionEvent]:
        self.submissions.append(code)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            for line in code.splitlines():
                if line == "wait":
                    await self.release.wait()
                    continue
                kind, _, text = line.partition(":")
                if kind == "out":
                    yield self._sequencer.output(text)
                elif kind == "err":
                    yield self._sequencer.error(text)
                elif kind == "value":
                    yield self._sequencer.value(text)
                elif kind == "fail":
                    yield self._sequencer.failed(text)
                await asyncio.sleep(0)
        finally:
            self.active -= 1
            self.closed_streams += 1

    async def shutdown(self) -> None:
        self.stopped = True
