"""
Jupyter kernel bridge.

Drives any installed Jupyter kernelspec (for example the dotnet-interactive
``.net-csharp``, ``.net-fsharp`` and ``.net-pwsh`` kernels) through
jupyter_client and translates its IOPub messages into execution events.

Requires the ``jupyter`` extra.
"""

import queue
from typing import AsyncIterator, Dict, List, Optional
from uuid import uuid4

from jupyter_client.manager import AsyncKernelManager

from polyexec.domain.events import EventSequencer, ExecutionEvent
from polyexec.domain.ports import IKernelPort
from polyexec.infrastructure.logging import get_logger
from polyexec.shared.errors import KernelError

logger = get_logger(__name__)


class JupyterKernel(IKernelPort):
    """
    Session on a Jupyter kernel.

    Message mapping:
        stream (stdout/stderr)          -> OutputProduced / ErrorProduced
        execute_result, display_data    -> ValueReturned (text/plain)
        error                           -> Failed
        status: idle                    -> end of submission
    """

    def __init__(
        self,
        kernel_name: str,
        language: Optional[str] = None,
        session_id: Optional[str] = None,
        startup_timeout: float = 60.0,
        poll_interval: float = 1.0,
        manager: Optional[AsyncKernelManager] = None,
    ):
        self._kernel_name = kernel_name
        self._language = language or kernel_name
        self._session_id = session_id or f"{self._language}-{uuid4().hex[:8]}"
        self._sequencer = EventSequencer(self._session_id)
        self._startup_timeout = startup_timeout
        self._poll_interval = poll_interval
        self._manager = manager
        self._client = None

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def language(self) -> str:
        return self._language

    async def start(self) -> None:
        if self._manager is None:
            self._manager = AsyncKernelManager(kernel_name=self._kernel_name)
        try:
            await self._manager.start_kernel()
            self._client = self._manager.client()
            self._client.start_channels()
            await self._client.wait_for_ready(timeout=self._startup_timeout)
        except Exception as e:
            await self._cleanup()
            raise KernelError(f"Failed to start Jupyter kernel {self._kernel_name}: {e}", e)
        logger.info(
            "Jupyter kernel ready",
            kernel_name=self._kernel_name,
            session_id=self._session_id,
        )

    async def submit(self, code: str) -> AsyncIterator[ExecutionEvent]:
        if self._client is None:
            raise KernelError(f"Jupyter kernel {self._kernel_name} is not running")

        msg_id = self._client.execute(code, store_history=True, allow_stdin=False)
        partial: Dict[str, str] = {}
        completed = False
        try:
            while True:
                if not await self._manager.is_alive():
                    completed = True
                    raise KernelError(f"Jupyter kernel {self._kernel_name} died")
                try:
                    message = await self._client.get_iopub_msg(timeout=self._poll_interval)
                except queue.Empty:
                    continue
                if message.get("parent_header", {}).get("msg_id") != msg_id:
                    continue

                msg_type = message["header"]["msg_type"]
                content = message["content"]
                if msg_type == "status":
                    if content.get("execution_state") == "idle":
                        for event in self._flush_partial(partial):
                            yield event
                        completed = True
                        return
                    continue
                if msg_type == "error":
                    for event in self._flush_partial(partial):
                        yield event
                for event in self._translate(msg_type, content, partial):
                    yield event
        finally:
            if not completed and self._manager is not None:
                logger.warning(
                    "Submission abandoned, interrupting kernel",
                    kernel_name=self._kernel_name,
                    session_id=self._session_id,
                )
                await self._manager.interrupt_kernel()

    def _emitter(self, name: str):
        return self._sequencer.error if name == "stderr" else self._sequencer.output

    def _translate(
        self,
        msg_type: str,
        content: dict,
        partial: Dict[str, str],
    ) -> List[ExecutionEvent]:
        if msg_type == "stream":
            # A line may be split across several stream messages.
            name = content.get("name", "stdout")
            text = partial.pop(name, "") + content.get("text", "")
            lines = text.split("\n")
            if lines[-1]:
                partial[name] = lines[-1]
            emit = self._emitter(name)
            return [emit(line) for line in lines[:-1]]
        if msg_type in ("execute_result", "display_data"):
            text = content.get("data", {}).get("text/plain")
            return [self._sequencer.value(text)] if text is not None else []
        if msg_type == "error":
            ename = content.get("ename", "Error")
            evalue = content.get("evalue", "")
            message = f"{ename}: {evalue}" if evalue else ename
            cause = "\n".join(content.get("traceback", [])) or None
            return [self._sequencer.failed(message, cause=cause)]
        return []

    def _flush_partial(self, partial: Dict[str, str]) -> List[ExecutionEvent]:
        events = [self._emitter(name)(text) for name, text in partial.items()]
        partial.clear()
        return events

    async def shutdown(self) -> None:
        await self._cleanup()

    async def _cleanup(self) -> None:
        if self._client is not None:
            self._client.stop_channels()
            self._client = None
        if self._manager is not None and self._manager.has_kernel:
            await self._manager.shutdown_kernel(now=True)
