"""
Bash kernel.

One long-lived ``bash`` process per session. Each submission is fed to the
shell through ``eval`` with a quoted heredoc, followed by marker lines on
stdout and stderr that carry the exit status and delimit the submission.
"""

import asyncio
import os
import signal
from typing import AsyncIterator, Dict, Optional
from uuid import uuid4

from polyexec.domain.events import EventSequencer, ExecutionEvent
from polyexec.domain.ports import IKernelPort
from polyexec.infrastructure.logging import get_logger
from polyexec.shared.errors import KernelError

logger = get_logger(__name__)

_STDOUT_DONE = object()
_STDERR_DONE = object()


class ShellKernel(IKernelPort):
    """
    Stateful bash session.

    Variables, functions and the working directory persist between
    submissions. A non-zero status of the submission is reported as a
    Failed event. If the shell exits (e.g. the code calls ``exit``) the
    submission fails and a fresh shell is started for the next one; an
    abandoned submission also gets a fresh shell, since the old one may
    still be busy.
    """

    def __init__(
        self,
        executable: str = "bash",
        session_id: Optional[str] = None,
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        terminate_timeout: float = 5.0,
    ):
        self._executable = executable
        self._session_id = session_id or f"bash-{uuid4().hex[:8]}"
        self._sequencer = EventSequencer(self._session_id)
        self._cwd = cwd
        self._env = env
        self._terminate_timeout = terminate_timeout
        self._process: Optional[asyncio.subprocess.Process] = None

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def language(self) -> str:
        return "bash"

    @property
    def alive(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self) -> None:
        env = dict(os.environ if self._env is None else self._env)
        env.setdefault("TERM", "dumb")
        try:
            self._process = await asyncio.create_subprocess_exec(
                self._executable,
                "--noprofile",
                "--norc",
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self._cwd,
                env=env,
                start_new_session=True,
            )
        except OSError as e:
            raise KernelError(f"Failed to start {self._executable}: {e}", e)
        logger.debug("Shell kernel ready", session_id=self._session_id, pid=self._process.pid)

    async def submit(self, code: str) -> AsyncIterator[ExecutionEvent]:
        if self._process is None:
            raise KernelError(f"Shell kernel {self._session_id} is not running")
        if not self.alive:
            logger.warning("Shell exited, restarting", session_id=self._session_id)
            await self._restart()

        marker = f"__POLYEXEC_{uuid4().hex}__"
        await self._write(self._frame(code, marker))

        queue: asyncio.Queue = asyncio.Queue()
        status_box: Dict[str, int] = {}
        pumps = [
            asyncio.create_task(self._pump_stdout(marker, queue, status_box)),
            asyncio.create_task(self._pump_stderr(marker, queue)),
        ]
        completed = False
        try:
            pending = {_STDOUT_DONE, _STDERR_DONE}
            while pending:
                item = await queue.get()
                if item in pending:
                    pending.discard(item)
                    continue
                yield item

            status = status_box.get("status")
            if status is None:
                await self._process.wait()
                yield self._sequencer.failed(
                    f"Shell exited with status {self._process.returncode}"
                )
            elif status != 0:
                yield self._sequencer.failed(f"Command exited with status {status}")
            completed = True
        finally:
            for pump in pumps:
                pump.cancel()
            await asyncio.gather(*pumps, return_exceptions=True)
            if not completed:
                logger.warning("Submission abandoned, restarting shell", session_id=self._session_id)
                await self._restart()

    @staticmethod
    def _frame(code: str, marker: str) -> str:
        delimiter = f"{marker}EOF"
        return (
            f"eval \"$(cat <<'{delimiter}'\n{code}\n{delimiter}\n)\" < /dev/null\n"
            f"__polyexec_status=$?\n"
            f"printf '%s %d\\n' '{marker}' \"$__polyexec_status\"\n"
            f"printf '%s\\n' '{marker}' >&2\n"
        )

    async def _write(self, data: str) -> None:
        try:
            self._process.stdin.write(data.encode("utf-8"))
            await self._process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise KernelError(f"Shell kernel {self._session_id} is not accepting input", e)

    async def _pump_stdout(self, marker: str, queue: asyncio.Queue, status_box: Dict[str, int]) -> None:
        try:
            while True:
                raw = await self._process.stdout.readline()
                if not raw:
                    return
                line = raw.decode("utf-8", errors="replace").rstrip("\n")
                index = line.find(marker)
                if index >= 0:
                    if index > 0:
                        queue.put_nowait(self._sequencer.output(line[:index]))
                    status_box["status"] = int(line[index + len(marker):].strip() or 0)
                    return
                queue.put_nowait(self._sequencer.output(line))
        finally:
            queue.put_nowait(_STDOUT_DONE)

    async def _pump_stderr(self, marker: str, queue: asyncio.Queue) -> None:
        try:
            while True:
                raw = await self._process.stderr.readline()
                if not raw:
                    return
                line = raw.decode("utf-8", errors="replace").rstrip("\n")
                index = line.find(marker)
                if index >= 0:
                    if index > 0:
                        queue.put_nowait(self._sequencer.error(line[:index]))
                    return
                queue.put_nowait(self._sequencer.error(line))
        finally:
            queue.put_nowait(_STDERR_DONE)

    async def _restart(self) -> None:
        await self._terminate()
        await self.start()

    async def _terminate(self) -> None:
        process = self._process
        if process is None or process.returncode is not None:
            return
        try:
            os.killpg(process.pid, signal.SIGTERM)
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=self._terminate_timeout)
        except asyncio.TimeoutError:
            try:
                os.killpg(process.pid, signal.SIGKILL)
            except ProcessLookupError:
                return
            await process.wait()

    async def shutdown(self) -> None:
        await self._terminate()
        self._process = None
