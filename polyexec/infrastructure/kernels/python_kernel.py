"""
In-process Python kernel.

Runs submissions with ``exec`` against one persistent namespace on a
dedicated worker thread, so the event loop stays responsive while user
code runs. Output written by the worker thread is captured line by line
and its stdin is empty; other threads keep using the real streams.
"""

import ast
import asyncio
import builtins
import io
import sys
import threading
import traceback
from concurrent.futures import ThreadPoolExecutor
from typing import AsyncIterator, Callable, Dict, Optional
from uuid import uuid4

from polyexec.domain.events import EventSequencer, ExecutionEvent
from polyexec.domain.ports import IKernelPort
from polyexec.infrastructure.logging import get_logger
from polyexec.shared.errors import KernelError

logger = get_logger(__name__)

_SUBMISSION_FILENAME = "<submission>"
_DONE = object()
_STREAM_NAMES = ("stdin", "stdout", "stderr")

_capture = threading.local()
_install_lock = threading.Lock()


class _LineSink(io.RawIOBase):
    """Binary sink that reports each completed line to a callback."""

    def __init__(self, on_line: Callable[[str], None]):
        super().__init__()
        self._on_line = on_line
        self._pending = b""

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        data = bytes(data)
        self._pending += data
        while b"\n" in self._pending:
            line, self._pending = self._pending.split(b"\n", 1)
            self._on_line(line.decode("utf-8", errors="replace"))
        return len(data)

    def drain(self) -> None:
        """Report a trailing partial line, if any."""
        if self._pending:
            line, self._pending = self._pending, b""
            self._on_line(line.decode("utf-8", errors="replace"))


class _CapturedOutput:
    """A text stream with a real ``buffer``, both feeding one _LineSink."""

    def __init__(self, on_line: Callable[[str], None]):
        self._sink = _LineSink(on_line)
        # write_through hands every write to the sink at once, which keeps
        # stdout and stderr lines in emission order.
        self.stream = io.TextIOWrapper(
            self._sink, encoding="utf-8", errors="replace", write_through=True
        )

    def drain(self) -> None:
        self.stream.flush()
        self._sink.drain()


class _ThreadRoutingStream(io.TextIOBase):
    """
    Stand-in for sys.stdin / sys.stdout / sys.stderr.

    A thread with an active capture reads and writes its capture; every
    other thread goes to the stream that was installed before us.
    """

    def __init__(self, name: str, fallback):
        super().__init__()
        self._name = name
        self.fallback = fallback

    def _captured(self):
        return getattr(_capture, self._name, None)

    def _target(self):
        captured = self._captured()
        return self.fallback if captured is None else captured

    def readable(self) -> bool:
        return self._name == "stdin"

    def writable(self) -> bool:
        return self._name != "stdin"

    def read(self, size: Optional[int] = -1) -> str:
        return self._target().read(size)

    def readline(self, size: Optional[int] = -1) -> str:
        return self._target().readline(size)

    def write(self, text: str) -> int:
        return self._target().write(text)

    def flush(self) -> None:
        target = self._target()
        if hasattr(target, "flush"):
            target.flush()

    @property
    def buffer(self):
        return self._target().buffer

    def fileno(self) -> int:
        if self._captured() is not None:
            raise io.UnsupportedOperation("captured stream has no file descriptor")
        return self.fallback.fileno()

    @property
    def encoding(self):
        return getattr(self._target(), "encoding", None) or "utf-8"

    def isatty(self) -> bool:
        if self._captured() is not None:
            return False
        return self.fallback.isatty()


def _ensure_routing_streams() -> None:
    # Re-install if something (a test runner, redirect_stdout) replaced us.
    with _install_lock:
        for name in _STREAM_NAMES:
            current = getattr(sys, name)
            if not isinstance(current, _ThreadRoutingStream):
                setattr(sys, name, _ThreadRoutingStream(name, current))


class PythonKernel(IKernelPort):
    """
    Stateful Python session.

    REPL semantics: when the last statement of a submission is an
    expression, its ``repr`` is emitted as a ValueReturned event (unless it
    is None) and bound to ``_``.

    Submissions read an empty stdin, so ``input()`` raises EOFError
    instead of blocking on the server process's terminal.

    A cancelled submission cannot be interrupted; it keeps the worker
    thread until it returns and later submissions queue behind it.

    Example:
        kernel = PythonKernel()
        await kernel.start()
        async for event in kernel.submit("x = 40\\nx + 2"):
            print(event)   # ValueReturned(text='42', ...)
    """

    def __init__(self, session_id: Optional[str] = None):
        self._session_id = session_id or f"python-{uuid4().hex[:8]}"
        self._sequencer = EventSequencer(self._session_id)
        self._namespace: Dict[str, object] = {}
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def language(self) -> str:
        return "python"

    async def start(self) -> None:
        self._namespace = {"__name__": "__main__", "__builtins__": builtins}
        # A single worker keeps submissions strictly sequential, even when
        # an abandoned submission is still running.
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=f"kernel-{self._session_id}"
        )
        logger.debug("Python kernel ready", session_id=self._session_id)

    async def submit(self, code: str) -> AsyncIterator[ExecutionEvent]:
        if self._executor is None:
            raise KernelError(f"Python kernel {self._session_id} is not running")

        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()

        def emit(event: ExecutionEvent) -> None:
            loop.call_soon_threadsafe(queue.put_nowait, event)

        future = loop.run_in_executor(self._executor, self._run, code, emit)
        future.add_done_callback(lambda _: queue.put_nowait(_DONE))

        while True:
            item = await queue.get()
            if item is _DONE:
                break
            yield item

        error = future.exception()
        if error is not None:
            raise KernelError(f"Python kernel {self._session_id} crashed: {error}", error)

    def _run(self, code: str, emit: Callable[[ExecutionEvent], None]) -> None:
        """Execute one submission on the worker thread."""
        _ensure_routing_streams()
        stdout = _CapturedOutput(lambda line: emit(self._sequencer.output(line)))
        stderr = _CapturedOutput(lambda line: emit(self._sequencer.error(line)))
        _capture.stdin = io.StringIO()
        _capture.stdout = stdout.stream
        _capture.stderr = stderr.stream
        try:
            value = self._evaluate(code)
            stdout.drain()
            stderr.drain()
            if value is not None:
                self._namespace["_"] = value
                emit(self._sequencer.value(repr(value)))
        except (Exception, SystemExit) as e:
            stdout.drain()
            stderr.drain()
            emit(self._sequencer.failed(_describe(e), cause=traceback.format_exc()))
        finally:
            for name in _STREAM_NAMES:
                setattr(_capture, name, None)

    def _evaluate(self, code: str) -> object:
        tree = ast.parse(code, filename=_SUBMISSION_FILENAME, mode="exec")
        trailing: Optional[ast.Expression] = None
        if tree.body and isinstance(tree.body[-1], ast.Expr):
            trailing = ast.Expression(body=tree.body.pop().value)

        exec(compile(tree, _SUBMISSION_FILENAME, "exec"), self._namespace)
        if trailing is None:
            return None
        return eval(compile(trailing, _SUBMISSION_FILENAME, "eval"), self._namespace)

    async def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
        self._namespace = {}


def _describe(error: BaseException) -> str:
    text = str(error)
    return f"{type(error).__name__}: {text}" if text else type(error).__name__
