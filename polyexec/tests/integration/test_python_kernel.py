"""
Integration tests for the in-process Python kernel.
"""

import os
import sys

import pytest

from polyexec.domain.events import ErrorProduced, Failed, OutputProduced, ValueReturned
from polyexec.domain.services import reduce_events
from polyexec.infrastructure.kernels import PythonKernel
from polyexec.shared.cancellation import CancellationToken, run_cancellable


async def _events(kernel: PythonKernel, code: str):
    return [event async for event in kernel.submit(code)]


async def _run(kernel: PythonKernel, code: str):
    return reduce_events(await _events(kernel, code))


@pytest.mark.integration
class TestPythonKernel:
    @pytest.mark.asyncio
    async def test_print_becomes_output(self):
        kernel = PythonKernel()
        await kernel.start()
        try:
            result = await _run(kernel, "print('hi')")
        finally:
            await kernel.shutdown()

        assert result.transcript == "hi\n"
        assert result.succeeded is True

    @pytest.mark.asyncio
    async def test_trailing_expression_is_returned(self):
        kernel = PythonKernel()
        await kernel.start()
        try:
            events = await _events(kernel, "x = 40\nx + 2")
            underscore = await _run(kernel, "_")
        finally:
            await kernel.shutdown()

        assert [type(e) for e in events] == [ValueReturned]
        assert events[0].text == "42"
        assert underscore.transcript == "42\n"

    @pytest.mark.asyncio
    async def test_none_value_is_silent(self):
        kernel = PythonKernel()
        await kernel.start()
        try:
            events = await _events(kernel, "None")
        finally:
            await kernel.shutdown()

        assert events == []

    @pytest.mark.asyncio
    async def test_state_persists_between_submissions(self):
        kernel = PythonKernel()
        await kernel.start()
        try:
            await _run(kernel, "def greet(name):\n    return f'hello {name}'")
            result = await _run(kernel, "print(greet('world'))")
        finally:
            await kernel.shutdown()

        assert result.transcript == "hello world\n"

    @pytest.mark.asyncio
    async def test_stderr_and_stdout_keep_order(self):
        kernel = PythonKernel()
        await kernel.start()
        try:
            events = await _events(
                kernel,
                "import sys\nprint('a')\nprint('b', file=sys.stderr)\nprint('c')",
            )
        finally:
            await kernel.shutdown()

        assert [(type(e), e.text) for e in events] == [
            (OutputProduced, "a"),
            (ErrorProduced, "b"),
            (OutputProduced, "c"),
        ]
        assert [e.sequence for e in events] == sorted(e.sequence for e in events)

    @pytest.mark.asyncio
    async def test_exception_fails_after_partial_output(self):
        kernel = PythonKernel()
        await kernel.start()
        try:
            events = await _events(kernel, "print('before')\n1 / 0\nprint('after')")
        finally:
            await kernel.shutdown()

        result = reduce_events(events)
        assert result.transcript == "before\nError: ZeroDivisionError: division by zero\n"
        assert result.succeeded is False
        assert isinstance(events[-1], Failed)
        assert "Traceback" in events[-1].cause

    @pytest.mark.asyncio
    async def test_syntax_error_fails(self):
        kernel = PythonKernel()
        await kernel.start()
        try:
            result = await _run(kernel, "def broken(:")
        finally:
            await kernel.shutdown()

        assert result.succeeded is False
        assert result.error_detail.startswith("SyntaxError")

    @pytest.mark.asyncio
    async def test_system_exit_does_not_kill_kernel(self):
        kernel = PythonKernel()
        await kernel.start()
        try:
            exited = await _run(kernel, "raise SystemExit(3)")
            after = await _run(kernel, "1 + 1")
        finally:
            await kernel.shutdown()

        assert exited.error_detail == "SystemExit: 3"
        assert after.transcript == "2\n"

    @pytest.mark.asyncio
    async def test_partial_line_is_flushed(self):
        kernel = PythonKernel()
        await kernel.start()
        try:
            result = await _run(kernel, "print('no newline', end='')")
        finally:
            await kernel.shutdown()

        assert result.transcript == "no newline\n"

    @pytest.mark.asyncio
    async def test_input_sees_empty_stdin(self):
        kernel = PythonKernel()
        await kernel.start()
        try:
            prompted = await _run(kernel, "name = input('name? ')")
            read_all = await _run(kernel, "import sys\nsys.stdin.read()")
            after = await _run(kernel, "1 + 1")
        finally:
            await kernel.shutdown()

        assert prompted.succeeded is False
        assert prompted.error_detail == "EOFError: EOF when reading a line"
        assert prompted.transcript.startswith("name? \n")
        assert read_all.transcript == "''\n"
        assert after.transcript == "2\n"

    @pytest.mark.asyncio
    async def test_input_does_not_block_behind_open_stdin(self, monkeypatch):
        # A pipe nobody writes to: reading it would block forever.
        read_fd, write_fd = os.pipe()
        monkeypatch.setattr(sys, "stdin", os.fdopen(read_fd))
        kernel = PythonKernel()
        await kernel.start()
        token = CancellationToken()
        try:
            token.cancel_after(5)
            result = await run_cancellable(_run(kernel, "input()"), token)
        finally:
            token.dispose()
            await kernel.shutdown()
            os.close(write_fd)

        assert result.error_detail.startswith("EOFError")

    @pytest.mark.asyncio
    async def test_binary_buffer_writes_are_captured(self):
        kernel = PythonKernel()
        await kernel.start()
        try:
            result = await _run(
                kernel,
                "import sys\n"
                "print('a')\n"
                "_ = sys.stdout.buffer.write('b\\u00e9\\n'.encode('utf-8'))\n"
                "_ = sys.stderr.buffer.write(b'err\\n')\n"
                "print('c')",
            )
        finally:
            await kernel.shutdown()

        assert result.succeeded is True
        assert result.transcript == "a\nbé\nerr\nc\n"

    @pytest.mark.asyncio
    async def test_captured_stream_reports_no_file_descriptor(self):
        kernel = PythonKernel()
        await kernel.start()
        try:
            result = await _run(
                kernel,
                "import io, sys\n"
                "try:\n"
                "    sys.stdout.fileno()\n"
                "except io.UnsupportedOperation:\n"
                "    print('no fd')\n"
                "sys.stdout.isatty()",
            )
        finally:
            await kernel.shutdown()

        assert result.transcript == "no fd\nFalse\n"
