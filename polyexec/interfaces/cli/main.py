#!/usr/bin/env python3
"""
polyexec CLI - run a snippet once and print its transcript
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from polyexec import __version__
from polyexec.domain.value_objects import ErrorKind, ExecutionMode, ExecutionResult
from polyexec.infrastructure.config import Settings, get_settings
from polyexec.infrastructure.dependencies import build_gateway
from polyexec.infrastructure.logging import configure_logging, get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_EXECUTION_FAILED = 1
EXIT_REQUEST_ERROR = 2
EXIT_INFRASTRUCTURE_ERROR = 3
EXIT_CANCELLED = 4

_EXIT_CODES = {
    ErrorKind.NONE: EXIT_OK,
    ErrorKind.EXECUTION: EXIT_EXECUTION_FAILED,
    ErrorKind.REQUEST: EXIT_REQUEST_ERROR,
    ErrorKind.INFRASTRUCTURE: EXIT_INFRASTRUCTURE_ERROR,
    ErrorKind.CANCELLED: EXIT_CANCELLED,
}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog="polyexec-run",
        description="Execute a code snippet in-process or in a disposable container",
    )

    parser.add_argument(
        "language",
        type=str,
        help="Language alias, e.g. python, bash, csharp",
    )
    parser.add_argument(
        "source",
        nargs="?",
        default="-",
        help="File containing the code, or - to read stdin (default: -)",
    )

    parser.add_argument(
        "--mode", "-m",
        choices=[mode.value for mode in ExecutionMode],
        help="Execution mode (default: POLYEXEC_EXECUTION_MODE or in_process)",
    )
    parser.add_argument(
        "--timeout", "-t",
        type=float,
        help="Execution timeout in seconds",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full result as JSON",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def read_source(source: str) -> str:
    """Read code from a file path or stdin (``-``)."""
    if source == "-":
        return sys.stdin.read()
    with open(source, "r", encoding="utf-8") as f:
        return f.read()


def render(result: ExecutionResult, as_json: bool) -> None:
    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
        return

    sys.stdout.write(result.transcript)
    if result.error_kind not in (ErrorKind.NONE, ErrorKind.EXECUTION) and result.error_detail:
        print(f"Error: {result.error_detail}", file=sys.stderr)


async def run(args: argparse.Namespace, settings: Settings) -> int:
    """Execute one snippet and return the process exit code."""
    try:
        code = read_source(args.source)
    except OSError as e:
        print(f"Error: cannot read {args.source}: {e}", file=sys.stderr)
        return EXIT_REQUEST_ERROR

    if args.mode:
        settings = settings.model_copy(update={"execution_mode": ExecutionMode(args.mode)})

    container = build_gateway(settings)
    try:
        await container.start()
        result = await container.gateway.execute_code(
            args.language,
            code,
            timeout_seconds=args.timeout,
        )
    finally:
        await container.close()

    render(result, args.json)
    return _EXIT_CODES[result.error_kind]


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    configure_logging("DEBUG" if args.verbose else "WARNING", settings.log_format)
    return asyncio.run(run(args, settings))


def entry_point():
    """CLI entry point"""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    entry_point()
