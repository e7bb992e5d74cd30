"""
Kernel Registry

Holds one long-lived interpreter session per language, keyed by alias.
Each session is wrapped in a KernelHandle that serializes submissions.
"""

import asyncio
from typing import Callable, Dict, Iterable, List, Optional

from polyexec.domain.ports import IKernelPort
from polyexec.infrastructure.logging import get_logger
from polyexec.shared.cancellation import CancellationToken, run_cancellable
from polyexec.shared.errors import InvalidRequestError, KernelNotFoundError

logger = get_logger(__name__)

KernelFactory = Callable[[], IKernelPort]


class KernelHandle:
    """
    Exclusive-access wrapper around one interpreter session.

    Interpreter state is mutated in place by every submission, so at most
    one submission may hold the handle at a time.
    """

    def __init__(self, kernel: IKernelPort, aliases: Iterable[str]):
        self.kernel = kernel
        self.aliases = tuple(aliases)
        self._lock = asyncio.Lock()

    @property
    def session_id(self) -> str:
        return self.kernel.session_id

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def acquire(self, token: Optional[CancellationToken] = None) -> None:
        """
        Wait for exclusive access.

        Raises:
            ExecutionCancelledError: If the token fires while waiting
        """
        await run_cancellable(self._lock.acquire(), token)

    def release(self) -> None:
        self._lock.release()


class _Registration:
    def __init__(self, aliases: List[str], factory: KernelFactory):
        self.aliases = aliases
        self.factory = factory
        self.handle: Optional[KernelHandle] = None


class KernelRegistry:
    """
    Registry of interpreter sessions.

    Kernels are registered at startup, created and started once by
    ``start()``, and stopped by ``shutdown()``. ``resolve`` is read-only
    and safe for concurrent callers.

    Example:
        registry = KernelRegistry()
        registry.register_many(["python", "py"], PythonKernel)
        await registry.start()
        handle = registry.resolve("python")
    """

    def __init__(self) -> None:
        self._registrations: List[_Registration] = []
        self._by_alias: Dict[str, _Registration] = {}
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    def register(self, alias: str, kernel_factory: KernelFactory) -> None:
        """Register a kernel factory under a single alias."""
        self.register_many([alias], kernel_factory)

    def register_many(self, aliases: Iterable[str], kernel_factory: KernelFactory) -> None:
        """
        Register one kernel session reachable under several aliases.

        Raises:
            InvalidRequestError: On duplicate or empty aliases, or after start()
        """
        if self._started:
            raise InvalidRequestError("Kernels must be registered before the registry starts")
        alias_list = list(aliases)
        if not alias_list:
            raise InvalidRequestError("At least one alias is required")
        for alias in alias_list:
            if not alias:
                raise InvalidRequestError("Kernel alias must not be empty")
            if alias in self._by_alias:
                raise InvalidRequestError(f"Kernel alias {alias!r} is already registered")

        registration = _Registration(alias_list, kernel_factory)
        self._registrations.append(registration)
        for alias in alias_list:
            self._by_alias[alias] = registration

    def aliases(self) -> List[str]:
        return sorted(self._by_alias)

    def handles(self) -> List[KernelHandle]:
        return [r.handle for r in self._registrations if r.handle is not None]

    def resolve(self, language_alias: str) -> KernelHandle:
        """
        Look up the session for an alias (exact, case-sensitive match).

        Raises:
            KernelNotFoundError: If no kernel is registered or started for it
        """
        registration = self._by_alias.get(language_alias)
        if registration is None or registration.handle is None:
            raise KernelNotFoundError(language_alias)
        return registration.handle

    async def start(self) -> None:
        """Create and start every registered kernel exactly once."""
        if self._started:
            return
        for registration in self._registrations:
            kernel = registration.factory()
            await kernel.start()
            registration.handle = KernelHandle(kernel, registration.aliases)
            logger.info(
                "Kernel started",
                language=kernel.language,
                session_id=kernel.session_id,
                aliases=registration.aliases,
            )
        self._started = True

    async def shutdown(self) -> None:
        """Stop every started kernel; failures are logged, not raised."""
        for registration in self._registrations:
            handle = registration.handle
            if handle is None:
                continue
            try:
                await handle.kernel.shutdown()
                logger.info("Kernel stopped", session_id=handle.session_id)
            except Exception as e:
                logger.warning(
                    "Kernel shutdown failed",
                    session_id=handle.session_id,
                    error=str(e),
                )
            registration.handle = None
        self._started = False
