"""
Per-run host workspace directories.

Each sandbox run gets a fresh directory that is bind-mounted into the
container and deleted when the run ends, whatever the outcome.
"""

import shutil
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from polyexec.infrastructure.logging import get_logger

logger = get_logger(__name__)


class Workspace:
    """A temporary host directory owned by one run."""

    def __init__(self, path: Path):
        self.path = path

    def write_file(self, filename: str, content: str) -> Path:
        """
        Write ``content`` to ``filename`` inside the workspace.

        Raises:
            ValueError: If ``filename`` escapes the workspace
        """
        target = (self.path / filename).resolve()
        if self.path.resolve() not in target.parents:
            raise ValueError(f"File name escapes workspace: {filename}")
        target.write_text(content, encoding="utf-8")
        # Containers may run as a non-root user.
        target.chmod(0o644)
        return target


@asynccontextmanager
async def temporary_workspace(root: Optional[str] = None) -> AsyncIterator[Workspace]:
    """
    Create a workspace directory and delete it on exit.

    Args:
        root: Parent directory; the system temp directory when None
    """
    if root:
        Path(root).mkdir(parents=True, exist_ok=True)
    path = Path(tempfile.mkdtemp(prefix="polyexec-", dir=root))
    path.chmod(0o755)
    logger.debug("Workspace created", path=str(path))
    try:
        yield Workspace(path)
    finally:
        shutil.rmtree(path, ignore_errors=True)
        if path.exists():
            logger.warning("Workspace could not be fully deleted", path=str(path))
        else:
            logger.debug("Workspace deleted", path=str(path))
