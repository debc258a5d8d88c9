from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class WorkspaceError(OSError):
    pass


class Workspace:
    """
    Temporary directory owned by exactly one pipeline run.

    Use as a context manager; the directory is removed on every exit path.
    Removal failures are logged and never raised, so they cannot mask the
    run's own result or error.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._cleaned = False

    @classmethod
    def create(cls, *, parent: Path | None = None, prefix: str = "catalog-extract-") -> Workspace:
        try:
            if parent is not None:
                parent.mkdir(parents=True, exist_ok=True)
            path = Path(tempfile.mkdtemp(prefix=prefix, dir=None if parent is None else str(parent)))
        except OSError as e:
            raise WorkspaceError(f"Failed to create workspace directory under {parent or tempfile.gettempdir()}: {e}") from e
        logger.debug("Created workspace %s", path)
        return cls(path)

    @property
    def cleaned(self) -> bool:
        return self._cleaned

    def cleanup(self) -> bool:
        """
        Remove the directory and its contents. Returns False if removal failed.

        Idempotent: an already-absent directory counts as removed.
        """

        if not self.path.exists():
            self._cleaned = True
            return True
        try:
            shutil.rmtree(self.path)
        except OSError as e:
            logger.warning("Failed to clean up workspace %s: %s", self.path, e)
            return False
        self._cleaned = True
        logger.debug("Removed workspace %s", self.path)
        return True

    def __enter__(self) -> Workspace:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()
