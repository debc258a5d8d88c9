from __future__ import annotations

import hashlib
import os
from pathlib import Path


class DataAccessError(Exception):
    pass


def require_readable_file(path: Path) -> Path:
    """
    Resolve `path` and confirm it names a regular, readable file.
    """

    resolved = path.expanduser().resolve()
    if not resolved.is_file():
        raise DataAccessError(f"Source document not found: {resolved}")
    if not os.access(resolved, os.R_OK):
        raise DataAccessError(f"Source document is not readable: {resolved}")
    return resolved


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()
