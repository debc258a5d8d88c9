from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from ..contracts import ExtractConfig


class RenderEngineError(Exception):
    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or {}


class EngineUnavailableError(RenderEngineError):
    """
    No usable backend: binding missing, executable not found, credentials absent.
    """


class RenderFailedError(RenderEngineError):
    """
    A selected backend ran and failed (error, non-zero exit, timeout).
    """


class RenderEngine(ABC):
    """
    Rendering strategy abstraction.

    Engines must:
    - Write one image file per rendered unit (page or embedded figure) into `out_dir`
    - Return only after every file is fully written and closed
    - Raise RenderFailedError on failure; never fall back to another strategy
    - Perform NO text extraction, labelling, or pairing
    """

    @classmethod
    @abstractmethod
    def probe(cls, config: ExtractConfig) -> RenderEngine | None:
        """
        Return a ready engine, or None when this strategy is unavailable.

        Must not raise for unavailability.
        """

        raise NotImplementedError

    @abstractmethod
    def backend_id(self) -> str:
        raise NotImplementedError

    def backend_version(self) -> str | None:
        return None

    @abstractmethod
    def render(
        self,
        *,
        pdf_file: Path,
        out_dir: Path,
        pages: list[int],  # 1-indexed, ascending
        dpi: int,
        timeout_s: float,
    ) -> dict[str, Any]:
        """
        Render into `out_dir` and return a render_params fragment
        (backend info/version/etc) to be merged into the result meta.
        """

        raise NotImplementedError
