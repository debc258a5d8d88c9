from __future__ import annotations

import shutil
import subprocess
import time
from pathlib import Path
from typing import Any

from ..contracts import ExtractConfig, RenderUnit
from .base import RenderEngine, RenderFailedError

OUTPUT_PREFIX = "page"


def _contiguous_runs(pages: list[int]) -> list[tuple[int, int]]:
    """
    Collapse ascending page numbers into inclusive (first, last) runs.
    """

    runs: list[tuple[int, int]] = []
    for p in pages:
        if runs and p == runs[-1][1] + 1:
            runs[-1] = (runs[-1][0], p)
        else:
            runs.append((p, p))
    return runs


def _resolve_executable(configured: Path | None) -> str | None:
    if configured is not None:
        candidate = configured.expanduser()
        if candidate.is_file():
            return str(candidate)
        return shutil.which(str(candidate))
    return shutil.which("pdftoppm")


class PdftoppmCliEngine(RenderEngine):
    """
    Page rendering via Poppler's `pdftoppm` CLI.

    Output files are named `page-<N>.png` by pdftoppm itself (zero-padded to
    the document's page-count width).
    """

    def __init__(self, *, executable: str) -> None:
        self.executable = executable

    @classmethod
    def probe(cls, config: ExtractConfig) -> PdftoppmCliEngine | None:
        # pdftoppm rasterizes pages only; it cannot isolate embedded figures.
        if config.render_unit != RenderUnit.PAGE:
            return None
        executable = _resolve_executable(config.pdftoppm_path)
        if executable is None:
            return None
        return cls(executable=executable)

    def backend_id(self) -> str:
        return "pdftoppm"

    def render(
        self,
        *,
        pdf_file: Path,
        out_dir: Path,
        pages: list[int],
        dpi: int,
        timeout_s: float,
    ) -> dict[str, Any]:
        out_dir.mkdir(parents=True, exist_ok=True)
        prefix = out_dir / OUTPUT_PREFIX
        commands: list[list[str]] = []
        # One wall-clock budget shared by every page run.
        deadline = time.monotonic() + timeout_s

        for first, last in _contiguous_runs(pages):
            cmd = [
                self.executable,
                "-png",
                "-r",
                str(dpi),
                "-f",
                str(first),
                "-l",
                str(last),
                str(pdf_file),
                str(prefix),
            ]
            # Keep metadata portable: do not embed absolute paths.
            commands.append(["pdftoppm", *cmd[1:-2], "<PDF_FILE>", "<OUT_PREFIX>"])

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise RenderFailedError(
                    f"pdftoppm timed out after {timeout_s}s",
                    detail={"timeout_s": timeout_s, "pages": [first, last]},
                )
            try:
                proc = subprocess.run(
                    cmd,
                    check=False,
                    capture_output=True,
                    text=True,
                    timeout=remaining,
                )
            except FileNotFoundError as e:
                raise RenderFailedError(
                    "pdftoppm could not be started",
                    detail={"executable": self.executable, "error": str(e)},
                ) from e
            except subprocess.TimeoutExpired as e:
                raise RenderFailedError(
                    f"pdftoppm timed out after {timeout_s}s",
                    detail={"timeout_s": timeout_s, "pages": [first, last]},
                ) from e

            if proc.returncode != 0:
                stderr = (proc.stderr or "").strip()
                raise RenderFailedError(
                    f"pdftoppm exited with code {proc.returncode}: {stderr or 'no diagnostic output'}",
                    detail={
                        "returncode": proc.returncode,
                        "stderr": stderr[-4000:],
                        "pages": [first, last],
                    },
                )

        return {
            "backend": self.backend_id(),
            "backend_version": self.backend_version(),
            "command_templates": commands,
        }
