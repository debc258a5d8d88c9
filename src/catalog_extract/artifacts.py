from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from .contracts import Artifact, ErrorKind, ExtractError, PipelineResult, SaveSummary
from .pairing import sanitize_artifact_name

logger = logging.getLogger(__name__)


def serialize_pipeline_result(result: PipelineResult, *, include_data: bool = False) -> str:
    """
    Stable JSON serialization for audit manifests.

    Inline image data is omitted unless `include_data` is set.
    """

    payload: dict[str, Any] = result.to_dict(include_data=include_data)
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, indent=2) + "\n"


def write_pipeline_manifest_json(*, result: PipelineResult, out_manifest: Path, include_data: bool = False) -> None:
    out_manifest.parent.mkdir(parents=True, exist_ok=True)
    out_manifest.write_text(serialize_pipeline_result(result, include_data=include_data), encoding="utf-8")


def save_artifacts(artifacts: Iterable[Artifact], out_dir: Path) -> SaveSummary:
    """
    Write each artifact's image bytes into `out_dir` (created if absent).

    File names are sanitized again so externally built artifacts are safe too.
    A failed write is recorded and the remaining artifacts are still written.
    """

    try:
        out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        message = f"Failed to create directory: {e}"
        logger.error(message)
        return SaveSummary(
            ok=False,
            out_dir=str(out_dir),
            saved=[],
            failed=[],
            message=message,
            errors=[ExtractError(code=ErrorKind.SAVE_DIR_CREATE_FAILED, message=message, detail={"out_dir": str(out_dir)})],
        )

    saved: list[str] = []
    failed: list[str] = []
    for artifact in artifacts:
        file_name = sanitize_artifact_name(artifact.name)
        try:
            (out_dir / file_name).write_bytes(artifact.content())
        except (OSError, ValueError) as e:
            logger.error("Error saving %s: %s", artifact.name, e)
            failed.append(artifact.name)
            continue
        saved.append(file_name)

    if failed:
        message = f"Saved {len(saved)} files to {out_dir}. Failed to save: {len(failed)} file(s)."
        return SaveSummary(
            ok=False,
            out_dir=str(out_dir),
            saved=saved,
            failed=failed,
            message=message,
            errors=[ExtractError(code=ErrorKind.PARTIAL_SAVE_FAILURE, message=message, detail={"failed": failed})],
        )

    return SaveSummary(
        ok=True,
        out_dir=str(out_dir),
        saved=saved,
        failed=[],
        message=f"Successfully saved {len(saved)} images to {out_dir}.",
    )
