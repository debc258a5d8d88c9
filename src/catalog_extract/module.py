from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

from .contracts import (
    ErrorKind,
    ExtractConfig,
    ExtractError,
    PipelineCounts,
    PipelineResult,
    PipelineState,
    RenderEngineName,
)
from .data_access import DataAccessError, require_readable_file, sha256_file
from .engines import (
    AdobePdfServicesEngine,
    EngineUnavailableError,
    PdftoppmCliEngine,
    Pypdfium2Engine,
    RenderEngine,
    RenderEngineError,
)
from .labels import extract_labels
from .pairing import list_rendered_files, pair_labels_with_files
from .text_source import TextSourceUnavailableError, read_document_text
from .workspace import Workspace, WorkspaceError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

_ENGINE_TYPES: dict[RenderEngineName, type[RenderEngine]] = {
    RenderEngineName.PYPDFIUM2: Pypdfium2Engine,
    RenderEngineName.PDFTOPPM: PdftoppmCliEngine,
    RenderEngineName.ADOBE_PDF_SERVICES: AdobePdfServicesEngine,
}


def _canonical_page_selection(selection: str | None) -> str:
    if selection is None:
        return "all"
    s = "".join(selection.split())
    return s if s != "" else "all"


def _parse_page_selection(selection: str | None, *, page_count: int) -> list[int]:
    """
    Parse "1,3-5" into a sorted list of unique 1-indexed page numbers.
    None => all pages.
    """

    if selection is None or selection.strip() == "":
        return list(range(1, page_count + 1))

    pages: set[int] = set()
    for part in selection.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            a_str, b_str = part.split("-", 1)
            a = int(a_str.strip())
            b = int(b_str.strip())
            if a <= 0 or b <= 0:
                raise ValueError("page numbers must be >= 1")
            if b < a:
                raise ValueError(f"invalid range: {part!r}")
            pages.update(range(a, b + 1))
        else:
            p = int(part)
            if p <= 0:
                raise ValueError("page numbers must be >= 1")
            pages.add(p)

    ordered = sorted(pages)
    if ordered and ordered[-1] > page_count:
        raise ValueError(f"page selection out of bounds (1..{page_count})")
    return ordered


def select_render_engine(config: ExtractConfig) -> RenderEngine:
    """
    Return the first available engine in `config.engines` preference order.

    Falls through only on unavailability; raises EngineUnavailableError when
    no strategy resolves.
    """

    unavailable: list[str] = []
    for name in config.engines:
        engine = _ENGINE_TYPES[name].probe(config)
        if engine is not None:
            logger.debug("Selected render engine %s", name.value)
            return engine
        logger.debug("Render engine %s unavailable", name.value)
        unavailable.append(name.value)
    raise EngineUnavailableError(
        "No render engine available (tried: " + ", ".join(unavailable) + ")",
        detail={"tried": unavailable, "render_unit": config.render_unit.value},
    )


class _RunTracker:
    """
    Records state transitions and forwards progress messages.

    Progress is advisory: a failing callback is logged and otherwise ignored.
    """

    def __init__(self, progress: ProgressCallback | None) -> None:
        self.state = PipelineState.IDLE
        self.trail: list[str] = [PipelineState.IDLE.value]
        self._progress = progress

    def advance(self, state: PipelineState, message: str) -> None:
        self.state = state
        self.trail.append(state.value)
        self.notify(message)

    def notify(self, message: str) -> None:
        logger.info(message)
        if self._progress is None:
            return
        try:
            self._progress(message)
        except Exception:
            logger.exception("Progress callback raised; continuing run")


def run_extract_pdf(
    *,
    config: ExtractConfig,
    pdf_file: Path,
    engine: RenderEngine | None = None,
    progress: ProgressCallback | None = None,
) -> PipelineResult:
    """
    Extract labelled images from one PDF.

    Input: path to a source document; `engine` overrides strategy selection.
    Output: JSON-ready result with in-memory artifacts. Nothing is written
    outside the run's temporary workspace, which is always removed.
    """

    tracker = _RunTracker(progress)
    meta: dict[str, Any] = {"page_selection": _canonical_page_selection(config.page_selection)}
    labels: list[str] = []
    counts = PipelineCounts()
    engine_id: str | None = None

    def fail(code: ErrorKind, message: str, detail: dict[str, Any] | None = None) -> PipelineResult:
        tracker.advance(PipelineState.FAILED, f"ERROR: {message}")
        return PipelineResult(
            ok=False,
            state=tracker.state,
            source_pdf=str(pdf_file),
            engine=engine_id,
            artifacts=[],
            counts=counts,
            labels=labels,
            errors=[ExtractError(code=code, message=message, detail=detail)],
            meta={**meta, "states": list(tracker.trail)},
        )

    tracker.advance(PipelineState.VALIDATING_INPUT, "Starting PDF content analysis and image extraction...")
    try:
        source = require_readable_file(pdf_file)
    except DataAccessError as e:
        return fail(ErrorKind.INPUT_NOT_FOUND, str(e), {"source_pdf": str(pdf_file)})

    tracker.advance(PipelineState.EXTRACTING, "Reading document text...")
    try:
        doc_text = read_document_text(source)
    except TextSourceUnavailableError as e:
        return fail(ErrorKind.BACKEND_UNAVAILABLE, e.message, e.detail)
    except Exception as e:
        return fail(
            ErrorKind.INPUT_NOT_FOUND,
            "Source document could not be read as a PDF",
            {"source_pdf": str(source), "error": repr(e)},
        )

    labels = extract_labels(doc_text.text)
    counts = PipelineCounts(labels_found=len(labels))
    meta["page_count"] = doc_text.page_count
    tracker.notify(f"Found {len(labels)} labels across {doc_text.page_count} pages.")

    if config.compute_source_sha256:
        try:
            meta["source_sha256"] = sha256_file(source)
        except OSError as e:
            meta.setdefault("audit_warnings", []).append({"code": "SOURCE_HASH_FAILED", "error": repr(e)})

    tracker.advance(PipelineState.RENDERING, "Rendering images...")
    try:
        pages = _parse_page_selection(config.page_selection, page_count=doc_text.page_count)
    except ValueError as e:
        return fail(
            ErrorKind.INVALID_PAGE_SELECTION,
            "Invalid page_selection",
            {"page_selection": config.page_selection, "error": str(e)},
        )

    if engine is None:
        try:
            engine = select_render_engine(config)
        except EngineUnavailableError as e:
            return fail(ErrorKind.BACKEND_UNAVAILABLE, e.message, e.detail)
    engine_id = engine.backend_id()

    try:
        workspace = Workspace.create(parent=config.workspace_parent, prefix=config.workspace_prefix)
    except WorkspaceError as e:
        return fail(ErrorKind.WORKSPACE_CREATE_FAILED, str(e))

    with workspace:
        try:
            meta["render"] = engine.render(
                pdf_file=source,
                out_dir=workspace.path,
                pages=pages,
                dpi=config.dpi,
                timeout_s=config.timeout_s,
            )
        except EngineUnavailableError as e:
            return fail(ErrorKind.BACKEND_UNAVAILABLE, e.message, e.detail)
        except RenderEngineError as e:
            return fail(ErrorKind.RENDER_FAILED, e.message, {"backend": engine_id, **e.detail})
        except Exception as e:
            return fail(ErrorKind.RENDER_FAILED, "PDF rendering failed", {"backend": engine_id, "error": repr(e)})

        tracker.advance(PipelineState.PAIRING, "Matching images to labels...")
        try:
            files = list_rendered_files(workspace.path, name_pattern=config.image_name_pattern)
            counts = PipelineCounts(labels_found=len(labels), files_rendered=len(files))
            artifacts = pair_labels_with_files(labels, files)
        except OSError as e:
            return fail(ErrorKind.PAIRING_FAILED, "Rendered images could not be read", {"error": repr(e)})

        counts = PipelineCounts(labels_found=len(labels), files_rendered=len(files), paired=len(artifacts))
        if labels and not artifacts:
            return fail(
                ErrorKind.NO_ARTIFACTS_MATCHED,
                "No images were matched to the labels found in the PDF.",
                {"labels_found": len(labels), "files_rendered": len(files)},
            )

        meta["labels_unpaired"] = len(labels) - len(artifacts)
        meta["files_unpaired"] = len(files) - len(artifacts)
        tracker.advance(PipelineState.COMPLETED, f"Found {len(artifacts)} artifacts.")
        return PipelineResult(
            ok=True,
            state=tracker.state,
            source_pdf=str(source),
            engine=engine_id,
            artifacts=artifacts,
            counts=counts,
            labels=labels,
            errors=[],
            meta={**meta, "states": list(tracker.trail)},
        )
