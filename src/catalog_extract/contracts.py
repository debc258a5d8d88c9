from __future__ import annotations

import base64
import re
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class RenderEngineName(str, Enum):
    """
    Rendering backend identifiers, listed in default preference order.
    """

    PYPDFIUM2 = "pypdfium2"
    PDFTOPPM = "pdftoppm"
    ADOBE_PDF_SERVICES = "adobe_pdf_services"


class RenderUnit(str, Enum):
    PAGE = "page"
    FIGURE = "figure"


class PipelineState(str, Enum):
    IDLE = "idle"
    VALIDATING_INPUT = "validating_input"
    EXTRACTING = "extracting"
    RENDERING = "rendering"
    PAIRING = "pairing"
    COMPLETED = "completed"
    FAILED = "failed"


class ErrorKind(str, Enum):
    INPUT_NOT_FOUND = "INPUT_NOT_FOUND"
    INVALID_PAGE_SELECTION = "INVALID_PAGE_SELECTION"
    BACKEND_UNAVAILABLE = "BACKEND_UNAVAILABLE"
    WORKSPACE_CREATE_FAILED = "WORKSPACE_CREATE_FAILED"
    RENDER_FAILED = "RENDER_FAILED"
    PAIRING_FAILED = "PAIRING_FAILED"
    NO_ARTIFACTS_MATCHED = "NO_ARTIFACTS_MATCHED"
    PARTIAL_SAVE_FAILURE = "PARTIAL_SAVE_FAILURE"
    SAVE_DIR_CREATE_FAILED = "SAVE_DIR_CREATE_FAILED"


DEFAULT_ENGINE_ORDER: tuple[RenderEngineName, ...] = (
    RenderEngineName.PYPDFIUM2,
    RenderEngineName.PDFTOPPM,
    RenderEngineName.ADOBE_PDF_SERVICES,
)


@dataclass(frozen=True, slots=True)
class ExtractError:
    code: ErrorKind
    message: str
    detail: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class Artifact:
    """
    A label paired with one rendered image.

    `data` holds the image bytes as base64 text so the result can be handed to
    a UI tier as-is; `content()` returns the original bytes.
    """

    name: str
    data: str
    source_name: str | None = None
    media_type: str = "image/png"

    @classmethod
    def from_bytes(cls, *, name: str, content: bytes, source_name: str | None = None) -> Artifact:
        return cls(
            name=name,
            data=base64.b64encode(content).decode("ascii"),
            source_name=source_name,
        )

    def content(self) -> bytes:
        return base64.b64decode(self.data)

    @property
    def data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.data}"


@dataclass(frozen=True, slots=True)
class PipelineCounts:
    labels_found: int = 0
    files_rendered: int = 0
    paired: int = 0


@dataclass(frozen=True, slots=True)
class PipelineResult:
    ok: bool
    state: PipelineState
    source_pdf: str
    engine: str | None  # backend_id of the engine that rendered, if one was selected
    artifacts: list[Artifact]
    counts: PipelineCounts
    labels: list[str]
    errors: list[ExtractError]
    meta: dict[str, Any]

    def to_dict(self, *, include_data: bool = False) -> dict[str, Any]:
        payload = asdict(self)
        if not include_data:
            for a in payload["artifacts"]:
                a.pop("data")
        return payload


@dataclass(frozen=True, slots=True)
class SaveSummary:
    ok: bool
    out_dir: str
    saved: list[str]
    failed: list[str]
    message: str
    errors: list[ExtractError] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class RemoteServiceConfig:
    """
    Credentials and endpoint for the Adobe PDF Services extract API.

    Both credentials must be non-empty for the remote strategy to be
    considered available.
    """

    client_id: str | None = None
    client_secret: str | None = None
    base_url: str = "https://pdf-services.adobe.io"
    poll_interval_s: float = 2.0
    request_timeout_s: float = 60.0

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id) and bool(self.client_secret)


@dataclass(frozen=True, slots=True)
class ExtractConfig:
    """
    Pipeline configuration.

    Renderer locations and credentials are resolved once by the caller and
    passed in here; library modules never read environment variables.
    """

    engines: tuple[RenderEngineName, ...] = DEFAULT_ENGINE_ORDER
    dpi: int = 150
    render_unit: RenderUnit = RenderUnit.PAGE
    page_selection: str | None = None  # e.g. "1,3-5"; None => all pages
    timeout_s: float = 300.0
    workspace_parent: Path | None = None  # None => system temp dir
    workspace_prefix: str = "catalog-extract-"
    pdftoppm_path: Path | None = None  # None => search PATH
    remote: RemoteServiceConfig = field(default_factory=RemoteServiceConfig)
    image_name_pattern: str | None = None  # regex on rendered filenames
    compute_source_sha256: bool = False

    def __post_init__(self) -> None:
        if self.dpi <= 0:
            raise ValueError("dpi must be a positive integer")
        if self.timeout_s <= 0:
            raise ValueError("timeout_s must be positive")
        if not self.engines:
            raise ValueError("engines must name at least one render engine")
        # Accept plain strings ("pdftoppm"); unknown names raise ValueError.
        object.__setattr__(self, "engines", tuple(RenderEngineName(e) for e in self.engines))
        object.__setattr__(self, "render_unit", RenderUnit(self.render_unit))
        if self.workspace_parent is not None and not isinstance(self.workspace_parent, Path):
            raise TypeError("workspace_parent must be pathlib.Path")
        if self.pdftoppm_path is not None and not isinstance(self.pdftoppm_path, Path):
            raise TypeError("pdftoppm_path must be pathlib.Path")
        if self.image_name_pattern is not None:
            try:
                re.compile(self.image_name_pattern)
            except re.error as e:
                raise ValueError(f"image_name_pattern is not a valid regex: {e}") from e
