"""
Catalog image extraction (PDF -> images named after accession-number labels).

The pipeline:
- discovers unique labels (e.g. "1998.5.12a Ceramic bowl") in the document text,
- renders pages or embedded figures into a temporary workspace through a
  pluggable engine (pypdfium2, Poppler pdftoppm, or Adobe PDF Services),
- pairs labels with rendered images by position and returns in-memory artifacts.

It performs NO layout analysis and does not check that a label belongs to the
image it is paired with; pairing is purely positional.
"""

from .artifacts import save_artifacts, serialize_pipeline_result, write_pipeline_manifest_json
from .contracts import (
    Artifact,
    ErrorKind,
    ExtractConfig,
    ExtractError,
    PipelineCounts,
    PipelineResult,
    PipelineState,
    RemoteServiceConfig,
    RenderEngineName,
    RenderUnit,
    SaveSummary,
)
from .labels import extract_labels
from .module import run_extract_pdf, select_render_engine
from .pairing import list_rendered_files, natural_sort_key, pair_labels_with_files, sanitize_artifact_name
from .workspace import Workspace, WorkspaceError

__all__ = [
    "Artifact",
    "ErrorKind",
    "ExtractConfig",
    "ExtractError",
    "PipelineCounts",
    "PipelineResult",
    "PipelineState",
    "RemoteServiceConfig",
    "RenderEngineName",
    "RenderUnit",
    "SaveSummary",
    "Workspace",
    "WorkspaceError",
    "extract_labels",
    "list_rendered_files",
    "natural_sort_key",
    "pair_labels_with_files",
    "run_extract_pdf",
    "sanitize_artifact_name",
    "save_artifacts",
    "select_render_engine",
    "serialize_pipeline_result",
    "write_pipeline_manifest_json",
]
