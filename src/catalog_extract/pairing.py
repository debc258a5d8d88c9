from __future__ import annotations

import re
from pathlib import Path

from .contracts import Artifact

IMAGE_SUFFIXES = frozenset({".png", ".jpg", ".jpeg", ".ppm", ".tif", ".tiff", ".bmp", ".gif"})

ARTIFACT_SUFFIX = ".png"

_DIGIT_RUN = re.compile(r"(\d+)")
_TRAILING_IMAGE_EXT = re.compile(r"\.(?:png|jpe?g|gif)$", re.IGNORECASE)
_ILLEGAL_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def natural_sort_key(name: str) -> tuple:
    """
    Sort key comparing digit runs as integers, so "img_2" < "img_10".
    """

    parts = _DIGIT_RUN.split(name)
    # re.split with a capture group alternates text, digits, text, ...
    key = tuple(int(p) if i % 2 else p.casefold() for i, p in enumerate(parts))
    return key, name


def sanitize_artifact_name(name: str) -> str:
    """
    Filesystem-safe artifact filename, always ending in ".png".

    Idempotent: sanitizing an already sanitized name returns it unchanged.
    """

    base = _TRAILING_IMAGE_EXT.sub("", name)
    base = _ILLEGAL_FILENAME_CHARS.sub("", base)
    base = " ".join(base.split())
    base = base.strip(" .")
    return (base or "artifact") + ARTIFACT_SUFFIX


def list_rendered_files(out_dir: Path, *, name_pattern: str | None = None) -> list[Path]:
    """
    Image files directly inside `out_dir`, in natural filename order.
    """

    pattern = re.compile(name_pattern) if name_pattern else None
    files: list[Path] = []
    for p in out_dir.iterdir():
        if not p.is_file() or p.suffix.lower() not in IMAGE_SUFFIXES:
            continue
        if pattern is not None and not pattern.search(p.name):
            continue
        files.append(p)
    return sorted(files, key=lambda p: natural_sort_key(p.name))


def pair_labels_with_files(labels: list[str], files: list[Path]) -> list[Artifact]:
    """
    Zip labels with rendered files by position; the shorter list wins.

    Pairing is purely positional. It assumes labels and images appear in the
    same relative order in the source document.
    """

    n = min(len(labels), len(files))
    artifacts: list[Artifact] = []
    for i in range(n):
        artifacts.append(
            Artifact.from_bytes(
                name=sanitize_artifact_name(labels[i]),
                content=files[i].read_bytes(),
                source_name=files[i].name,
            )
        )
    return artifacts
