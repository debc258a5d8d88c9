from __future__ import annotations

from pathlib import Path
from typing import Any

from ..contracts import ExtractConfig, RenderUnit
from .base import RenderEngine, RenderFailedError


def _load_pdfium():
    """
    Import the binding and confirm the calls this engine relies on resolve.

    Returns None when the binding is missing or its shape is unrecognized.
    """

    try:
        import pypdfium2 as pdfium  # type: ignore
    except ImportError:
        return None

    doc_cls = getattr(pdfium, "PdfDocument", None)
    page_cls = getattr(pdfium, "PdfPage", None)
    if doc_cls is None or not callable(getattr(page_cls, "render", None)):
        return None
    return pdfium


def _load_image_object_type() -> int | None:
    try:
        import pypdfium2.raw as pdfium_c  # type: ignore
    except ImportError:
        return None
    return getattr(pdfium_c, "FPDF_PAGEOBJ_IMAGE", None)


class Pypdfium2Engine(RenderEngine):
    """
    In-process rendering through the pypdfium2 binding.

    `RenderUnit.PAGE` rasterizes whole pages (`page_###.png`);
    `RenderUnit.FIGURE` extracts embedded image objects (`figure_<n>.png`,
    numbered in page then object order).
    """

    def __init__(self, *, pdfium, render_unit: RenderUnit = RenderUnit.PAGE, image_obj_type: int | None = None) -> None:
        self._pdfium = pdfium
        self.render_unit = render_unit
        self._image_obj_type = image_obj_type

    @classmethod
    def probe(cls, config: ExtractConfig) -> Pypdfium2Engine | None:
        pdfium = _load_pdfium()
        if pdfium is None:
            return None
        image_obj_type = None
        if config.render_unit == RenderUnit.FIGURE:
            image_obj_type = _load_image_object_type()
            if image_obj_type is None or not callable(getattr(pdfium.PdfPage, "get_objects", None)):
                return None
        return cls(pdfium=pdfium, render_unit=config.render_unit, image_obj_type=image_obj_type)

    def backend_id(self) -> str:
        return "pypdfium2"

    def backend_version(self) -> str | None:
        version = getattr(self._pdfium, "__version__", None)
        return None if version is None else str(version)

    def render(
        self,
        *,
        pdf_file: Path,
        out_dir: Path,
        pages: list[int],
        dpi: int,
        timeout_s: float,
    ) -> dict[str, Any]:
        # Note: pypdfium2 does not expose a straightforward per-call timeout.
        _ = timeout_s

        out_dir.mkdir(parents=True, exist_ok=True)
        doc = self._pdfium.PdfDocument(str(pdf_file))
        try:
            page_count = len(doc)
            for page_num in pages:
                if page_num < 1 or page_num > page_count:
                    raise RenderFailedError(
                        f"Page out of range: {page_num} (1..{page_count})",
                        detail={"page_num": page_num, "page_count": page_count},
                    )

            if self.render_unit == RenderUnit.FIGURE:
                written = self._render_figures(doc=doc, out_dir=out_dir, pages=pages)
            else:
                written = self._render_pages(doc=doc, out_dir=out_dir, pages=pages, dpi=dpi)
        finally:
            doc.close()

        return {
            "backend": self.backend_id(),
            "backend_version": self.backend_version(),
            "render_unit": self.render_unit.value,
            "units_written": written,
        }

    def _render_pages(self, *, doc, out_dir: Path, pages: list[int], dpi: int) -> int:
        scale = dpi / 72.0  # PDF points are 1/72 inch
        for page_num in pages:
            page = doc[page_num - 1]
            try:
                bitmap = page.render(scale=scale)
                pil_img = bitmap.to_pil().convert("RGB")
                pil_img.save(out_dir / f"page_{page_num:03d}.png", format="PNG")
            finally:
                page.close()
        return len(pages)

    def _render_figures(self, *, doc, out_dir: Path, pages: list[int]) -> int:
        n = 0
        for page_num in pages:
            page = doc[page_num - 1]
            try:
                for obj in page.get_objects(filter=(self._image_obj_type,)):
                    bitmap = obj.get_bitmap(render=False)
                    pil_img = bitmap.to_pil()
                    if pil_img.mode not in ("RGB", "RGBA", "L"):
                        pil_img = pil_img.convert("RGB")
                    n += 1
                    pil_img.save(out_dir / f"figure_{n}.png", format="PNG")
            finally:
                page.close()
        return n
