from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .engines.base import EngineUnavailableError


class TextSourceUnavailableError(EngineUnavailableError):
    """
    The PDF text binding (pypdfium2) cannot be imported.
    """


@dataclass(frozen=True, slots=True)
class DocumentText:
    text: str
    page_count: int


def read_document_text(pdf_file: Path) -> DocumentText:
    """
    Read the plain text of every page plus the page count.

    Pages are joined with a newline so a label never runs into the first word
    of the next page. Scanned pages contribute empty text (no OCR here).
    """

    try:
        import pypdfium2 as pdfium  # type: ignore
    except ImportError as e:
        raise TextSourceUnavailableError(
            "Missing dependency: pypdfium2 is required for text extraction.",
            detail={"dependency": "pypdfium2", "error": repr(e)},
        ) from e

    doc = pdfium.PdfDocument(str(pdf_file))
    try:
        page_texts: list[str] = []
        for i in range(len(doc)):
            page = doc[i]
            textpage = page.get_textpage()
            try:
                page_texts.append(textpage.get_text_range())
            finally:
                textpage.close()
                page.close()
        return DocumentText(text="\n".join(page_texts), page_count=len(doc))
    finally:
        doc.close()
