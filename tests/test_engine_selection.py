from __future__ import annotations

import unittest
from unittest.mock import patch

from catalog_extract.contracts import ExtractConfig, RemoteServiceConfig, RenderEngineName, RenderUnit
from catalog_extract.engines import (
    AdobePdfServicesEngine,
    EngineUnavailableError,
    PdftoppmCliEngine,
    Pypdfium2Engine,
)
from catalog_extract.module import select_render_engine

_WHICH = "catalog_extract.engines.pdftoppm_cli.shutil.which"
_LOAD_PDFIUM = "catalog_extract.engines.pypdfium2_engine._load_pdfium"


class _ShapelessBinding:
    """Stand-in for a binding whose API does not match what the engine calls."""

    PdfDocument = object

    class PdfPage:
        pass


class TestEngineSelection(unittest.TestCase):
    def test_library_binding_preferred_by_default(self) -> None:
        engine = select_render_engine(ExtractConfig())
        self.assertIsInstance(engine, Pypdfium2Engine)
        self.assertEqual(engine.backend_id(), "pypdfium2")

    def test_falls_through_to_process_when_binding_missing(self) -> None:
        with patch(_LOAD_PDFIUM, return_value=None), patch(_WHICH, return_value="/usr/bin/pdftoppm"):
            engine = select_render_engine(ExtractConfig())

        self.assertIsInstance(engine, PdftoppmCliEngine)
        self.assertEqual(engine.executable, "/usr/bin/pdftoppm")

    def test_unrecognized_binding_shape_treated_as_unavailable(self) -> None:
        with patch.dict("sys.modules", {"pypdfium2": _ShapelessBinding}), patch(_WHICH, return_value="/opt/pdftoppm"):
            engine = select_render_engine(ExtractConfig())

        self.assertIsInstance(engine, PdftoppmCliEngine)

    def test_falls_through_to_remote_when_credentials_configured(self) -> None:
        config = ExtractConfig(
            engines=(RenderEngineName.PDFTOPPM, RenderEngineName.ADOBE_PDF_SERVICES),
            render_unit=RenderUnit.FIGURE,
            remote=RemoteServiceConfig(client_id="id", client_secret="secret"),
        )
        engine = select_render_engine(config)
        self.assertIsInstance(engine, AdobePdfServicesEngine)

    def test_remote_unavailable_without_credentials(self) -> None:
        config = ExtractConfig(
            engines=(RenderEngineName.ADOBE_PDF_SERVICES,),
            render_unit=RenderUnit.FIGURE,
            remote=RemoteServiceConfig(client_id="id", client_secret=""),
        )
        with self.assertRaises(EngineUnavailableError) as ctx:
            select_render_engine(config)
        self.assertEqual(ctx.exception.detail["tried"], ["adobe_pdf_services"])

    def test_engine_names_given_as_strings_are_coerced(self) -> None:
        config = ExtractConfig(engines=("pdftoppm",), render_unit="page")
        self.assertEqual(config.engines, (RenderEngineName.PDFTOPPM,))
        self.assertIs(config.render_unit, RenderUnit.PAGE)

        with patch(_WHICH, return_value="/usr/bin/pdftoppm"):
            self.assertIsInstance(select_render_engine(config), PdftoppmCliEngine)

        with self.assertRaises(ValueError):
            ExtractConfig(engines=("ghostscript",))

    def test_process_unavailable_when_executable_not_on_path(self) -> None:
        config = ExtractConfig(engines=(RenderEngineName.PDFTOPPM,))
        with patch(_WHICH, return_value=None):
            with self.assertRaises(EngineUnavailableError):
                select_render_engine(config)

    def test_no_engine_available_lists_every_strategy_tried(self) -> None:
        with patch(_LOAD_PDFIUM, return_value=None), patch(_WHICH, return_value=None):
            with self.assertRaises(EngineUnavailableError) as ctx:
                select_render_engine(ExtractConfig())

        self.assertEqual(ctx.exception.detail["tried"], ["pypdfium2", "pdftoppm", "adobe_pdf_services"])


if __name__ == "__main__":
    unittest.main()
