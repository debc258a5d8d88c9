from __future__ import annotations

import shutil
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from catalog_extract.contracts import ExtractConfig
from catalog_extract.engines import PdftoppmCliEngine, RenderFailedError
from catalog_extract.engines.pdftoppm_cli import _contiguous_runs

_RUN = "catalog_extract.engines.pdftoppm_cli.subprocess.run"
_MONOTONIC = "catalog_extract.engines.pdftoppm_cli.time.monotonic"


class _FakePdftoppm:
    """Mimics pdftoppm: writes `<prefix>-<page>.png` for each page in -f..-l."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.timeouts: list[float] = []

    def __call__(self, cmd, **kwargs):
        self.calls.append(cmd)
        self.timeouts.append(kwargs["timeout"])
        first = int(cmd[cmd.index("-f") + 1])
        last = int(cmd[cmd.index("-l") + 1])
        prefix = cmd[-1]
        for p in range(first, last + 1):
            Path(f"{prefix}-{p}.png").write_bytes(f"page{p}".encode("utf-8"))
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")


class TestPdftoppmCliEngine(unittest.TestCase):
    def setUp(self) -> None:
        self.out_dir = Path(tempfile.mkdtemp(prefix="catalog_pdftoppm_test_"))
        self.addCleanup(shutil.rmtree, self.out_dir, True)
        self.pdf = self.out_dir.parent / "catalog_pdftoppm_input.pdf"
        self.engine = PdftoppmCliEngine(executable="/usr/bin/pdftoppm")

    def test_contiguous_runs(self) -> None:
        self.assertEqual(_contiguous_runs([1, 2, 3, 5, 7, 8]), [(1, 3), (5, 5), (7, 8)])
        self.assertEqual(_contiguous_runs([]), [])

    def test_explicit_page_range_and_prefix_arguments(self) -> None:
        fake = _FakePdftoppm()
        with patch(_RUN, side_effect=fake):
            params = self.engine.render(pdf_file=self.pdf, out_dir=self.out_dir, pages=[1, 2, 3, 5], dpi=200, timeout_s=30)

        self.assertEqual(len(fake.calls), 2)
        self.assertEqual(
            fake.calls[0],
            ["/usr/bin/pdftoppm", "-png", "-r", "200", "-f", "1", "-l", "3", str(self.pdf), str(self.out_dir / "page")],
        )
        self.assertEqual(fake.calls[1][fake.calls[1].index("-f") + 1], "5")
        self.assertEqual(sorted(p.name for p in self.out_dir.iterdir()), ["page-1.png", "page-2.png", "page-3.png", "page-5.png"])
        self.assertEqual(params["backend"], "pdftoppm")
        self.assertEqual(params["command_templates"][0][-2:], ["<PDF_FILE>", "<OUT_PREFIX>"])

    def test_nonzero_exit_carries_stderr(self) -> None:
        failed = subprocess.CompletedProcess([], 1, stdout="", stderr="Syntax Error: Couldn't read xref table\n")
        with patch(_RUN, return_value=failed):
            with self.assertRaises(RenderFailedError) as ctx:
                self.engine.render(pdf_file=self.pdf, out_dir=self.out_dir, pages=[1], dpi=150, timeout_s=30)

        self.assertIn("Couldn't read xref table", ctx.exception.message)
        self.assertEqual(ctx.exception.detail["returncode"], 1)

    def test_spawn_failure_is_render_error(self) -> None:
        with patch(_RUN, side_effect=FileNotFoundError("no such file")):
            with self.assertRaises(RenderFailedError):
                self.engine.render(pdf_file=self.pdf, out_dir=self.out_dir, pages=[1], dpi=150, timeout_s=30)

    def test_timeout_is_render_error(self) -> None:
        with patch(_RUN, side_effect=subprocess.TimeoutExpired(cmd="pdftoppm", timeout=5)):
            with self.assertRaises(RenderFailedError) as ctx:
                self.engine.render(pdf_file=self.pdf, out_dir=self.out_dir, pages=[1, 2], dpi=150, timeout_s=5)

        self.assertEqual(ctx.exception.detail["timeout_s"], 5)

    def test_timeout_budget_shared_across_page_runs(self) -> None:
        fake = _FakePdftoppm()
        clock = [100.0, 100.0, 103.0, 107.0]
        with patch(_RUN, side_effect=fake), patch(_MONOTONIC, side_effect=clock):
            self.engine.render(pdf_file=self.pdf, out_dir=self.out_dir, pages=[1, 3, 5], dpi=150, timeout_s=10)

        self.assertEqual(fake.timeouts, [10.0, 7.0, 3.0])

    def test_exhausted_budget_stops_before_next_run(self) -> None:
        fake = _FakePdftoppm()
        clock = [100.0, 100.0, 104.0, 111.0]
        with patch(_RUN, side_effect=fake), patch(_MONOTONIC, side_effect=clock):
            with self.assertRaises(RenderFailedError) as ctx:
                self.engine.render(pdf_file=self.pdf, out_dir=self.out_dir, pages=[1, 3, 5, 7], dpi=150, timeout_s=10)

        self.assertEqual(len(fake.calls), 2)
        self.assertEqual(ctx.exception.detail["pages"], [5, 5])

    def test_probe_uses_configured_executable(self) -> None:
        exe = self.out_dir / "pdftoppm-custom"
        exe.write_text("#!/bin/sh\n", encoding="utf-8")
        engine = PdftoppmCliEngine.probe(ExtractConfig(pdftoppm_path=exe))

        self.assertIsNotNone(engine)
        self.assertEqual(engine.executable, str(exe))


if __name__ == "__main__":
    unittest.main()
