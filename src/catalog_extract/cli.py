from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from .artifacts import save_artifacts, write_pipeline_manifest_json
from .contracts import DEFAULT_ENGINE_ORDER, ExtractConfig, RemoteServiceConfig, RenderEngineName, RenderUnit
from .module import run_extract_pdf

EXIT_OK = 0
EXIT_RUN_FAILED = 2
EXIT_SAVE_INCOMPLETE = 3


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="catalog-extract",
        description="Extract catalog images from a PDF and name them after accession-number labels.",
    )
    p.add_argument("--pdf", required=True, type=Path, help="Source PDF file.")
    p.add_argument("--save-dir", type=Path, default=None, help="Write artifact images into this directory.")
    p.add_argument("--out-manifest", type=Path, default=None, help="Output manifest JSON file.")
    p.add_argument(
        "--manifest-include-data",
        action="store_true",
        help="Embed base64 image data in the manifest.",
    )
    p.add_argument(
        "--engine",
        dest="engines",
        action="append",
        choices=[e.value for e in RenderEngineName],
        default=None,
        help="Render engine preference; repeat to set fallback order. Default: "
        + ", ".join(e.value for e in DEFAULT_ENGINE_ORDER),
    )
    p.add_argument(
        "--render-unit",
        choices=[u.value for u in RenderUnit],
        default=RenderUnit.PAGE.value,
        help="Render whole pages or embedded figures.",
    )
    p.add_argument("--dpi", type=int, default=150, help="Page render DPI.")
    p.add_argument(
        "--page-selection",
        default=None,
        help='Optional page selection like "1,3-5". Default: all pages.',
    )
    p.add_argument("--timeout-s", type=float, default=300.0, help="Render timeout for CLI/remote engines.")
    p.add_argument("--pdftoppm-path", type=Path, default=None, help="Explicit pdftoppm executable.")
    p.add_argument(
        "--adobe-client-id",
        default=os.environ.get("PDF_SERVICES_CLIENT_ID"),
        help="PDF Services client id (default: $PDF_SERVICES_CLIENT_ID).",
    )
    p.add_argument(
        "--adobe-client-secret",
        default=os.environ.get("PDF_SERVICES_CLIENT_SECRET"),
        help="PDF Services client secret (default: $PDF_SERVICES_CLIENT_SECRET).",
    )
    p.add_argument("--image-name-pattern", default=None, help="Regex restricting which rendered files are paired.")
    p.add_argument(
        "--compute-source-sha256",
        action="store_true",
        help="Include SHA-256 of the source PDF in meta for auditing.",
    )
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engines = tuple(RenderEngineName(e) for e in args.engines) if args.engines else DEFAULT_ENGINE_ORDER
    config = ExtractConfig(
        engines=engines,
        dpi=args.dpi,
        render_unit=RenderUnit(args.render_unit),
        page_selection=args.page_selection,
        timeout_s=args.timeout_s,
        pdftoppm_path=args.pdftoppm_path,
        remote=RemoteServiceConfig(client_id=args.adobe_client_id, client_secret=args.adobe_client_secret),
        image_name_pattern=args.image_name_pattern,
        compute_source_sha256=args.compute_source_sha256,
    )

    result = run_extract_pdf(config=config, pdf_file=args.pdf.expanduser().resolve())
    if args.out_manifest is not None:
        write_pipeline_manifest_json(
            result=result,
            out_manifest=args.out_manifest,
            include_data=args.manifest_include_data,
        )

    if not result.ok:
        for err in result.errors:
            print(f"{err.code.value}: {err.message}", file=sys.stderr)
        return EXIT_RUN_FAILED

    if args.save_dir is not None:
        summary = save_artifacts(result.artifacts, args.save_dir)
        print(summary.message, file=sys.stderr)
        if not summary.ok:
            return EXIT_SAVE_INCOMPLETE

    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
