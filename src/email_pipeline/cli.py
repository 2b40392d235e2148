from __future__ import annotations

import argparse
import logging
from pathlib import Path

from page_optimizer.config import (
    IMAGE_WIDTH_PERCENT,
    PNG_COMPRESSION,
    TRIM_INNER_MIN_GAP,
    TRIM_KEEP_PERCENT,
)
from raster_contracts import PipelineError
from render_pdf.contracts import TARGET_DPI

from .runner import ConvertOptions, convert_pdf

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pdf2email",
        description="Render a PDF into stitched PNG chunks with clickable image maps, as email-ready HTML.",
    )
    p.add_argument("--pdf", required=True, type=Path, help="Input PDF file.")
    p.add_argument("--out-root", required=True, type=Path, help="Directory that receives the run folder.")
    p.add_argument("--dpi", type=int, default=TARGET_DPI, help="Render DPI.")
    p.add_argument(
        "--page-selection",
        default=None,
        help='Optional page selection like "1,3-5". Default: all pages.',
    )
    p.add_argument(
        "--width-percent",
        type=float,
        default=IMAGE_WIDTH_PERCENT,
        help="Output width as a percentage of the page width (images are never upscaled).",
    )
    p.add_argument("--image-width", type=int, default=None, help="Explicit output image width in pixels.")

    spacing = p.add_mutually_exclusive_group()
    spacing.add_argument("--trim", action="store_true", help="Trim page margins and collapse inner whitespace.")
    spacing.add_argument("--separator", action="store_true", help="Draw a thin rule between stitched pages.")

    p.add_argument(
        "--trim-gap-size",
        type=int,
        default=TRIM_INNER_MIN_GAP,
        help=(
            "Minimum blank run that counts as a collapsible gap, in output-image pixels "
            "(converted to render rows using the output width)."
        ),
    )
    p.add_argument(
        "--trim-keep-percent",
        type=float,
        default=TRIM_KEEP_PERCENT,
        help="Percentage of each collapsed gap to keep.",
    )
    p.add_argument(
        "--compression-level",
        type=int,
        choices=range(0, 10),
        default=PNG_COMPRESSION,
        metavar="0-9",
        help="zlib level for PNG output.",
    )
    p.add_argument("--display-width", type=int, default=None, help="HTML display width in pixels.")
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    try:
        options = ConvertOptions(
            dpi=args.dpi,
            page_selection=args.page_selection,
            width_percent=args.width_percent,
            image_width=args.image_width,
            trim_whitespace=args.trim,
            trim_gap_size=args.trim_gap_size,
            trim_keep_percent=args.trim_keep_percent,
            separator=args.separator,
            compression_level=args.compression_level,
            display_width=args.display_width,
        )
        result = convert_pdf(pdf_file=args.pdf, out_root=args.out_root, options=options)
    except PipelineError as e:
        logger.error("%s: %s", e.code, e.message)
        return 2
    except ValueError as e:
        # Option values and page selections are checked before any page is rendered.
        logger.error("Invalid argument: %s", e)
        return 2

    meta = result.output.metadata
    print(
        f"{result.output_dir}: {meta.page_count} page(s), {meta.chunk_count} chunk(s), "
        f"{meta.link_count} link(s), ~{meta.total_size_mb}MB"
    )
    if result.output.size_status.message:
        logger.warning(result.output.size_status.message)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
