from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from pathlib import Path

from page_optimizer.config import (
    IMAGE_WIDTH_PERCENT,
    PNG_COMPRESSION,
    TRIM_INNER_MIN_GAP,
    TRIM_KEEP_PERCENT,
)
from raster_contracts import round_half_up
from render_pdf import RenderConfig, RenderedPage, iter_rendered_pages, selected_pages
from render_pdf.contracts import TARGET_DPI
from render_pdf.module import _get_engine

from .artifacts import chunk_images, create_output_folder, write_output
from .contracts import OutputOptions, PageOptions, PageProgress, PipelineOutput
from .html_generator import generate_html
from .module import PdfEmailPipeline, ProgressCallback

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConvertOptions:
    """
    End-to-end settings for one PDF -> email conversion.

    `width_percent` sets both the output image width (relative to the render
    width) and the HTML display width (relative to the PDF page width in
    points), so the layout does not depend on the render DPI.
    """

    dpi: int = TARGET_DPI
    page_selection: str | None = None
    width_percent: float = IMAGE_WIDTH_PERCENT
    image_width: int | None = None
    trim_whitespace: bool = False
    trim_gap_size: int = TRIM_INNER_MIN_GAP
    trim_keep_percent: float = TRIM_KEEP_PERCENT
    separator: bool = False
    compression_level: int = PNG_COMPRESSION
    display_width: int | None = None

    def __post_init__(self) -> None:
        if self.dpi <= 0:
            raise ValueError("dpi must be a positive integer")
        if self.width_percent <= 0:
            raise ValueError("width_percent must be > 0")
        if self.display_width is not None and self.display_width < 1:
            raise ValueError("display_width must be >= 1 when provided")
        # Raises on trim/compression/width values before any page is rendered.
        self.page_options()

    def page_options(self) -> PageOptions:
        return PageOptions(
            image_width=self.image_width,
            image_width_percent=self.width_percent,
            trim_whitespace=self.trim_whitespace,
            trim_gap_size=self.trim_gap_size,
            trim_keep_percent=self.trim_keep_percent,
            compression_level=self.compression_level,
        )


@dataclass(frozen=True, slots=True)
class ConvertResult:
    output_dir: Path
    output: PipelineOutput
    progress: list[PageProgress] = field(default_factory=list)


def source_gap_rows(page_options: PageOptions, page_pixel_width: int) -> int:
    """
    Convert `trim_gap_size`, given in output-image pixels, into render rows.

    The gap threshold is applied before the final resize, so it is scaled by
    page_pixel_width / output_width. Pages are never upscaled, so the output
    width is capped at the render width.
    """

    output_width = min(page_options.resolve_target_width(page_pixel_width), page_pixel_width)
    return max(1, round_half_up(page_options.trim_gap_size * page_pixel_width / output_width))


def _display_width(options: ConvertOptions, page_width_pt: float | None) -> int | None:
    if options.display_width is not None:
        return options.display_width
    if not page_width_pt:
        return None
    return max(1, round_half_up(page_width_pt * options.width_percent / 100))


def convert_pdf(
    *,
    pdf_file: Path,
    out_root: Path,
    options: ConvertOptions | None = None,
    on_progress: ProgressCallback | None = None,
    pipeline: PdfEmailPipeline | None = None,
) -> ConvertResult:
    """
    Render, optimize, stitch and write one PDF as an email-ready HTML bundle.

    Rendering of page i+1 overlaps optimization of page i; at most one
    optimization is in flight, so at most two page rasters are alive.

    Page buffers are released only after the bundle is written. When writing
    fails, a caller-supplied `pipeline` still holds every page and
    `generate_output` can be retried on it.
    """

    options = options or ConvertOptions()
    render_config = RenderConfig(dpi=options.dpi, page_selection=options.page_selection)
    page_options = options.page_options()

    progress: list[PageProgress] = []

    def _record(p: PageProgress) -> None:
        progress.append(p)
        if on_progress is not None:
            on_progress(p)

    if pipeline is None:
        pipeline = PdfEmailPipeline()
    else:
        pipeline.reset()
    engine = _get_engine(render_config.engine)
    first_page_width_pt: float | None = None

    try:
        total = len(selected_pages(config=render_config, pdf_file=pdf_file, engine=engine))
        logger.info("Converting %s (%d page(s) at %d DPI)", pdf_file.name, total, options.dpi)

        def _optimize(index: int, page: RenderedPage) -> PageProgress:
            gap_rows = source_gap_rows(page_options, page.page_pixel_width)
            p = pipeline.process_page(
                index,
                page.raster,
                page.links,
                page_pixel_width=page.page_pixel_width,
                page_pixel_height=page.page_pixel_height,
                total_pages=total,
                options=replace(page_options, trim_gap_size=gap_rows),
            )
            _record(p)
            return p

        with ThreadPoolExecutor(max_workers=1) as executor:
            in_flight: Future | None = None
            for index, page in enumerate(
                iter_rendered_pages(config=render_config, pdf_file=pdf_file, engine=engine)
            ):
                if first_page_width_pt is None:
                    first_page_width_pt = page.page_width_pt
                if in_flight is not None:
                    in_flight.result()
                in_flight = executor.submit(_optimize, index, page)
                del page
            if in_flight is not None:
                in_flight.result()
    finally:
        engine.close()

    source_name = pdf_file.stem
    output = pipeline.generate_output(
        source_name,
        OutputOptions(
            separator=options.separator,
            display_width=_display_width(options, first_page_width_pt),
            release_pages=False,
            compression_level=options.compression_level,
        ),
    )

    preview_html, email_html = generate_html(output.chunks, output.display_width)
    output_dir = create_output_folder(out_root=out_root, source_name=source_name)
    write_output(
        output_dir=output_dir,
        preview_html=preview_html,
        email_html=email_html,
        images=chunk_images(output.chunks),
        metadata=output.metadata,
    )
    pipeline.release_pages()
    logger.info("Wrote %s", output_dir)
    return ConvertResult(output_dir=output_dir, output=output, progress=progress)
