from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Iterable

from page_optimizer import optimize_page
from raster_contracts import (
    Chunk,
    ChunkArea,
    InputError,
    LinkRect,
    OptimizedPage,
    PageRaster,
    round_half_up,
)
from stitcher import MAX_STITCH_PAGES, stitch_pages

from .contracts import (
    OutputMetadata,
    OutputOptions,
    PageOptions,
    PageProgress,
    PipelineOutput,
    PipelineState,
)
from .size_budget import SizeBudget

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[PageProgress], None]


def _clamp_int(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def _chunk_areas(
    links: Iterable[LinkRect],
    *,
    top_offset: int,
    x_scale: float,
    chunk_width: int,
    chunk_height: int,
) -> list[ChunkArea]:
    areas: list[ChunkArea] = []
    for link in links:
        areas.append(
            ChunkArea(
                x1=_clamp_int(round_half_up(link.left * x_scale), 0, chunk_width),
                y1=_clamp_int(round_half_up(link.top + top_offset), 0, chunk_height),
                x2=_clamp_int(round_half_up(link.right * x_scale), 0, chunk_width),
                y2=_clamp_int(round_half_up(link.bottom + top_offset), 0, chunk_height),
                href=link.url,
                alt=link.text or link.url,
            )
        )
    return areas


class PdfEmailPipeline:
    """
    Accumulates optimized pages for one document and turns them into stitched
    chunks on demand.

    State: IDLE -> ACCEPTING (process_page, any completion order, stored by
    page index) -> FINALIZING -> FINALIZED. Only `reset()` returns to IDLE, so
    `generate_output` can be repeated with different chunking options.

    Page optimization runs outside the lock; every commit to accumulated state
    (page slot, links, size budget) happens under it, in one total order.
    """

    def __init__(self, *, on_progress: ProgressCallback | None = None) -> None:
        self._lock = threading.Lock()
        self._on_progress = on_progress
        self._generation = 0
        self.state = PipelineState.IDLE
        self.size_budget = SizeBudget()
        self.pages: dict[int, OptimizedPage] = {}
        self.page_links: dict[int, list[LinkRect]] = {}

    def reset(self) -> None:
        with self._lock:
            # In-flight process_page calls from the previous generation are discarded at commit.
            self._generation += 1
            self.size_budget.reset()
            self.pages = {}
            self.page_links = {}
            self.state = PipelineState.IDLE

    def release_pages(self) -> None:
        """Drop stored page buffers and links once the output has been written."""

        with self._lock:
            self.pages = {}
            self.page_links = {}

    def process_page(
        self,
        page_index: int,
        raster: PageRaster | bytes,
        links: Iterable[LinkRect] = (),
        *,
        page_pixel_width: int | None = None,
        page_pixel_height: int | None = None,
        total_pages: int | None = None,
        options: PageOptions | None = None,
    ) -> PageProgress:
        """
        Optimize one page and commit it at `pages[page_index]`.

        `raster` may be decoded pixels or an encoded image buffer; a buffer that
        fails to decode raises InputError before anything is committed.
        Re-processing an index replaces the stored page and links.
        """

        if page_index < 0:
            raise ValueError("page_index must be >= 0")
        options = options or PageOptions()

        with self._lock:
            generation = self._generation

        if isinstance(raster, (bytes, bytearray, memoryview)):
            raster = PageRaster.from_png_bytes(bytes(raster))

        source_width = page_pixel_width or raster.width
        result = optimize_page(
            raster,
            links,
            config=options.to_optimize_config(source_width),
            page_pixel_width=source_width,
        )
        del raster

        with self._lock:
            if generation != self._generation:
                logger.info("Discarding page %d: pipeline was reset while it was processed", page_index + 1)
                return PageProgress(
                    page_index=page_index,
                    total_pages=total_pages or page_index + 1,
                    percent=0,
                    size_status=self.size_budget.status(),
                )
            self.pages[page_index] = result.page
            self.page_links[page_index] = result.links
            size_status = self.size_budget.add_page(result.page.size_bytes, page_index)
            self.state = PipelineState.ACCEPTING

        total = total_pages or max(page_index + 1, 1)
        progress = PageProgress(
            page_index=page_index,
            total_pages=total,
            percent=min(100, round_half_up((page_index + 1) / total * 100)),
            size_status=size_status,
        )
        logger.debug(
            "Page %d/%d committed (%dx%d, %d links, page_pixel_height=%s)",
            page_index + 1,
            total,
            result.page.width,
            result.page.height,
            len(result.links),
            page_pixel_height,
        )
        if self._on_progress is not None:
            self._on_progress(progress)
        return progress

    def generate_output(
        self,
        source_name: str = "output",
        options: OutputOptions | None = None,
        *,
        now: datetime | None = None,
    ) -> PipelineOutput:
        """
        Group committed pages (ascending page index, unset slots skipped) into
        chunks of MAX_STITCH_PAGES, stitch each chunk and attach its link areas.

        Raises InputError (NO_PAGES_PROCESSED) when no page was committed; the
        pipeline state is left as it was.
        """

        options = options or OutputOptions()
        source_name = source_name or "output"

        with self._lock:
            indices = sorted(self.pages)
            if not indices:
                raise InputError(
                    code="NO_PAGES_PROCESSED",
                    message="No pages have been processed; call process_page first",
                    detail={"state": self.state.value},
                )

            previous_state = self.state
            self.state = PipelineState.FINALIZING
            try:
                chunks = self._build_chunks(indices, options)
            except Exception:
                self.state = previous_state
                raise

            size_status = self.size_budget.status()
            link_count = sum(len(self.page_links.get(i, [])) for i in indices)
            created = (now or datetime.now(timezone.utc)).isoformat()
            metadata = OutputMetadata(
                source_name=source_name,
                created_at=created,
                page_count=len(indices),
                link_count=link_count,
                chunk_count=len(chunks),
                total_size_mb=size_status.current_mb,
                page_stats=self.size_budget.page_stats(),
            )

            if options.release_pages:
                self.pages = {}
                self.page_links = {}
            self.state = PipelineState.FINALIZED

        display_width = options.display_width or chunks[0].width
        logger.info(
            "Generated %d chunk(s) from %d page(s) with %d link(s), ~%.1fMB",
            len(chunks),
            len(indices),
            link_count,
            size_status.current_mb,
        )
        return PipelineOutput(
            chunks=chunks,
            display_width=display_width,
            metadata=metadata,
            size_status=size_status,
        )

    def _build_chunks(self, indices: list[int], options: OutputOptions) -> list[Chunk]:
        chunks: list[Chunk] = []
        for start in range(0, len(indices), MAX_STITCH_PAGES):
            chunk_indices = indices[start:start + MAX_STITCH_PAGES]
            chunk_pages = [self.pages[i] for i in chunk_indices]
            stitched = stitch_pages(
                chunk_pages,
                separator=options.separator,
                compression_level=options.compression_level,
            )

            areas: list[ChunkArea] = []
            for j, page_index in enumerate(chunk_indices):
                areas.extend(
                    _chunk_areas(
                        self.page_links.get(page_index, []),
                        top_offset=stitched.page_tops[j],
                        x_scale=stitched.x_scales[j],
                        chunk_width=stitched.width,
                        chunk_height=stitched.height,
                    )
                )

            chunks.append(
                Chunk(
                    buffer=stitched.buffer,
                    width=stitched.width,
                    height=stitched.height,
                    areas=tuple(areas),
                    map_name=f"map_{len(chunks)}",
                    page_count=len(chunk_pages),
                )
            )
        return chunks
