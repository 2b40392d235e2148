from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Sequence

from PIL import Image, UnidentifiedImageError

from raster_contracts import ConfigurationError, InputError, OptimizedPage

logger = logging.getLogger(__name__)

MAX_STITCH_PAGES = 30
SEPARATOR_HEIGHT = 2
SEPARATOR_COLOR = (204, 204, 204, 255)
DEFAULT_COMPRESSION = 9


@dataclass(frozen=True, slots=True)
class StitchedImage:
    """
    Vertical composite of one chunk's pages.

    `page_tops[i]` is the chunk-local Y of page i's first row and
    `x_scales[i]` the horizontal stretch applied to page i to reach `width`.
    """

    buffer: bytes
    width: int
    height: int
    page_tops: tuple[int, ...]
    x_scales: tuple[float, ...]
    separator_height: int


def _decode_rgba(page: OptimizedPage, index: int) -> Image.Image:
    try:
        with Image.open(io.BytesIO(page.buffer)) as image:
            return image.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise InputError(
            code="PAGE_DECODE_FAILED",
            message="Failed to decode optimized page buffer for stitching",
            detail={"chunk_page": index, "error": repr(e)},
        ) from e


def stitch_pages(
    pages: Sequence[OptimizedPage],
    *,
    separator: bool = False,
    compression_level: int = DEFAULT_COMPRESSION,
) -> StitchedImage:
    """
    Stack `pages` top-to-bottom on an opaque white RGBA canvas.

    Every page is stretched horizontally to the first page's width; heights are
    kept, so the canvas height is the sum of page heights plus one separator
    rule between consecutive pages when `separator` is set. A single page is
    passed through unchanged, buffer included.
    """

    if not pages:
        raise ConfigurationError(
            code="STITCH_NO_PAGES",
            message="Stitching requires at least one page",
        )
    if len(pages) > MAX_STITCH_PAGES:
        raise ConfigurationError(
            code="STITCH_TOO_MANY_PAGES",
            message="Chunk exceeds the per-chunk page limit",
            detail={"page_count": len(pages), "max_pages": MAX_STITCH_PAGES},
        )

    if len(pages) == 1:
        only = pages[0]
        return StitchedImage(
            buffer=only.buffer,
            width=only.width,
            height=only.height,
            page_tops=(0,),
            x_scales=(1.0,),
            separator_height=0,
        )

    target_width = pages[0].width
    sep = SEPARATOR_HEIGHT if separator else 0
    total_height = sum(p.height for p in pages) + sep * (len(pages) - 1)

    canvas = Image.new("RGBA", (target_width, total_height), (255, 255, 255, 255))
    page_tops: list[int] = []
    x_scales: list[float] = []
    y = 0
    for i, page in enumerate(pages):
        image = _decode_rgba(page, i)
        if image.size != (target_width, page.height):
            image = image.resize((target_width, page.height), Image.Resampling.LANCZOS)
        canvas.alpha_composite(image, dest=(0, y))
        page_tops.append(y)
        x_scales.append(target_width / page.width)
        y += page.height
        if sep and i < len(pages) - 1:
            canvas.paste(SEPARATOR_COLOR, (0, y, target_width, y + sep))
            y += sep

    buf = io.BytesIO()
    canvas.save(buf, format="PNG", compress_level=int(compression_level))
    logger.debug("Stitched %d pages into %dx%d", len(pages), target_width, total_height)

    return StitchedImage(
        buffer=buf.getvalue(),
        width=target_width,
        height=total_height,
        page_tops=tuple(page_tops),
        x_scales=tuple(x_scales),
        separator_height=sep,
    )
