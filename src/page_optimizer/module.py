from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable

import numpy as np

from raster_contracts import LinkRect, OptimizedPage, PageRaster, round_half_up

from .codec import encode_png, resize_to_width
from .collapse import Gap, collapse_inner_whitespace
from .config import OptimizeConfig
from .trim import TrimPlan, plan_trim
from .whitespace import detect_whitespace_rows

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PageOptimizeResult:
    page: OptimizedPage
    links: list[LinkRect]  # in the optimized page's pixel space
    trim: TrimPlan | None
    gaps: tuple[Gap, ...]


def _clamp_row(row: float, last: int) -> int:
    return max(0, min(round_half_up(row), last))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def remap_link(
    link: LinkRect,
    *,
    trimmed_top: int,
    row_map: np.ndarray | None,
    scale: float,
) -> LinkRect:
    """
    Carry one link from original render pixels into optimized-page pixels:
    undo the top crop, route Y through the row map (if any), then scale.
    """

    top = link.top - trimmed_top
    bottom = link.bottom - trimmed_top
    if row_map is not None:
        last = int(row_map.shape[0]) - 1
        top = float(row_map[_clamp_row(top, last)])
        bottom = float(row_map[_clamp_row(bottom, last)])

    return LinkRect(
        url=link.url,
        text=link.text or link.url,
        left=link.left * scale,
        top=top * scale,
        right=link.right * scale,
        bottom=bottom * scale,
    )


def remap_links(
    links: Iterable[LinkRect],
    *,
    trimmed_top: int,
    row_map: np.ndarray | None,
    scale: float,
    output_width: int,
    output_height: int,
) -> list[LinkRect]:
    """
    Remap every link independently and drop the ones that fell entirely into
    trimmed-away space (bottom <= 0 or top >= output_height). Survivors are
    clamped into [0, output_width] x [0, output_height]; non-finite
    coordinates are dropped rather than raised.
    """

    out: list[LinkRect] = []
    for link in links:
        coords = (link.left, link.top, link.right, link.bottom)
        if not all(math.isfinite(c) for c in coords):
            continue
        mapped = remap_link(link, trimmed_top=trimmed_top, row_map=row_map, scale=scale)
        if mapped.bottom <= 0 or mapped.top >= output_height:
            continue
        left, right = sorted((mapped.left, mapped.right))
        top, bottom = sorted((mapped.top, mapped.bottom))
        out.append(
            LinkRect(
                url=mapped.url,
                text=mapped.text,
                left=_clamp(left, 0.0, float(output_width)),
                top=_clamp(top, 0.0, float(output_height)),
                right=_clamp(right, 0.0, float(output_width)),
                bottom=_clamp(bottom, 0.0, float(output_height)),
            )
        )
    return out


def optimize_page(
    raster: PageRaster,
    links: Iterable[LinkRect] = (),
    *,
    config: OptimizeConfig,
    page_pixel_width: int | None = None,
) -> PageOptimizeResult:
    """
    Trim, collapse, downscale and PNG-encode one page, and remap its links.

    Order is fixed: edge trim, then inner-gap collapse, then resize. The resize
    is a uniform scale by output_width / page_pixel_width applied to both the
    raster and the links; it never touches the row map.

    The returned page holds no reference to `raster`.
    """

    pixels = raster.pixels
    source_height = raster.height
    source_width = raster.width
    if page_pixel_width is None or page_pixel_width < 1:
        page_pixel_width = source_width

    crop_top = 0
    height = source_height
    trim_plan: TrimPlan | None = None

    if config.trim_whitespace and height > 1:
        detected = detect_whitespace_rows(pixels, 0, height)
        trim_plan = plan_trim(
            detected,
            height,
            gap_threshold=config.gap_threshold,
            keep_percent=config.keep_percent,
        )
        if trim_plan.applied:
            crop_top = trim_plan.skip_top
            height = trim_plan.content_height

    region = pixels[crop_top:crop_top + height]
    row_map: np.ndarray | None = None
    gaps: tuple[Gap, ...] = ()

    if config.trim_whitespace and height > config.gap_threshold * 2:
        collapsed = collapse_inner_whitespace(
            region,
            min_gap=config.gap_threshold,
            keep_percent=config.keep_percent,
        )
        if collapsed is not None:
            region = collapsed.pixels
            height = collapsed.height
            row_map = collapsed.row_map
            gaps = collapsed.gaps

    output_width = source_width
    output_height = height
    if config.target_width is not None and config.target_width < source_width:
        output_width = config.target_width
        output_height = max(1, round_half_up(height * config.target_width / source_width))
        region = resize_to_width(region, output_width, output_height)

    buffer = encode_png(region, compression_level=config.compression_level)
    page = OptimizedPage(
        buffer=buffer,
        width=output_width,
        height=output_height,
        trimmed_top=crop_top,
        row_map=row_map,
    )

    scale = output_width / page_pixel_width
    remapped = remap_links(
        links,
        trimmed_top=crop_top,
        row_map=row_map,
        scale=scale,
        output_width=output_width,
        output_height=output_height,
    )

    logger.debug(
        "Optimized page %dx%d -> %dx%d (trimmed_top=%d, gaps=%d, links=%d, bytes=%d)",
        source_width,
        source_height,
        output_width,
        output_height,
        crop_top,
        len(gaps),
        len(remapped),
        len(buffer),
    )

    return PageOptimizeResult(page=page, links=remapped, trim=trim_plan, gaps=gaps)
