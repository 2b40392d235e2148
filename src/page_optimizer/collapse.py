from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from raster_contracts import round_half_up

from .config import TRIM_INNER_MIN_GAP, TRIM_KEEP_PERCENT, TRIM_SAFE_MARGIN
from .whitespace import classify_white_rows


@dataclass(frozen=True, slots=True)
class Gap:
    """Inner blank band [start, end) in region-local rows, already shrunk by the safe margin."""

    start: int
    end: int
    length: int


@dataclass(frozen=True, slots=True)
class Strip:
    """
    Contiguous source rows [src_top, src_top + src_height) of the region.

    Content strips are copied whole. A collapsed-gap strip spans the entire gap
    but only its kept window [keep_top, keep_top + keep_height) reaches the output.
    """

    src_top: int
    src_height: int
    keep_top: int
    keep_height: int

    @property
    def src_end(self) -> int:
        return self.src_top + self.src_height

    @property
    def keep_end(self) -> int:
        return self.keep_top + self.keep_height


@dataclass(frozen=True, slots=True)
class CollapseResult:
    pixels: np.ndarray  # (height, width, 4) uint8, opaque
    height: int
    row_map: np.ndarray  # int64, one entry per region row
    gaps: tuple[Gap, ...]
    strips: tuple[Strip, ...]


def _keep_window(gap: Gap, keep_percent: float) -> tuple[int, int]:
    keep_rows = max(1, round_half_up(gap.length * keep_percent / 100))
    keep_start = gap.start + (gap.length - keep_rows) // 2
    return keep_start, keep_rows


def find_inner_gaps(
    is_white: np.ndarray,
    *,
    min_gap: int = TRIM_INNER_MIN_GAP,
    safe_margin: int = TRIM_SAFE_MARGIN,
) -> list[Gap] | None:
    """
    Runs of white rows strictly between the first and last content row whose
    length, after shrinking `safe_margin` rows off each end, is still >= min_gap.

    Returns None for an entirely white region.
    """

    content_rows = np.flatnonzero(~is_white)
    if content_rows.size == 0:
        return None
    first_content = int(content_rows[0])
    last_content = int(content_rows[-1])

    gaps: list[Gap] = []
    gap_start = -1
    for row in range(first_content, last_content + 1):
        if is_white[row]:
            if gap_start == -1:
                gap_start = row
            continue
        if gap_start != -1:
            if row - gap_start >= min_gap:
                safe_start = gap_start + safe_margin
                safe_end = row - safe_margin
                if safe_end - safe_start >= min_gap:
                    gaps.append(Gap(start=safe_start, end=safe_end, length=safe_end - safe_start))
            gap_start = -1
    return gaps


def build_strips(gaps: list[Gap], region_height: int, keep_percent: float) -> list[Strip]:
    """
    Partition [0, region_height) into content strips and collapsed-gap strips.
    Each gap keeps keep_percent% of its rows (at least 1), centred in the gap.
    """

    strips: list[Strip] = []
    current = 0
    for gap in gaps:
        if gap.start > current:
            strips.append(
                Strip(src_top=current, src_height=gap.start - current, keep_top=current, keep_height=gap.start - current)
            )
        keep_start, keep_rows = _keep_window(gap, keep_percent)
        strips.append(Strip(src_top=gap.start, src_height=gap.length, keep_top=keep_start, keep_height=keep_rows))
        current = gap.end
    if current < region_height:
        strips.append(
            Strip(src_top=current, src_height=region_height - current, keep_top=current, keep_height=region_height - current)
        )
    return strips


def build_row_map(strips: list[Strip], region_height: int) -> np.ndarray:
    """
    Output row for every region row. Kept rows map linearly; rows cut from a
    gap map onto the nearest edge of its kept window (before -> first kept
    output row, after -> last), so the map is total and non-decreasing.
    """

    row_map = np.zeros(region_height, dtype=np.int64)
    output_y = 0
    for strip in strips:
        row_map[strip.src_top:strip.keep_top] = output_y
        row_map[strip.keep_top:strip.keep_end] = np.arange(output_y, output_y + strip.keep_height)
        row_map[strip.keep_end:strip.src_end] = output_y + strip.keep_height - 1
        output_y += strip.keep_height
    return row_map


def flatten_onto_white(pixels: np.ndarray) -> np.ndarray:
    """
    Composite RGB(A) pixels over an opaque white background; returns RGBA
    with alpha 255 everywhere.
    """

    height, width, channels = pixels.shape
    out = np.empty((height, width, 4), dtype=np.uint8)
    if channels == 4:
        alpha = pixels[:, :, 3:4].astype(np.uint16)
        rgb = pixels[:, :, :3].astype(np.uint16)
        out[:, :, :3] = ((rgb * alpha + 255 * (255 - alpha) + 127) // 255).astype(np.uint8)
    else:
        out[:, :, :3] = pixels[:, :, :3]
    out[:, :, 3] = 255
    return out


def collapse_inner_whitespace(
    region: np.ndarray,
    *,
    min_gap: int = TRIM_INNER_MIN_GAP,
    keep_percent: float = TRIM_KEEP_PERCENT,
    safe_margin: int = TRIM_SAFE_MARGIN,
) -> CollapseResult | None:
    """
    Shrink oversized inner blank bands of an already edge-trimmed region.

    Returns None when there is nothing to do (all white, or no qualifying gap).
    """

    height = int(region.shape[0])
    is_white = classify_white_rows(region, 0, height)
    gaps = find_inner_gaps(is_white, min_gap=min_gap, safe_margin=safe_margin)
    if not gaps:
        return None

    strips = build_strips(gaps, height, keep_percent)
    row_map = build_row_map(strips, height)
    collapsed = np.concatenate([region[s.keep_top:s.keep_end] for s in strips], axis=0)
    return CollapseResult(
        pixels=flatten_onto_white(collapsed),
        height=int(collapsed.shape[0]),
        row_map=row_map,
        gaps=tuple(gaps),
        strips=tuple(strips),
    )
