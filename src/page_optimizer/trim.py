from __future__ import annotations

from dataclasses import dataclass

from raster_contracts import round_half_up

from .config import TRIM_RETAIN_MARGIN
from .whitespace import TrimResult


@dataclass(frozen=True, slots=True)
class TrimPlan:
    """
    Rows to crop from each edge of a region. `applied` is False when the
    detected margins were discarded (skip_top == skip_bottom == 0).
    """

    skip_top: int
    skip_bottom: int
    content_height: int
    applied: bool


def plan_trim(
    trim: TrimResult,
    original_height: int,
    *,
    gap_threshold: int,
    keep_percent: float,
    retain_margin: int = TRIM_RETAIN_MARGIN,
) -> TrimPlan:
    """
    Decide how much of the detected edge whitespace to remove.

    Top: margins of at least `gap_threshold` rows keep keep_percent% of
    themselves (minimum 1 row); smaller margins are left alone.
    Bottom: always tightened to min(bottom_white_rows, retain_margin).
    A plan leaving fewer than 2 content rows is discarded.
    """

    top = trim.top_white_rows
    bottom = trim.bottom_white_rows

    if top >= gap_threshold:
        top_keep = max(1, round_half_up(top * keep_percent / 100))
    else:
        top_keep = top
    bottom_keep = min(bottom, retain_margin)

    skip_top = max(0, top - top_keep)
    skip_bottom = max(0, bottom - bottom_keep)
    content_height = original_height - skip_top - skip_bottom

    if content_height < 2:
        return TrimPlan(skip_top=0, skip_bottom=0, content_height=original_height, applied=False)
    return TrimPlan(
        skip_top=skip_top,
        skip_bottom=skip_bottom,
        content_height=content_height,
        applied=skip_top > 0 or skip_bottom > 0,
    )
