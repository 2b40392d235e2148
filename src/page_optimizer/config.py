from __future__ import annotations

from dataclasses import dataclass

# A sampled pixel is "white" when R, G and B are all >= this value.
TRIM_WHITE_THRESHOLD = 250
# Columns sampled per row; more samples catch thinner glyph strokes.
TRIM_SAMPLE_COLUMNS = 50
# Blank rows always kept at the bottom edge after trimming.
TRIM_RETAIN_MARGIN = 20
# Rows given back to content on each side of an inner gap.
TRIM_SAFE_MARGIN = 4
# Minimum run of white rows treated as a collapsible gap (source pixels).
TRIM_INNER_MIN_GAP = 50
TRIM_KEEP_PERCENT = 30

PNG_COMPRESSION = 9
IMAGE_WIDTH_PERCENT = 135


@dataclass(frozen=True, slots=True)
class OptimizeConfig:
    """
    Per-page optimizer settings.

    `target_width` only ever downscales; None (or a width >= source) keeps the
    source width. Trimming and gap collapsing both run only when
    `trim_whitespace` is set.
    """

    target_width: int | None = None
    trim_whitespace: bool = False
    gap_threshold: int = TRIM_INNER_MIN_GAP
    keep_percent: float = TRIM_KEEP_PERCENT
    compression_level: int = PNG_COMPRESSION

    def __post_init__(self) -> None:
        if self.target_width is not None and self.target_width < 1:
            raise ValueError("target_width must be >= 1 when provided")
        if self.gap_threshold < 1:
            raise ValueError("gap_threshold must be >= 1")
        if not (0 <= self.keep_percent <= 100):
            raise ValueError("keep_percent must be within [0, 100]")
        if not (0 <= self.compression_level <= 9):
            raise ValueError("compression_level must be within [0, 9]")
