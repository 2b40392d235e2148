from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .config import TRIM_SAMPLE_COLUMNS, TRIM_WHITE_THRESHOLD


@dataclass(frozen=True, slots=True)
class TrimResult:
    """Contiguous blank rows counted from each edge of an analyzed region."""

    top_white_rows: int
    bottom_white_rows: int


def sample_columns(width: int, samples: int = TRIM_SAMPLE_COLUMNS) -> np.ndarray:
    """
    Evenly spaced column indices: floor(i * width / n) for i in [0, n),
    with n = min(samples, width).
    """

    n = min(samples, width)
    return (np.arange(n, dtype=np.int64) * width) // n


def classify_white_rows(
    pixels: np.ndarray,
    start_row: int,
    end_row: int,
    *,
    threshold: int = TRIM_WHITE_THRESHOLD,
    samples: int = TRIM_SAMPLE_COLUMNS,
) -> np.ndarray:
    """
    Boolean mask over rows [start_row, end_row): True where every sampled
    column has R, G and B >= threshold. Alpha is ignored.
    """

    width = int(pixels.shape[1])
    cols = sample_columns(width, samples)
    sampled = pixels[start_row:end_row, cols, :3]
    return np.all(sampled >= threshold, axis=(1, 2))


def _leading_true(mask: np.ndarray) -> int:
    misses = np.flatnonzero(~mask)
    return int(misses[0]) if misses.size else int(mask.size)


def detect_whitespace_rows(
    pixels: np.ndarray,
    start_row: int,
    end_row: int,
    *,
    threshold: int = TRIM_WHITE_THRESHOLD,
    samples: int = TRIM_SAMPLE_COLUMNS,
) -> TrimResult:
    """
    Count white rows from the top of [start_row, end_row) downward and from the
    bottom upward. The bottom scan never crosses the rows already counted from
    the top, so an all-white region yields top + bottom == height.

    Regions of height <= 1 are the caller's to skip.
    """

    mask = classify_white_rows(pixels, start_row, end_row, threshold=threshold, samples=samples)
    top = _leading_true(mask)
    bottom = _leading_true(mask[top:][::-1])
    return TrimResult(top_white_rows=top, bottom_white_rows=bottom)
