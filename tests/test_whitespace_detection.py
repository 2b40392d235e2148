from __future__ import annotations

import unittest

import numpy as np

from page_optimizer.whitespace import (
    classify_white_rows,
    detect_whitespace_rows,
    sample_columns,
)


def _white(height: int, width: int, channels: int = 3) -> np.ndarray:
    return np.full((height, width, channels), 255, dtype=np.uint8)


class TestSampleColumns(unittest.TestCase):
    def test_evenly_spaced_floor_positions(self) -> None:
        cols = sample_columns(100, 50)
        self.assertEqual(cols.tolist(), list(range(0, 100, 2)))

    def test_narrow_raster_samples_every_column(self) -> None:
        self.assertEqual(sample_columns(10, 50).tolist(), list(range(10)))


class TestDetectWhitespaceRows(unittest.TestCase):
    def test_counts_margins_from_both_edges(self) -> None:
        pixels = _white(200, 100)
        pixels[30:170] = 0
        r = detect_whitespace_rows(pixels, 0, 200)
        self.assertEqual(r.top_white_rows, 30)
        self.assertEqual(r.bottom_white_rows, 30)

    def test_all_white_region_never_double_counts(self) -> None:
        r = detect_whitespace_rows(_white(10, 5), 0, 10)
        self.assertEqual(r.top_white_rows + r.bottom_white_rows, 10)
        self.assertEqual(r.top_white_rows, 10)

    def test_sub_range(self) -> None:
        pixels = _white(50, 20)
        pixels[20] = 0
        r = detect_whitespace_rows(pixels, 10, 40)
        self.assertEqual(r.top_white_rows, 10)
        self.assertEqual(r.bottom_white_rows, 19)

    def test_unsampled_column_is_invisible(self) -> None:
        pixels = _white(10, 100)
        pixels[5, 1] = 0  # odd columns are not sampled at width 100
        mask = classify_white_rows(pixels, 0, 10)
        self.assertTrue(bool(mask.all()))

    def test_threshold_is_inclusive(self) -> None:
        pixels = _white(3, 4)
        pixels[0] = 250
        pixels[1] = 249
        mask = classify_white_rows(pixels, 0, 3)
        self.assertEqual(mask.tolist(), [True, False, True])

    def test_alpha_channel_is_ignored(self) -> None:
        pixels = _white(2, 4, channels=4)
        pixels[0, :, 3] = 0
        pixels[1, :, :3] = 0
        pixels[1, :, 3] = 0
        mask = classify_white_rows(pixels, 0, 2)
        self.assertEqual(mask.tolist(), [True, False])


if __name__ == "__main__":
    unittest.main()
