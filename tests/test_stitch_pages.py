from __future__ import annotations

import io
import unittest

import numpy as np
from PIL import Image

from page_optimizer.codec import encode_png
from raster_contracts import ConfigurationError, InputError, OptimizedPage
from stitcher import MAX_STITCH_PAGES, SEPARATOR_COLOR, SEPARATOR_HEIGHT, stitch_pages


def _page(width: int, height: int, value: int = 0) -> OptimizedPage:
    pixels = np.full((height, width, 3), value, dtype=np.uint8)
    return OptimizedPage(buffer=encode_png(pixels), width=width, height=height)


def _decode(buffer: bytes) -> Image.Image:
    with Image.open(io.BytesIO(buffer)) as image:
        return image.convert("RGBA")


class TestStitchPages(unittest.TestCase):
    def test_height_is_sum_of_pages(self) -> None:
        s = stitch_pages([_page(40, 30), _page(40, 20)])
        self.assertEqual((s.width, s.height), (40, 50))
        self.assertEqual(s.page_tops, (0, 30))
        self.assertEqual(_decode(s.buffer).size, (40, 50))

    def test_separator_adds_one_rule_between_pages(self) -> None:
        pages = [_page(40, 30), _page(40, 20), _page(40, 10)]
        s = stitch_pages(pages, separator=True)
        self.assertEqual(s.height, 60 + SEPARATOR_HEIGHT * 2)
        self.assertEqual(s.page_tops, (0, 30 + SEPARATOR_HEIGHT, 50 + 2 * SEPARATOR_HEIGHT))

        image = _decode(s.buffer)
        self.assertEqual(image.getpixel((5, 30)), SEPARATOR_COLOR)
        self.assertEqual(image.getpixel((5, 29)), (0, 0, 0, 255))

    def test_narrower_pages_are_stretched_to_first_width(self) -> None:
        s = stitch_pages([_page(40, 30), _page(20, 10, value=255)])
        self.assertEqual((s.width, s.height), (40, 40))
        self.assertEqual(s.x_scales, (1.0, 2.0))
        self.assertEqual(_decode(s.buffer).getpixel((39, 35)), (255, 255, 255, 255))

    def test_single_page_passes_through(self) -> None:
        page = _page(40, 30)
        s = stitch_pages([page], separator=True)
        self.assertIs(s.buffer, page.buffer)
        self.assertEqual((s.width, s.height), (40, 30))

    def test_zero_pages_is_a_configuration_error(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            stitch_pages([])
        self.assertEqual(ctx.exception.code, "STITCH_NO_PAGES")

    def test_more_than_chunk_limit_is_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            stitch_pages([_page(4, 4)] * (MAX_STITCH_PAGES + 1))

    def test_undecodable_page_is_an_input_error(self) -> None:
        bad = OptimizedPage(buffer=b"not a png", width=40, height=10)
        with self.assertRaises(InputError) as ctx:
            stitch_pages([_page(40, 30), bad])
        self.assertEqual(ctx.exception.code, "PAGE_DECODE_FAILED")


if __name__ == "__main__":
    unittest.main()
