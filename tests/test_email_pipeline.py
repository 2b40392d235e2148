from __future__ import annotations

import unittest
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import numpy as np

from email_pipeline import (
    OutputOptions,
    PageOptions,
    PdfEmailPipeline,
    PipelineState,
)
from email_pipeline.size_budget import HTML_OVERHEAD_BYTES, email_encoded_size
from raster_contracts import InputError, LinkRect, PageRaster


def _raster(height: int, width: int = 40, value: int = 0) -> PageRaster:
    return PageRaster(pixels=np.full((height, width, 3), value, dtype=np.uint8))


def _link(i: int, top: float = 0, bottom: float = 5) -> LinkRect:
    return LinkRect(url=f"https://example.com/{i}", text=f"link {i}", left=0, top=top, right=4, bottom=bottom)


class TestPipelineFinalize(unittest.TestCase):
    def test_no_pages_is_an_input_error(self) -> None:
        pipeline = PdfEmailPipeline()
        with self.assertRaises(InputError) as ctx:
            pipeline.generate_output("doc")
        self.assertEqual(ctx.exception.code, "NO_PAGES_PROCESSED")
        self.assertEqual(pipeline.state, PipelineState.IDLE)

    def test_pages_are_grouped_into_chunks_of_thirty(self) -> None:
        pipeline = PdfEmailPipeline()
        for i in range(45):
            pipeline.process_page(i, _raster(4, 4), total_pages=45)

        out = pipeline.generate_output("doc")
        self.assertEqual([c.page_count for c in out.chunks], [30, 15])
        self.assertEqual([c.height for c in out.chunks], [120, 60])
        self.assertEqual([c.map_name for c in out.chunks], ["map_0", "map_1"])
        self.assertEqual(out.metadata.page_count, 45)
        self.assertEqual(out.metadata.chunk_count, 2)
        self.assertEqual(pipeline.state, PipelineState.FINALIZED)

    def test_completion_order_does_not_change_page_order(self) -> None:
        pipeline = PdfEmailPipeline()
        for i in (2, 0, 1):
            pipeline.process_page(i, _raster(10 * (i + 1)), [_link(i)], total_pages=3)

        chunk = pipeline.generate_output("doc").chunks[0]
        self.assertEqual(chunk.height, 60)
        self.assertEqual([a.href for a in chunk.areas], [f"https://example.com/{i}" for i in range(3)])
        self.assertEqual([a.y1 for a in chunk.areas], [0, 10, 30])
        self.assertEqual([a.alt for a in chunk.areas], ["link 0", "link 1", "link 2"])

    def test_missing_slots_keep_links_with_their_pages(self) -> None:
        pipeline = PdfEmailPipeline()
        pipeline.process_page(2, _raster(30), [_link(2)], total_pages=3)
        pipeline.process_page(0, _raster(10), [_link(0)], total_pages=3)

        out = pipeline.generate_output("doc")
        chunk = out.chunks[0]
        self.assertEqual(out.metadata.page_count, 2)
        self.assertEqual([(a.href, a.y1) for a in chunk.areas], [("https://example.com/0", 0), ("https://example.com/2", 10)])

    def test_separator_offsets_areas(self) -> None:
        pipeline = PdfEmailPipeline()
        pipeline.process_page(0, _raster(10), [_link(0)])
        pipeline.process_page(1, _raster(10), [_link(1, top=2, bottom=6)])

        chunk = pipeline.generate_output("doc", OutputOptions(separator=True)).chunks[0]
        self.assertEqual(chunk.height, 22)
        self.assertEqual([(a.y1, a.y2) for a in chunk.areas], [(0, 5), (14, 18)])

    def test_chunk_areas_are_contained(self) -> None:
        pipeline = PdfEmailPipeline()
        pipeline.process_page(0, _raster(20, width=40), [_link(0, top=15, bottom=30)])
        pipeline.process_page(1, _raster(20, width=20), [LinkRect("https://x.example/", "", 10, 0, 30, 25)])

        chunk = pipeline.generate_output("doc").chunks[0]
        self.assertEqual(len(chunk.areas), 2)
        for a in chunk.areas:
            self.assertTrue(0 <= a.x1 <= a.x2 <= chunk.width)
            self.assertTrue(0 <= a.y1 <= a.y2 <= chunk.height)
        # page 1 was stretched 2x horizontally
        self.assertEqual((chunk.areas[1].x1, chunk.areas[1].x2), (20, 40))

    def test_output_can_be_requested_again(self) -> None:
        pipeline = PdfEmailPipeline()
        pipeline.process_page(0, _raster(10))
        pipeline.process_page(1, _raster(10))

        first = pipeline.generate_output("doc", OutputOptions(separator=False))
        second = pipeline.generate_output("doc", OutputOptions(separator=True))
        self.assertEqual(first.chunks[0].height, 20)
        self.assertEqual(second.chunks[0].height, 22)

    def test_release_pages_drops_buffers(self) -> None:
        pipeline = PdfEmailPipeline()
        pipeline.process_page(0, _raster(10))
        pipeline.generate_output("doc", OutputOptions(release_pages=True))
        self.assertEqual(pipeline.pages, {})
        with self.assertRaises(InputError):
            pipeline.generate_output("doc")

    def test_metadata_and_display_width(self) -> None:
        pipeline = PdfEmailPipeline()
        pipeline.process_page(0, _raster(10), [_link(0), _link(1)])
        now = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

        out = pipeline.generate_output("report", OutputOptions(display_width=600), now=now)
        self.assertEqual(out.display_width, 600)
        self.assertEqual(out.metadata.source_name, "report")
        self.assertEqual(out.metadata.link_count, 2)
        self.assertEqual(out.metadata.created_at, "2024-01-02T03:04:05+00:00")
        self.assertEqual([s.page for s in out.metadata.page_stats], [1])

        default = pipeline.generate_output("report")
        self.assertEqual(default.display_width, 40)


class TestPipelineProcessPage(unittest.TestCase):
    def test_reprocessing_replaces_page_and_grows_budget(self) -> None:
        pipeline = PdfEmailPipeline()
        p1 = pipeline.process_page(0, _raster(10))
        size1 = pipeline.pages[0].size_bytes
        pipeline.process_page(0, _raster(30))
        size2 = pipeline.pages[0].size_bytes

        self.assertEqual(pipeline.pages[0].height, 30)
        status = pipeline.size_budget.status()
        self.assertEqual(
            status.current_bytes,
            email_encoded_size(size1) + email_encoded_size(size2) + HTML_OVERHEAD_BYTES,
        )
        self.assertGreater(status.current_bytes, p1.size_status.current_bytes)

    def test_progress_is_reported(self) -> None:
        seen = []
        pipeline = PdfEmailPipeline(on_progress=seen.append)
        pipeline.process_page(0, _raster(10), total_pages=3)
        pipeline.process_page(2, _raster(10), total_pages=3)

        self.assertEqual([(p.page_index, p.percent) for p in seen], [(0, 33), (2, 100)])
        self.assertEqual(pipeline.state, PipelineState.ACCEPTING)

    def test_progress_percent_is_capped(self) -> None:
        pipeline = PdfEmailPipeline()
        p = pipeline.process_page(5, _raster(10), total_pages=3)
        self.assertEqual(p.percent, 100)

    def test_release_pages_after_write(self) -> None:
        pipeline = PdfEmailPipeline()
        pipeline.process_page(0, _raster(10), [_link(0)])
        pipeline.generate_output("doc")
        pipeline.release_pages()

        self.assertEqual(pipeline.pages, {})
        self.assertEqual(pipeline.page_links, {})
        self.assertEqual(pipeline.state, PipelineState.FINALIZED)

    def test_page_options_reject_out_of_range_values(self) -> None:
        for kwargs in (
            {"trim_keep_percent": 150},
            {"trim_keep_percent": -1},
            {"trim_gap_size": 0},
            {"compression_level": 10},
            {"image_width": 0},
            {"image_width_percent": 0},
        ):
            with self.subTest(**kwargs):
                with self.assertRaises(ValueError):
                    PageOptions(**kwargs)
        with self.assertRaises(ValueError):
            OutputOptions(compression_level=-1)

    def test_undecodable_buffer_commits_nothing(self) -> None:
        pipeline = PdfEmailPipeline()
        with self.assertRaises(InputError) as ctx:
            pipeline.process_page(0, b"not a png")
        self.assertEqual(ctx.exception.code, "PAGE_DECODE_FAILED")
        self.assertEqual(pipeline.pages, {})
        self.assertEqual(pipeline.state, PipelineState.IDLE)

    def test_encoded_buffer_input(self) -> None:
        from page_optimizer.codec import encode_png

        pipeline = PdfEmailPipeline()
        pipeline.process_page(0, encode_png(np.zeros((12, 8, 3), dtype=np.uint8)))
        self.assertEqual((pipeline.pages[0].width, pipeline.pages[0].height), (8, 12))

    def test_page_options_drive_output_width(self) -> None:
        pipeline = PdfEmailPipeline()
        pipeline.process_page(0, _raster(40, width=40), options=PageOptions(image_width_percent=50))
        pipeline.process_page(1, _raster(40, width=40), options=PageOptions(image_width=10))
        self.assertEqual(pipeline.pages[0].width, 20)
        self.assertEqual(pipeline.pages[1].width, 10)

    def test_concurrent_submission(self) -> None:
        pipeline = PdfEmailPipeline()
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda i: pipeline.process_page(i, _raster(5 + i % 3), total_pages=20), range(20)))

        self.assertEqual(sorted(pipeline.pages), list(range(20)))
        expected = sum(email_encoded_size(p.size_bytes) for p in pipeline.pages.values()) + HTML_OVERHEAD_BYTES
        self.assertEqual(pipeline.size_budget.status().current_bytes, expected)

    def test_reset_clears_everything(self) -> None:
        pipeline = PdfEmailPipeline()
        pipeline.process_page(0, _raster(10), [_link(0)])
        pipeline.generate_output("doc")
        pipeline.reset()

        self.assertEqual(pipeline.state, PipelineState.IDLE)
        self.assertEqual(pipeline.pages, {})
        self.assertEqual(pipeline.page_links, {})
        self.assertEqual(pipeline.size_budget.status().current_bytes, HTML_OVERHEAD_BYTES)


if __name__ == "__main__":
    unittest.main()
