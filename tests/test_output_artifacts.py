from __future__ import annotations

import json
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

from email_pipeline import (
    OutputMetadata,
    PageSizeStat,
    chunk_images,
    create_output_folder,
    read_output_metadata_json,
    serialize_output_metadata,
    write_output,
)
from raster_contracts import Chunk, ResourceError


def _metadata() -> OutputMetadata:
    return OutputMetadata(
        source_name="report",
        created_at="2024-01-02T03:04:05+00:00",
        page_count=2,
        link_count=3,
        chunk_count=1,
        total_size_mb=0.4,
        page_stats=[PageSizeStat(page=1, size_kb=120), PageSizeStat(page=2, size_kb=80)],
    )


def _chunk(n: int) -> Chunk:
    return Chunk(buffer=b"\x89PNG" + bytes([n]), width=10, height=10, areas=(), map_name=f"map_{n}")


class TestOutputMetadata(unittest.TestCase):
    def test_sidecar_round_trips(self) -> None:
        meta = _metadata()
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "metadata.json"
            path.write_text(serialize_output_metadata(meta), encoding="utf-8")
            self.assertEqual(read_output_metadata_json(path), meta)

    def test_serialization_is_stable(self) -> None:
        text = serialize_output_metadata(_metadata())
        self.assertTrue(text.endswith("\n"))
        self.assertEqual(text, serialize_output_metadata(_metadata()))
        self.assertEqual(list(json.loads(text)), sorted(json.loads(text)))


class TestOutputWriter(unittest.TestCase):
    def test_folder_name_is_sanitized_and_stamped(self) -> None:
        now = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        with tempfile.TemporaryDirectory() as tmp:
            out = create_output_folder(out_root=Path(tmp), source_name="my report", now=now)
            self.assertEqual(out.name, "my_report_2024-01-02T03-04-05")
            self.assertTrue((out / "images").is_dir())

    def test_writes_all_files(self) -> None:
        images = chunk_images([_chunk(0), _chunk(1)])
        self.assertEqual([i.filename for i in images], ["stitched_1.png", "stitched_2.png"])

        with tempfile.TemporaryDirectory() as tmp:
            out = Path(tmp) / "run"
            write_output(
                output_dir=out,
                preview_html="<p>preview</p>",
                email_html="<p>email</p>",
                images=images,
                metadata=_metadata(),
            )
            self.assertEqual((out / "preview.html").read_text(encoding="utf-8"), "<p>preview</p>")
            self.assertEqual((out / "email.html").read_text(encoding="utf-8"), "<p>email</p>")
            self.assertEqual((out / "images" / "stitched_2.png").read_bytes(), images[1].buffer)
            self.assertEqual(read_output_metadata_json(out / "metadata.json"), _metadata())

    def test_write_failure_is_a_resource_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            blocker = Path(tmp) / "not_a_dir"
            blocker.write_text("x", encoding="utf-8")
            with self.assertRaises(ResourceError) as ctx:
                write_output(
                    output_dir=blocker,
                    preview_html="",
                    email_html="",
                    images=[],
                    metadata=_metadata(),
                )
            self.assertEqual(ctx.exception.code, "OUTPUT_WRITE_FAILED")
            self.assertIn("not_a_dir", ctx.exception.detail["path"])


if __name__ == "__main__":
    unittest.main()
