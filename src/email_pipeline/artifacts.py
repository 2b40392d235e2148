from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

from raster_contracts import Chunk, ResourceError

from .contracts import OutputMetadata


@dataclass(frozen=True, slots=True)
class OutputImage:
    filename: str
    buffer: bytes


def _safe_folder_stem(name: str) -> str:
    s = re.sub(r"[^\w.-]+", "_", name, flags=re.UNICODE)
    s = re.sub(r"_+", "_", s).strip("._")
    return s or "output"


def chunk_images(chunks: Sequence[Chunk]) -> list[OutputImage]:
    return [OutputImage(filename=f"stitched_{i + 1}.png", buffer=c.buffer) for i, c in enumerate(chunks)]


def serialize_output_metadata(metadata: OutputMetadata) -> str:
    payload: dict[str, Any] = metadata.to_dict()
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, indent=2) + "\n"


def read_output_metadata_json(path: Path) -> OutputMetadata:
    return OutputMetadata.from_dict(json.loads(path.read_text(encoding="utf-8")))


def create_output_folder(*, out_root: Path, source_name: str, now: datetime | None = None) -> Path:
    """
    Create `<out_root>/<source_name>_<YYYY-MM-DDTHH-MM-SS>/images/` and return
    the run folder.
    """

    stamp = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%dT%H-%M-%S")
    output_dir = out_root / f"{_safe_folder_stem(source_name)}_{stamp}"
    try:
        (output_dir / "images").mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ResourceError(
            code="OUTPUT_WRITE_FAILED",
            message=f"Could not create output folder: {e}",
            detail={"path": str(output_dir), "error": repr(e)},
        ) from e
    return output_dir


def write_output(
    *,
    output_dir: Path,
    preview_html: str,
    email_html: str,
    images: Sequence[OutputImage],
    metadata: OutputMetadata,
) -> Path:
    """
    Write preview.html, email.html, images/* and the metadata.json sidecar.

    Failures surface as ResourceError; nothing here touches pipeline state, so
    the caller may retry once the external fault is fixed.
    """

    current = output_dir
    try:
        current = output_dir / "images"
        current.mkdir(parents=True, exist_ok=True)

        current = output_dir / "preview.html"
        current.write_text(preview_html, encoding="utf-8")
        current = output_dir / "email.html"
        current.write_text(email_html, encoding="utf-8")

        for image in images:
            current = output_dir / "images" / image.filename
            current.write_bytes(image.buffer)

        current = output_dir / "metadata.json"
        current.write_text(serialize_output_metadata(metadata), encoding="utf-8")
    except OSError as e:
        raise ResourceError(
            code="OUTPUT_WRITE_FAILED",
            message=f"Failed to write output file: {e}",
            detail={"path": str(current), "error": repr(e)},
        ) from e
    return output_dir
