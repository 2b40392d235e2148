from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any

import numpy as np


def _encode_base64_once(owner: Any, buffer: bytes) -> str:
    cached = owner._base64
    if cached is None:
        cached = base64.b64encode(buffer).decode("ascii")
        # Frozen dataclass: the cache slot is the only field written after init.
        object.__setattr__(owner, "_base64", cached)
    return cached


@dataclass(frozen=True, slots=True)
class OptimizedPage:
    """
    Final per-page artifact of the page optimizer.

    - `buffer` is the losslessly encoded PNG of the optimized page.
    - `trimmed_top` is the number of source rows removed from the top.
    - `row_map` maps post-trim source rows to output rows before resize;
      None means no inner gap was collapsed (identity mapping).
    """

    buffer: bytes
    width: int
    height: int
    trimmed_top: int = 0
    row_map: np.ndarray | None = field(default=None, compare=False, repr=False)
    _base64: str | None = field(default=None, init=False, compare=False, repr=False)

    @property
    def size_bytes(self) -> int:
        return len(self.buffer)

    def base64_data(self) -> str:
        """Base64 text of `buffer`, computed on first use and cached."""

        return _encode_base64_once(self, self.buffer)


@dataclass(frozen=True, slots=True)
class ChunkArea:
    """Link hit-rectangle in chunk-local pixel coordinates (inclusive-exclusive)."""

    x1: int
    y1: int
    x2: int
    y2: int
    href: str
    alt: str

    def to_dict(self) -> dict[str, Any]:
        return {"x1": self.x1, "y1": self.y1, "x2": self.x2, "y2": self.y2, "href": self.href, "alt": self.alt}


@dataclass(frozen=True, slots=True)
class Chunk:
    """
    Stitched composite of up to MAX_STITCH_PAGES consecutive optimized pages.

    Created once at finalize time; immutable thereafter.
    """

    buffer: bytes
    width: int
    height: int
    areas: tuple[ChunkArea, ...]
    map_name: str
    page_count: int = 1
    _base64: str | None = field(default=None, init=False, compare=False, repr=False)

    @property
    def size_bytes(self) -> int:
        return len(self.buffer)

    def base64_data(self) -> str:
        """Base64 text of `buffer`, computed on first use and cached."""

        return _encode_base64_once(self, self.buffer)

    def to_dict(self) -> dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "map_name": self.map_name,
            "page_count": self.page_count,
            "size_bytes": self.size_bytes,
            "areas": [a.to_dict() for a in self.areas],
        }
