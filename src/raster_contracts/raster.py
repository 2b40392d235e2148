from __future__ import annotations

import io
import math
from dataclasses import dataclass
from typing import Any

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import InputError


def round_half_up(value: float) -> int:
    """
    Round .5 away from negative infinity (1.5 -> 2, 2.5 -> 3, -0.5 -> 0).

    Python's built-in round() is banker's rounding; keep counts and link
    coordinates must not drift by one row between analyzer, collapser and mapper.
    """

    return int(math.floor(value + 0.5))


@dataclass(frozen=True, slots=True)
class PageRaster:
    """
    Decoded page pixels, row-major `uint8` array of shape (height, width, channels).

    channels is 3 (RGB) or 4 (RGBA). A raster is transient: it is owned by the
    page optimizer for one page and never retained by the pipeline afterwards.
    """

    pixels: np.ndarray

    def __post_init__(self) -> None:
        if not isinstance(self.pixels, np.ndarray):
            raise TypeError("pixels must be a numpy.ndarray")
        if self.pixels.ndim != 3 or self.pixels.shape[2] not in (3, 4):
            raise InputError(
                code="RASTER_INVALID",
                message="Raster must have shape (height, width, 3|4)",
                detail={"shape": list(self.pixels.shape)},
            )
        if self.pixels.dtype != np.uint8:
            raise InputError(
                code="RASTER_INVALID",
                message="Raster must be uint8",
                detail={"dtype": str(self.pixels.dtype)},
            )
        if self.pixels.shape[0] < 1 or self.pixels.shape[1] < 1:
            raise InputError(
                code="RASTER_INVALID",
                message="Raster must be at least 1x1",
                detail={"shape": list(self.pixels.shape)},
            )

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def channels(self) -> int:
        return int(self.pixels.shape[2])

    @staticmethod
    def from_image(image: Image.Image) -> "PageRaster":
        if image.mode not in ("RGB", "RGBA"):
            has_alpha = "A" in image.getbands() or "transparency" in image.info
            image = image.convert("RGBA" if has_alpha else "RGB")
        return PageRaster(pixels=np.ascontiguousarray(np.asarray(image, dtype=np.uint8)))

    @staticmethod
    def from_png_bytes(data: bytes) -> "PageRaster":
        """
        Decode an encoded page image (PNG or any format Pillow reads).

        Raises InputError (PAGE_DECODE_FAILED) instead of leaking Pillow errors.
        """

        try:
            with Image.open(io.BytesIO(data)) as image:
                image.load()
                return PageRaster.from_image(image)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise InputError(
                code="PAGE_DECODE_FAILED",
                message="Failed to decode page image buffer",
                detail={"size_bytes": len(data), "error": repr(e)},
            ) from e


@dataclass(frozen=True, slots=True)
class LinkRect:
    """
    Hyperlink hit-rectangle in pixel coordinates of one page.

    For renderer output this is the original render resolution; after remapping
    by the page optimizer it is the optimized page's pixel space.
    """

    url: str
    text: str
    left: float
    top: float
    right: float
    bottom: float

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "LinkRect":
        url = str(d["url"])
        return LinkRect(
            url=url,
            text=str(d.get("text") or url),
            left=float(d["left"]),
            top=float(d["top"]),
            right=float(d["right"]),
            bottom=float(d["bottom"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "text": self.text,
            "left": self.left,
            "top": self.top,
            "right": self.right,
            "bottom": self.bottom,
        }
