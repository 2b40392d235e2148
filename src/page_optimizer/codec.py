from __future__ import annotations

import io

import numpy as np
from PIL import Image

from .config import PNG_COMPRESSION


def encode_png(pixels: np.ndarray, *, compression_level: int = PNG_COMPRESSION) -> bytes:
    """
    Lossless PNG encoding of an RGB/RGBA uint8 array.

    `optimize` is left off on purpose: Pillow forces level 9 when it is set.
    """

    image = Image.fromarray(np.ascontiguousarray(pixels))
    buf = io.BytesIO()
    image.save(buf, format="PNG", compress_level=int(compression_level))
    return buf.getvalue()


def resize_to_width(pixels: np.ndarray, target_width: int, target_height: int) -> np.ndarray:
    image = Image.fromarray(np.ascontiguousarray(pixels))
    resized = image.resize((target_width, target_height), Image.Resampling.LANCZOS)
    return np.asarray(resized, dtype=np.uint8)
