"""
Chunk stitching: composite consecutive optimized pages into one
width-normalized vertical strip per chunk, optionally separated by a thin rule.
"""

from .module import (
    MAX_STITCH_PAGES,
    SEPARATOR_COLOR,
    SEPARATOR_HEIGHT,
    StitchedImage,
    stitch_pages,
)

__all__ = [
    "MAX_STITCH_PAGES",
    "SEPARATOR_COLOR",
    "SEPARATOR_HEIGHT",
    "StitchedImage",
    "stitch_pages",
]
