"""
Shared raster/link contracts for every stage of the PDF-to-email conversion.

These types are the boundary between the renderer, the page optimizer, the
stitcher and the pipeline orchestrator:
- `PageRaster` / `LinkRect` are produced per page by the renderer.
- `OptimizedPage` is produced by the page optimizer.
- `Chunk` / `ChunkArea` are produced by the stitcher at finalize time.
"""

from .errors import ConfigurationError, InputError, PipelineError, ResourceError
from .pages import Chunk, ChunkArea, OptimizedPage
from .raster import LinkRect, PageRaster, round_half_up

__all__ = [
    "Chunk",
    "ChunkArea",
    "ConfigurationError",
    "InputError",
    "LinkRect",
    "OptimizedPage",
    "PageRaster",
    "PipelineError",
    "ResourceError",
    "round_half_up",
]
