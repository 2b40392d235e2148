"""
PDF rasterization stage.

Renders pages to `PageRaster`s and reports URI link annotations in pixel
coordinates so the email pipeline can turn them into image-map areas.
"""

from .contracts import PDF_DPI, TARGET_DPI, RenderConfig, RenderEngineName, RenderedPage
from .module import iter_rendered_pages, selected_pages

__all__ = [
    "PDF_DPI",
    "TARGET_DPI",
    "RenderConfig",
    "RenderEngineName",
    "RenderedPage",
    "iter_rendered_pages",
    "selected_pages",
]
