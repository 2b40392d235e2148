from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from raster_contracts import LinkRect, PageRaster

TARGET_DPI = 250
PDF_DPI = 72


class RenderEngineName(str, Enum):
    """
    Rendering backend identifiers.
    """

    PYPDFIUM2 = "pypdfium2"


@dataclass(frozen=True, slots=True)
class RenderConfig:
    """
    Renderer settings. The PDF path is passed explicitly by the caller; this
    module reads no environment variables.
    """

    engine: RenderEngineName = RenderEngineName.PYPDFIUM2
    dpi: int = TARGET_DPI
    page_selection: str | None = None  # e.g. "1,3-5"; None => all pages

    def __post_init__(self) -> None:
        if self.dpi <= 0:
            raise ValueError("dpi must be a positive integer")

    @property
    def scale(self) -> float:
        return self.dpi / PDF_DPI


@dataclass(frozen=True, slots=True)
class RenderedPage:
    """
    One rendered page as handed to the pipeline.

    Links are in pixel coordinates at the render resolution, top-left origin.
    """

    page_num: int  # 1-indexed
    raster: PageRaster
    links: list[LinkRect] = field(default_factory=list)
    page_pixel_width: int = 0
    page_pixel_height: int = 0
    page_width_pt: float = 0.0
