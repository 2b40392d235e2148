from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from ..contracts import RenderedPage


class PageRenderEngine(ABC):
    """
    Renderer abstraction consumed by the conversion driver.

    Engines must:
    - Rasterize one PDF page to RGB(A) pixels at the requested DPI
    - Report URI link annotations in top-left-origin pixel coordinates
    - Be deterministic for a given input+params
    """

    @abstractmethod
    def backend_id(self) -> str:
        raise NotImplementedError

    def backend_version(self) -> str | None:
        return None

    @abstractmethod
    def get_page_count(self, *, pdf_file: Path) -> int:
        raise NotImplementedError

    @abstractmethod
    def render_page(self, *, pdf_file: Path, page_num: int, dpi: int) -> RenderedPage:
        """
        Render page `page_num` (1-indexed) and extract its links.
        """

        raise NotImplementedError

    def close(self) -> None:
        """Release any document handles held between render_page calls."""
