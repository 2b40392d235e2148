from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from .contracts import RenderConfig, RenderEngineName, RenderedPage
from .engines import PageRenderEngine, Pypdfium2Engine

logger = logging.getLogger(__name__)


def _parse_page_selection(selection: str | None, *, page_count: int) -> list[int]:
    """
    Parse "1,3-5" into a sorted list of unique 1-indexed page numbers.
    None => all pages.
    """

    if selection is None or selection.strip() == "":
        return list(range(1, page_count + 1))

    pages: set[int] = set()
    for part in selection.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            a_str, b_str = part.split("-", 1)
            a = int(a_str.strip())
            b = int(b_str.strip())
            if a <= 0 or b <= 0:
                raise ValueError("page numbers must be >= 1")
            if b < a:
                raise ValueError(f"invalid range: {part!r}")
            pages.update(range(a, b + 1))
        else:
            p = int(part)
            if p <= 0:
                raise ValueError("page numbers must be >= 1")
            pages.add(p)

    ordered = sorted(pages)
    if ordered and ordered[-1] > page_count:
        raise ValueError(f"page selection out of bounds (1..{page_count})")
    return ordered


def _get_engine(engine: RenderEngineName) -> PageRenderEngine:
    if engine == RenderEngineName.PYPDFIUM2:
        return Pypdfium2Engine()
    raise ValueError(f"Unsupported render engine: {engine}")


def selected_pages(*, config: RenderConfig, pdf_file: Path, engine: PageRenderEngine) -> list[int]:
    page_count = engine.get_page_count(pdf_file=pdf_file)
    return _parse_page_selection(config.page_selection, page_count=page_count)


def iter_rendered_pages(
    *,
    config: RenderConfig,
    pdf_file: Path,
    engine: PageRenderEngine | None = None,
) -> Iterator[RenderedPage]:
    """
    Yield pages in document order, rendering lazily so at most one raster is
    held by this generator at a time.

    The engine is closed when the generator finishes only if it was created
    here.
    """

    owned = engine is None
    eng = engine if engine is not None else _get_engine(config.engine)
    try:
        for page_num in selected_pages(config=config, pdf_file=pdf_file, engine=eng):
            page = eng.render_page(pdf_file=pdf_file, page_num=page_num, dpi=config.dpi)
            logger.debug(
                "Rendered page %d: %dx%d px, %d link(s)",
                page_num,
                page.page_pixel_width,
                page.page_pixel_height,
                len(page.links),
            )
            yield page
    finally:
        if owned:
            eng.close()
