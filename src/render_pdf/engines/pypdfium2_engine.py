from __future__ import annotations

import ctypes
import math
from pathlib import Path
from typing import Any

from raster_contracts import LinkRect, PageRaster

from ..contracts import PDF_DPI, RenderedPage
from .base import PageRenderEngine


class Pypdfium2Engine(PageRenderEngine):
    """
    pypdfium2 renderer. Keeps the last opened document so that rendering a
    document page by page does not re-parse the file for every page.
    """

    def __init__(self) -> None:
        self._doc: Any = None
        self._doc_path: Path | None = None

    def backend_id(self) -> str:
        return "pypdfium2"

    def backend_version(self) -> str | None:
        try:
            import pypdfium2 as pdfium  # type: ignore

            return getattr(pdfium, "__version__", None)
        except ImportError:
            return None

    def _require_pdfium(self):
        try:
            import pypdfium2 as pdfium  # type: ignore

            return pdfium
        except ImportError as e:
            raise RuntimeError(
                "Missing dependency: pypdfium2 is required for PDF rendering."
            ) from e

    def _document(self, pdf_file: Path):
        if self._doc is not None and self._doc_path == pdf_file:
            return self._doc
        self.close()
        pdfium = self._require_pdfium()
        self._doc = pdfium.PdfDocument(str(pdf_file))
        self._doc_path = pdf_file
        return self._doc

    def close(self) -> None:
        if self._doc is not None:
            self._doc.close()
        self._doc = None
        self._doc_path = None

    def get_page_count(self, *, pdf_file: Path) -> int:
        return len(self._document(pdf_file))

    def render_page(self, *, pdf_file: Path, page_num: int, dpi: int) -> RenderedPage:
        doc = self._document(pdf_file)
        page_count = len(doc)
        if page_num < 1 or page_num > page_count:
            raise ValueError(f"Page out of range: {page_num} (1..{page_count})")

        scale = dpi / float(PDF_DPI)  # PDF points are 1/72 inch
        page = doc[page_num - 1]
        try:
            width_pt, height_pt = page.get_size()
            pil_img = page.render(scale=scale).to_pil().convert("RGB")
            raster = PageRaster.from_image(pil_img)
            links = self._extract_links(doc, page, page_height_pt=height_pt, scale=scale)
        finally:
            page.close()

        return RenderedPage(
            page_num=page_num,
            raster=raster,
            links=links,
            page_pixel_width=raster.width,
            page_pixel_height=raster.height,
            page_width_pt=float(width_pt),
        )

    def _extract_links(self, doc: Any, page: Any, *, page_height_pt: float, scale: float) -> list[LinkRect]:
        import pypdfium2.raw as pdfium_c  # type: ignore

        links: list[LinkRect] = []
        textpage = page.get_textpage()
        try:
            pos = ctypes.c_int(0)
            link = pdfium_c.FPDF_LINK()
            while pdfium_c.FPDFLink_Enumerate(page.raw, ctypes.byref(pos), ctypes.byref(link)):
                url = _link_uri(pdfium_c, doc, link)
                if not url:
                    continue
                rect = pdfium_c.FS_RECTF()
                if not pdfium_c.FPDFLink_GetAnnotRect(link, ctypes.byref(rect)):
                    continue

                # PDF space is bottom-left origin; pixel space is top-left.
                x0, x1 = sorted((rect.left, rect.right))
                y0, y1 = sorted((rect.bottom, rect.top))
                text = textpage.get_text_bounded(left=x0, bottom=y0, right=x1, top=y1).strip()
                links.append(
                    LinkRect(
                        url=url,
                        text=text or url,
                        left=float(math.floor(x0 * scale)),
                        top=float(math.floor((page_height_pt - y1) * scale)),
                        right=float(math.ceil(x1 * scale)),
                        bottom=float(math.ceil((page_height_pt - y0) * scale)),
                    )
                )
        finally:
            textpage.close()
        return links


def _link_uri(pdfium_c: Any, doc: Any, link: Any) -> str | None:
    action = pdfium_c.FPDFLink_GetAction(link)
    if not action or pdfium_c.FPDFAction_GetType(action) != pdfium_c.PDFACTION_URI:
        return None
    size = pdfium_c.FPDFAction_GetURIPath(doc.raw, action, None, 0)
    if size <= 1:
        return None
    buf = ctypes.create_string_buffer(size)
    pdfium_c.FPDFAction_GetURIPath(doc.raw, action, buf, size)
    return buf.value.decode("utf-8", errors="replace")
