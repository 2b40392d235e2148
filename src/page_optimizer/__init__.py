"""
Per-page raster optimization: whitespace analysis, edge trim, inner-gap
collapse, downscale and lossless re-encode, plus the link coordinate mapping
that keeps hyperlink hit-regions aligned with the transformed pixels.

Sequencing is fixed: trim -> collapse -> resize. Resizing is a final uniform
scale and never interacts with the row map produced by collapsing.
"""

from .collapse import CollapseResult, Gap, Strip, collapse_inner_whitespace
from .config import OptimizeConfig
from .module import PageOptimizeResult, optimize_page, remap_link, remap_links
from .trim import TrimPlan, plan_trim
from .whitespace import TrimResult, classify_white_rows, detect_whitespace_rows

__all__ = [
    "CollapseResult",
    "Gap",
    "OptimizeConfig",
    "PageOptimizeResult",
    "Strip",
    "TrimPlan",
    "TrimResult",
    "classify_white_rows",
    "collapse_inner_whitespace",
    "detect_whitespace_rows",
    "optimize_page",
    "plan_trim",
    "remap_link",
    "remap_links",
]
