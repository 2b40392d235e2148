from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from page_optimizer import OptimizeConfig
from page_optimizer.config import (
    IMAGE_WIDTH_PERCENT,
    PNG_COMPRESSION,
    TRIM_INNER_MIN_GAP,
    TRIM_KEEP_PERCENT,
)
from raster_contracts import Chunk, round_half_up

DEFAULT_DISPLAY_WIDTH = 600


class PipelineState(str, Enum):
    IDLE = "idle"
    ACCEPTING = "accepting"
    FINALIZING = "finalizing"
    FINALIZED = "finalized"


class SizeLevel(str, Enum):
    OK = "ok"
    WARNING = "warning"
    DANGER = "danger"
    EXCEEDED = "exceeded"


@dataclass(frozen=True, slots=True)
class PageOptions:
    """
    Per-page conversion options recognized by the pipeline.

    Output width is `image_width` pixels when given, otherwise
    `image_width_percent` of the page's render width. Either way the page is
    only ever downscaled.
    """

    image_width: int | None = None
    image_width_percent: float = IMAGE_WIDTH_PERCENT
    trim_whitespace: bool = False
    trim_gap_size: int = TRIM_INNER_MIN_GAP
    trim_keep_percent: float = TRIM_KEEP_PERCENT
    compression_level: int = PNG_COMPRESSION

    def __post_init__(self) -> None:
        if self.image_width is not None and self.image_width < 1:
            raise ValueError("image_width must be >= 1 when provided")
        if self.image_width_percent <= 0:
            raise ValueError("image_width_percent must be > 0")
        if self.trim_gap_size < 1:
            raise ValueError("trim_gap_size must be >= 1")
        if not (0 <= self.trim_keep_percent <= 100):
            raise ValueError("trim_keep_percent must be within [0, 100]")
        if not (0 <= self.compression_level <= 9):
            raise ValueError("compression_level must be within [0, 9]")

    def resolve_target_width(self, page_pixel_width: int) -> int:
        if self.image_width is not None:
            return self.image_width
        return max(1, round_half_up(page_pixel_width * self.image_width_percent / 100))

    def to_optimize_config(self, page_pixel_width: int) -> OptimizeConfig:
        return OptimizeConfig(
            target_width=self.resolve_target_width(page_pixel_width),
            trim_whitespace=self.trim_whitespace,
            gap_threshold=self.trim_gap_size,
            keep_percent=self.trim_keep_percent,
            compression_level=self.compression_level,
        )


@dataclass(frozen=True, slots=True)
class OutputOptions:
    """
    Finalize options.

    `separator` and trimming both address vertical spacing; callers normally
    enable one or the other. `release_pages` drops the accumulated page
    buffers once the chunks are built (output can then not be re-requested).
    """

    separator: bool = False
    display_width: int | None = None
    release_pages: bool = False
    compression_level: int = PNG_COMPRESSION

    def __post_init__(self) -> None:
        if self.display_width is not None and self.display_width < 1:
            raise ValueError("display_width must be >= 1 when provided")
        if not (0 <= self.compression_level <= 9):
            raise ValueError("compression_level must be within [0, 9]")


@dataclass(frozen=True, slots=True)
class SizeStatus:
    level: SizeLevel
    message: str
    current_bytes: int
    current_mb: float
    limit_mb: int
    percent: float

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["level"] = self.level.value
        return d


@dataclass(frozen=True, slots=True)
class PageProgress:
    page_index: int
    total_pages: int
    percent: int
    size_status: SizeStatus


@dataclass(frozen=True, slots=True)
class PageSizeStat:
    page: int  # 1-indexed
    size_kb: int

    def to_dict(self) -> dict[str, Any]:
        return {"page": self.page, "size_kb": self.size_kb}


@dataclass(frozen=True, slots=True)
class OutputMetadata:
    """
    Per-run metadata persisted as the `metadata.json` sidecar.

    `from_dict(to_dict(m)) == m` must hold.
    """

    source_name: str
    created_at: str  # ISO-8601, UTC
    page_count: int
    link_count: int
    chunk_count: int
    total_size_mb: float
    page_stats: list[PageSizeStat] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_name": self.source_name,
            "created_at": self.created_at,
            "page_count": self.page_count,
            "link_count": self.link_count,
            "chunk_count": self.chunk_count,
            "total_size_mb": self.total_size_mb,
            "page_stats": [s.to_dict() for s in self.page_stats],
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "OutputMetadata":
        return OutputMetadata(
            source_name=str(d["source_name"]),
            created_at=str(d["created_at"]),
            page_count=int(d["page_count"]),
            link_count=int(d["link_count"]),
            chunk_count=int(d["chunk_count"]),
            total_size_mb=float(d["total_size_mb"]),
            page_stats=[
                PageSizeStat(page=int(s["page"]), size_kb=int(s["size_kb"])) for s in d.get("page_stats") or []
            ],
        )


@dataclass(frozen=True, slots=True)
class PipelineOutput:
    """Everything the output writer needs: chunk images + areas, display width, metadata."""

    chunks: list[Chunk]
    display_width: int
    metadata: OutputMetadata
    size_status: SizeStatus
