"""
Pipeline orchestration for PDF-to-email conversion.

`PdfEmailPipeline` accepts rendered pages in any order, optimizes and stores
them by page index, tracks the estimated email size, and on demand groups the
stored pages into stitched chunks with image-map areas. `convert_pdf` drives
the renderer, the pipeline and the output writer end to end.
"""

from .artifacts import (
    OutputImage,
    chunk_images,
    create_output_folder,
    read_output_metadata_json,
    serialize_output_metadata,
    write_output,
)
from .contracts import (
    DEFAULT_DISPLAY_WIDTH,
    OutputMetadata,
    OutputOptions,
    PageOptions,
    PageProgress,
    PageSizeStat,
    PipelineOutput,
    PipelineState,
    SizeLevel,
    SizeStatus,
)
from .html_generator import generate_html
from .module import PdfEmailPipeline
from .runner import ConvertOptions, ConvertResult, convert_pdf
from .size_budget import SizeBudget, email_encoded_size

__all__ = [
    "DEFAULT_DISPLAY_WIDTH",
    "ConvertOptions",
    "ConvertResult",
    "OutputImage",
    "OutputMetadata",
    "OutputOptions",
    "PageOptions",
    "PageProgress",
    "PageSizeStat",
    "PdfEmailPipeline",
    "PipelineOutput",
    "PipelineState",
    "SizeBudget",
    "SizeLevel",
    "SizeStatus",
    "chunk_images",
    "convert_pdf",
    "create_output_folder",
    "email_encoded_size",
    "generate_html",
    "read_output_metadata_json",
    "serialize_output_metadata",
    "write_output",
]
