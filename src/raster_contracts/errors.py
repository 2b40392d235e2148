from __future__ import annotations

from typing import Any


class PipelineError(Exception):
    """
    Base class for failures surfaced to callers of the conversion pipeline.

    Carries the same (code, message, detail) triple the JSON artifacts use for
    error records, so a caller can serialize it without guessing.
    """

    def __init__(self, code: str, message: str, detail: dict[str, Any] | None = None) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "detail": self.detail}


class InputError(PipelineError):
    """No pages to finalize, or a page buffer that cannot be decoded."""


class ResourceError(PipelineError):
    """Output folder or storage write failure; in-memory state is left intact."""


class ConfigurationError(PipelineError):
    """A request that cannot be satisfied, e.g. stitching zero pages."""
