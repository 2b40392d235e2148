from __future__ import annotations

import logging
import math

from raster_contracts import round_half_up

from .contracts import PageSizeStat, SizeLevel, SizeStatus

logger = logging.getLogger(__name__)

MIB = 1024 * 1024
EMAIL_SIZE_LIMIT = 25 * MIB
EMAIL_SIZE_WARNING = 20 * MIB
EMAIL_SIZE_DANGER = 24 * MIB
HTML_OVERHEAD_BYTES = 5000


def email_encoded_size(size_bytes: int) -> int:
    """Length of the base64 text an inline image of `size_bytes` costs in an email."""

    return 4 * math.ceil(size_bytes / 3)


class SizeBudget:
    """
    Running estimate of the final email size.

    The total only grows (one contribution per processed page, re-processing
    adds again) until `reset()`. `status().current_bytes` always equals the sum
    of contributions plus HTML_OVERHEAD_BYTES.
    """

    def __init__(self, *, html_overhead: int = HTML_OVERHEAD_BYTES) -> None:
        self.html_overhead = html_overhead
        self.total_bytes = 0
        self.page_bytes: dict[int, int] = {}
        self._last_level = SizeLevel.OK

    def reset(self) -> None:
        self.total_bytes = 0
        self.page_bytes = {}
        self._last_level = SizeLevel.OK

    def add_page(self, size_bytes: int, page_index: int) -> SizeStatus:
        contribution = email_encoded_size(size_bytes)
        self.total_bytes += contribution
        self.page_bytes[page_index] = self.page_bytes.get(page_index, 0) + contribution

        status = self.status()
        if status.level != self._last_level:
            if status.level != SizeLevel.OK:
                logger.warning("%s (after page %d)", status.message, page_index + 1)
            self._last_level = status.level
        return status

    def status(self) -> SizeStatus:
        total = self.total_bytes + self.html_overhead
        current_mb = round(total / MIB, 1)
        limit_mb = EMAIL_SIZE_LIMIT // MIB

        if total > EMAIL_SIZE_LIMIT:
            level = SizeLevel.EXCEEDED
            message = f"Email size limit ({limit_mb}MB) exceeded; consider splitting the document"
        elif total > EMAIL_SIZE_DANGER:
            level = SizeLevel.DANGER
            message = f"Email size is close to the limit ({current_mb}/{limit_mb}MB)"
        elif total > EMAIL_SIZE_WARNING:
            level = SizeLevel.WARNING
            message = f"Email size warning: {current_mb}/{limit_mb}MB"
        else:
            level = SizeLevel.OK
            message = ""

        return SizeStatus(
            level=level,
            message=message,
            current_bytes=total,
            current_mb=current_mb,
            limit_mb=limit_mb,
            percent=min(100.0, total / EMAIL_SIZE_LIMIT * 100),
        )

    def page_stats(self) -> list[PageSizeStat]:
        return [
            PageSizeStat(page=index + 1, size_kb=round_half_up(size / 1024))
            for index, size in sorted(self.page_bytes.items())
        ]
