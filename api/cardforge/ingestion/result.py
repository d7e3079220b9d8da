from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

EXTRACTED = "extracted"
SKIPPED = "skipped"


@dataclass(frozen=True)
class NormalizedContent:
    """
    Outcome of normalization.

    `extracted`: `text` is real content from the source.
    `skipped`: nothing usable could be extracted; `text` is a bracketed
    placeholder describing why, and `reason` is a short machine tag
    (binary_url, non_html, empty_html).
    """

    status: str
    text: str
    source: str
    reason: Optional[str] = None

    @classmethod
    def extracted(cls, text: str, source: str) -> "NormalizedContent":
        return cls(status=EXTRACTED, text=text, source=source)

    @classmethod
    def skipped(cls, reason: str, placeholder: str, source: str) -> "NormalizedContent":
        return cls(status=SKIPPED, text=placeholder, source=source, reason=reason)

    @property
    def is_skipped(self) -> bool:
        return self.status == SKIPPED
