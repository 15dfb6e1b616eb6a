"""Cross-page aggregation with set semantics."""

from __future__ import annotations

import threading
from typing import Dict

from .document import PageExtraction, ScrapeDocument


class Aggregate:
    """Deduplicated union of page extractions.

    Each collection is an insertion-ordered set (a dict with ``None``
    values), so materialization is deterministic for a given merge order.
    ``merge`` holds a lock for its whole body.
    """

    def __init__(self) -> None:
        self._paragraphs: Dict[str, None] = {}
        self._links: Dict[str, None] = {}
        self._urls: Dict[str, None] = {}
        self._lock = threading.Lock()

    def merge(self, extraction: PageExtraction) -> None:
        """Fold one extraction in. Merging the same extraction twice is a no-op."""
        with self._lock:
            self._paragraphs.update(dict.fromkeys(extraction.paragraphs))
            self._links.update(dict.fromkeys(extraction.links))
            self._urls[extraction.url] = None

    def materialize(self) -> ScrapeDocument:
        with self._lock:
            return ScrapeDocument(
                paragraphs=list(self._paragraphs),
                links=list(self._links),
                urls=list(self._urls),
            )

    def counts(self) -> Dict[str, int]:
        with self._lock:
            return {
                "paragraphs": len(self._paragraphs),
                "links": len(self._links),
                "urls": len(self._urls),
            }

    def __len__(self) -> int:
        return len(self._urls)
