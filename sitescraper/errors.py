"""Exception hierarchy for the scrape pipeline.

Every error carries a stable ``code`` matching the names callers see in
JSON error payloads (MCP server) and log lines (CLI).
"""

from __future__ import annotations

from typing import Optional


class ScrapeError(Exception):
    """Base class for all scrape pipeline errors."""

    code = "ScrapeError"

    def __init__(self, message: str, url: str = ""):
        self.url = url
        super().__init__(message)


class InvalidInput(ScrapeError, ValueError):
    """Raised when a URL, owner, mode or option is missing or malformed."""

    code = "InvalidInput"


class PageScrapeError(ScrapeError):
    """Per-URL failure. Retried, then dropped from the aggregate."""

    code = "PageScrapeError"


class RenderTimeout(PageScrapeError):
    """Navigation or selector wait exceeded its timeout."""

    code = "RenderTimeout"


class ExtractionFailed(PageScrapeError):
    """The renderer failed while loading or reading a page."""

    code = "ExtractionFailed"


class StorageWriteFailed(ScrapeError):
    """The artifact could not be written. No pointer record exists."""

    code = "StorageWriteFailed"


class RecordWriteFailed(ScrapeError):
    """The pointer record could not be written after the artifact was.

    ``locator`` points at the artifact that is now unreferenced.
    """

    code = "RecordWriteFailed"

    def __init__(self, message: str, url: str = "", locator: Optional[str] = None):
        self.locator = locator
        super().__init__(message, url=url)


class CrawlDeadlineExceeded(ScrapeError):
    """The overall deadline for a whole-site scrape expired."""

    code = "CrawlDeadlineExceeded"
