"""Site scraper: paragraph and link extraction from rendered web pages.

This module provides the public API for:

- Scraping the current page only (returned directly, nothing persisted)
- Scraping an entire site: same-origin link discovery from a seed page,
  batched concurrent extraction with retry, deduplicated aggregation, and
  persistence of the aggregate plus an ownership record
- Listing the stored scrapes of an owner

Example usage:

    from sitescraper import scrape_current_page_async, scrape_entire_site_async
    from sitescraper.records import JsonLinesRecordStore
    from sitescraper.storage import LocalArtifactStore

    # Single page
    doc = await scrape_current_page_async("https://example.com")
    print(doc.paragraphs)

    # Whole site
    result = await scrape_entire_site_async(
        "https://docs.example.com",
        owner="user-42",
        artifact_store=LocalArtifactStore("./artifacts"),
        record_store=JsonLinesRecordStore("./artifacts/records.jsonl"),
    )
    print(result.locator, result.stats)
"""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack
from enum import Enum
from typing import List, Optional, Union

from .auth import AuthConfig
from .config import ScrapeConfig
from .document import PageExtraction, PointerRecord, ScrapeDocument, SiteScrapeResult
from .errors import (
    CrawlDeadlineExceeded,
    ExtractionFailed,
    InvalidInput,
    PageScrapeError,
    RecordWriteFailed,
    RenderTimeout,
    ScrapeError,
    StorageWriteFailed,
)
from .extractor import extract_page
from .records import RecordStore
from .renderer import PageRenderer, PlaywrightRenderer
from .site import scrape_entire_site, scrape_entire_site_async, validate_owner, validate_url
from .storage import ArtifactStore

__all__ = [
    # Data types
    "PageExtraction",
    "ScrapeDocument",
    "PointerRecord",
    "SiteScrapeResult",
    "ScrapeConfig",
    "AuthConfig",
    "ScrapeMode",
    # Errors
    "ScrapeError",
    "InvalidInput",
    "PageScrapeError",
    "RenderTimeout",
    "ExtractionFailed",
    "StorageWriteFailed",
    "RecordWriteFailed",
    "CrawlDeadlineExceeded",
    # Single page
    "scrape_current_page",
    "scrape_current_page_async",
    # Whole site
    "scrape_entire_site",
    "scrape_entire_site_async",
    # Dispatch and lookup
    "scrape_async",
    "list_scrapes_async",
    # MCP Server
    "mcp",
]


class ScrapeMode(str, Enum):
    """What to scrape starting from the given URL."""

    current = "current"
    all = "all"


def get_mcp_server():
    """Get the MCP server instance (lazy import to avoid dependency if not needed)."""
    from .mcp_server import mcp

    return mcp


# Lazy import for mcp to avoid requiring fastmcp if not used
def __getattr__(name):
    if name == "mcp":
        from .mcp_server import mcp

        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


async def scrape_current_page_async(
    url: str,
    *,
    renderer: Optional[PageRenderer] = None,
    config: Optional[ScrapeConfig] = None,
    auth: Optional[AuthConfig] = None,
) -> ScrapeDocument:
    """
    Scrape a single page: no retry, no batching, nothing persisted.

    Args:
        url: The URL to scrape.
        renderer: Page renderer to use; a headless browser is started for
            this call when omitted.
        config: Navigation timeout and load state.
        auth: Browser auth, used only when the renderer is created here.

    Returns:
        ScrapeDocument with the page's paragraphs, links and ``urls=[url]``.

    Raises:
        InvalidInput: If ``url`` is empty or not an http(s) URL.
        RenderTimeout / ExtractionFailed: If the page could not be scraped.
    """
    url = validate_url(url)
    config = config or ScrapeConfig()

    async with AsyncExitStack() as stack:
        if renderer is None:
            renderer = await stack.enter_async_context(
                PlaywrightRenderer(headless=config.headless, auth=auth)
            )
        extraction = await extract_page(
            renderer,
            url,
            navigation_timeout_ms=config.navigation_timeout_ms,
            wait_until=config.wait_until,
        )

    return ScrapeDocument(
        paragraphs=extraction.paragraphs,
        links=extraction.links,
        urls=[url],
    )


def scrape_current_page(
    url: str,
    *,
    renderer: Optional[PageRenderer] = None,
    config: Optional[ScrapeConfig] = None,
    auth: Optional[AuthConfig] = None,
) -> ScrapeDocument:
    """Synchronous wrapper for scrape_current_page_async."""
    return asyncio.run(
        scrape_current_page_async(url, renderer=renderer, config=config, auth=auth)
    )


async def scrape_async(
    url: str,
    *,
    mode: Union[ScrapeMode, str],
    owner: Optional[str] = None,
    artifact_store: Optional[ArtifactStore] = None,
    record_store: Optional[RecordStore] = None,
    renderer: Optional[PageRenderer] = None,
    config: Optional[ScrapeConfig] = None,
    auth: Optional[AuthConfig] = None,
) -> Union[ScrapeDocument, SiteScrapeResult]:
    """
    Dispatch on ``mode``: ``"current"`` scrapes one page, ``"all"`` the site.

    Inputs are validated before anything is rendered or written.

    Raises:
        InvalidInput: On a bad URL, an unknown mode, or (for ``"all"``) a
            missing owner or store.
    """
    try:
        resolved = ScrapeMode(mode)
    except ValueError:
        raise InvalidInput(
            f'Invalid mode {mode!r}. It must be "all" or "current".'
        ) from None

    url = validate_url(url)

    if resolved is ScrapeMode.current:
        return await scrape_current_page_async(
            url, renderer=renderer, config=config, auth=auth
        )

    owner = validate_owner(owner)
    if artifact_store is None or record_store is None:
        raise InvalidInput("artifact_store and record_store are required for mode 'all'")
    return await scrape_entire_site_async(
        url,
        owner,
        artifact_store=artifact_store,
        record_store=record_store,
        renderer=renderer,
        config=config,
        auth=auth,
    )


async def list_scrapes_async(owner: str, record_store: RecordStore) -> List[PointerRecord]:
    """Return the pointer records stored for ``owner``."""
    owner = validate_owner(owner)
    return await record_store.find_by_owner(owner)
