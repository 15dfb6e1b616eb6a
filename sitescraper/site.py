"""Whole-site scraping: discover, scrape in batches, aggregate, persist."""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import AsyncExitStack
from typing import Any, Dict, List, Optional, Set, Tuple
from urllib.parse import urlsplit

from .aggregate import Aggregate
from .auth import AuthConfig
from .batch import run_batches
from .config import ScrapeConfig
from .document import PageExtraction, PointerRecord, ScrapeDocument, SiteScrapeResult
from .errors import (
    CrawlDeadlineExceeded,
    InvalidInput,
    RecordWriteFailed,
    StorageWriteFailed,
)
from .frontier import expand_frontier
from .records import RecordStore
from .renderer import PageRenderer, PlaywrightRenderer
from .retry import scrape_with_retry
from .storage import ArtifactStore

LOGGER = logging.getLogger(__name__)


def validate_url(url: Optional[str]) -> str:
    """Return the stripped URL, or raise InvalidInput."""
    if url is None or not str(url).strip():
        raise InvalidInput("URL is required for scraping")
    candidate = str(url).strip()
    parts = urlsplit(candidate)
    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        raise InvalidInput(
            f"URL must be an absolute http(s) URL, got {candidate!r}", url=candidate
        )
    return candidate


def validate_owner(owner: Optional[str]) -> str:
    if owner is None or not str(owner).strip():
        raise InvalidInput("owner is required")
    return str(owner).strip()


async def scrape_entire_site_async(
    url: str,
    owner: str,
    *,
    artifact_store: ArtifactStore,
    record_store: RecordStore,
    renderer: Optional[PageRenderer] = None,
    config: Optional[ScrapeConfig] = None,
    auth: Optional[AuthConfig] = None,
) -> SiteScrapeResult:
    """
    Scrape every same-origin page linked from ``url`` and persist the result.

    Args:
        url: Seed URL.
        owner: Identifier of the requesting user, stored on the pointer record.
        artifact_store: Destination of the serialized aggregate.
        record_store: Destination of the pointer record.
        renderer: Page renderer to use. When omitted a headless Playwright
            browser is started for this call and closed afterwards.
        config: Batch size, retry and timeout settings.
        auth: Browser auth, used only when the renderer is created here.

    Returns:
        SiteScrapeResult with the artifact locator, the pointer record, the
        per-URL failures and summary stats.

    Raises:
        InvalidInput: If ``url`` or ``owner`` is missing or malformed.
        RenderTimeout: If the seed page did not load in time.
        StorageWriteFailed: If the artifact write failed (no record written).
        RecordWriteFailed: If the record write failed after the artifact write.
        CrawlDeadlineExceeded: If ``config.deadline_seconds`` expired during
            discovery or scraping. Persistence is not bound by the deadline.
    """
    seed_url = validate_url(url)
    owner = validate_owner(owner)
    config = config or ScrapeConfig()

    collect = _collect(seed_url, renderer=renderer, config=config, auth=auth)
    if config.deadline_seconds is None:
        document, errors, stats = await collect
    else:
        try:
            document, errors, stats = await asyncio.wait_for(
                collect, timeout=config.deadline_seconds
            )
        except asyncio.TimeoutError as exc:
            raise CrawlDeadlineExceeded(
                f"Scrape of {seed_url} exceeded its {config.deadline_seconds}s deadline",
                url=seed_url,
            ) from exc

    locator, record = await _persist(
        seed_url,
        owner,
        document,
        artifact_store=artifact_store,
        record_store=record_store,
    )
    LOGGER.info(
        "Scraped %d/%d page(s) from %s into %s",
        stats["pages_scraped"],
        stats["discovered_links"],
        seed_url,
        locator,
    )
    return SiteScrapeResult(locator=locator, record=record, errors=errors, stats=stats)


async def _collect(
    seed_url: str,
    *,
    renderer: Optional[PageRenderer],
    config: ScrapeConfig,
    auth: Optional[AuthConfig],
) -> Tuple[ScrapeDocument, List[Dict[str, str]], Dict[str, Any]]:
    async with AsyncExitStack() as stack:
        if renderer is None:
            renderer = await stack.enter_async_context(
                PlaywrightRenderer(headless=config.headless, auth=auth)
            )

        visited: Set[str] = set()
        links = await expand_frontier(
            seed_url,
            renderer,
            visited,
            navigation_timeout_ms=config.navigation_timeout_ms,
            wait_until=config.discovery_wait_until,
        )

        aggregate = Aggregate()

        async def scrape_and_merge(link: str) -> PageExtraction:
            extraction = await scrape_with_retry(
                link,
                renderer,
                max_attempts=config.max_retry_attempts,
                navigation_timeout_ms=config.navigation_timeout_ms,
                wait_until=config.wait_until,
                backoff_seconds=config.retry_backoff_seconds,
            )
            aggregate.merge(extraction)
            return extraction

        batches = await run_batches(links, config.batch_size, scrape_and_merge)

    errors: List[Dict[str, str]] = [
        {"url": failed_url, "error": str(exc), "code": getattr(exc, "code", type(exc).__name__)}
        for batch in batches
        for failed_url, exc in batch.errors
    ]
    counts = aggregate.counts()
    stats: Dict[str, Any] = {
        "discovered_links": len(links),
        "batches": len(batches),
        "pages_scraped": counts["urls"],
        "pages_failed": len(errors),
        "paragraphs": counts["paragraphs"],
        "links": counts["links"],
    }
    return aggregate.materialize(), errors, stats


async def _persist(
    seed_url: str,
    owner: str,
    document: ScrapeDocument,
    *,
    artifact_store: ArtifactStore,
    record_store: RecordStore,
) -> Tuple[str, PointerRecord]:
    # Runs outside the deadline: a written artifact always ends in a record
    # or in RecordWriteFailed carrying its locator.
    try:
        locator = await artifact_store.put(document.to_json_bytes())
    except Exception as exc:
        LOGGER.error("Artifact write for %s failed: %s", seed_url, exc)
        raise StorageWriteFailed(f"Failed to store scraped data: {exc}", url=seed_url) from exc

    record = PointerRecord(owner=owner, locator=locator, unique_id=uuid.uuid4().hex)
    try:
        await record_store.save(record)
    except Exception as exc:
        LOGGER.error(
            "Pointer record for %s failed; artifact %s is unreferenced: %s",
            seed_url,
            locator,
            exc,
        )
        raise RecordWriteFailed(
            f"Failed to save pointer record (artifact left at {locator}): {exc}",
            url=seed_url,
            locator=locator,
        ) from exc
    return locator, record


def scrape_entire_site(
    url: str,
    owner: str,
    *,
    artifact_store: ArtifactStore,
    record_store: RecordStore,
    renderer: Optional[PageRenderer] = None,
    config: Optional[ScrapeConfig] = None,
    auth: Optional[AuthConfig] = None,
) -> SiteScrapeResult:
    """Synchronous wrapper for scrape_entire_site_async."""
    return asyncio.run(
        scrape_entire_site_async(
            url,
            owner,
            artifact_store=artifact_store,
            record_store=record_store,
            renderer=renderer,
            config=config,
            auth=auth,
        )
    )
