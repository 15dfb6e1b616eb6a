"""Single-page extraction of paragraph text and outbound links."""

from __future__ import annotations

import logging

from .config import DEFAULT_NAVIGATION_TIMEOUT_MS
from .document import PageExtraction
from .errors import ExtractionFailed, PageScrapeError
from .renderer import PageRenderer, open_session

LOGGER = logging.getLogger(__name__)


async def extract_page(
    renderer: PageRenderer,
    url: str,
    *,
    navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS,
    wait_until: str = "load",
) -> PageExtraction:
    """
    Render ``url`` and read its paragraphs and anchor targets.

    Args:
        renderer: Source of page sessions.
        url: Absolute URL to load.
        navigation_timeout_ms: Bound for navigation and for the ``<body>`` wait.
        wait_until: Playwright load state to wait for during navigation.

    Returns:
        PageExtraction; pages without ``<p>`` or ``<a>`` elements give empty lists.

    Raises:
        RenderTimeout: If navigation or the ``<body>`` wait timed out.
        ExtractionFailed: For any other renderer failure.
    """
    try:
        async with open_session(renderer) as session:
            await session.goto(url, timeout_ms=navigation_timeout_ms, wait_until=wait_until)
            await session.wait_for_body(timeout_ms=navigation_timeout_ms)
            paragraphs = await session.paragraphs()
            links = await session.links()
    except PageScrapeError:
        raise
    except Exception as exc:
        raise ExtractionFailed(f"Extraction of {url} failed: {exc}", url=url) from exc

    LOGGER.debug(
        "Extracted %s (%d paragraph(s), %d link(s))", url, len(paragraphs), len(links)
    )
    return PageExtraction(url=url, paragraphs=list(paragraphs), links=list(links))
