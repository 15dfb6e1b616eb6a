"""Bounded retry around single-page extraction."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from .config import DEFAULT_MAX_RETRY_ATTEMPTS, DEFAULT_NAVIGATION_TIMEOUT_MS
from .document import PageExtraction
from .errors import InvalidInput, PageScrapeError
from .extractor import extract_page
from .renderer import PageRenderer

LOGGER = logging.getLogger(__name__)

_MAX_BACKOFF_SECONDS = 60.0

Extract = Callable[..., Awaitable[PageExtraction]]


async def scrape_with_retry(
    url: str,
    renderer: PageRenderer,
    *,
    max_attempts: int = DEFAULT_MAX_RETRY_ATTEMPTS,
    navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS,
    wait_until: str = "load",
    backoff_seconds: float = 0.0,
    extract: Extract = extract_page,
) -> PageExtraction:
    """
    Extract ``url``, retrying per-page failures up to ``max_attempts`` times.

    Every attempt opens and closes its own renderer session. With the default
    ``backoff_seconds=0`` attempts follow each other immediately; a positive
    value sleeps ``backoff_seconds * 2 ** (attempt - 1)`` (capped at 60s)
    between attempts.

    Raises:
        InvalidInput: If ``max_attempts`` is below 1.
        PageScrapeError: The last failure once all attempts are used.
    """
    if max_attempts < 1:
        raise InvalidInput(f"max_attempts must be >= 1, got {max_attempts}", url=url)

    attempt = 1
    while True:
        try:
            return await extract(
                renderer,
                url,
                navigation_timeout_ms=navigation_timeout_ms,
                wait_until=wait_until,
            )
        except PageScrapeError as exc:
            if attempt >= max_attempts:
                raise
            delay = _backoff_delay(backoff_seconds, attempt)
            LOGGER.debug(
                "Retry %d/%d for %s after %.2f s: %s",
                attempt,
                max_attempts - 1,
                url,
                delay,
                exc,
            )
            if delay > 0:
                await asyncio.sleep(delay)
        attempt += 1


def _backoff_delay(backoff_seconds: float, attempt: int) -> float:
    if backoff_seconds <= 0:
        return 0.0
    return min(backoff_seconds * 2 ** (attempt - 1), _MAX_BACKOFF_SECONDS)
