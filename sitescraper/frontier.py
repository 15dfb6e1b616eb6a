"""Same-origin link discovery from a seed page."""

from __future__ import annotations

import logging
from typing import List, MutableSet, Optional, Tuple
from urllib.parse import urlsplit, urlunsplit

from .config import DEFAULT_NAVIGATION_TIMEOUT_MS
from .errors import ExtractionFailed, PageScrapeError
from .renderer import PageRenderer, open_session

LOGGER = logging.getLogger(__name__)

_DEFAULT_PORTS = {"http": 80, "https": 443}

Origin = Tuple[str, str, Optional[int]]


def _split(url: str):
    parts = urlsplit(url.strip())
    try:
        port = parts.port
    except ValueError:
        port = None
    return parts, port


def origin_of(url: str) -> Origin:
    """Return ``(scheme, host, port)`` with the scheme's default port filled in."""
    parts, port = _split(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    return scheme, host, port if port is not None else _DEFAULT_PORTS.get(scheme)


def is_same_origin(url: str, seed_url: str) -> bool:
    """True when ``url`` is an http(s) URL sharing scheme, host and port with the seed."""
    origin = origin_of(url)
    if origin[0] not in _DEFAULT_PORTS or not origin[1]:
        return False
    return origin == origin_of(seed_url)


def normalize_url(url: str) -> str:
    """Lowercase scheme and host, drop the fragment and any default port.

    An empty path becomes ``/`` so ``http://example.com`` and
    ``http://example.com/`` are the same page.
    """
    parts, port = _split(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if ":" in host:
        host = f"[{host}]"
    netloc = host
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{host}:{port}"
    if parts.username:
        userinfo = parts.username
        if parts.password:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"
    path = parts.path or ("/" if netloc else "")
    return urlunsplit((scheme, netloc, path, parts.query, ""))


async def expand_frontier(
    seed_url: str,
    renderer: PageRenderer,
    visited: MutableSet[str],
    *,
    navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS,
    wait_until: str = "networkidle",
) -> List[str]:
    """
    Discover same-origin links on the seed page (one hop, no recursion).

    The seed and every returned link are added to ``visited`` before this
    returns, so nothing is scheduled twice within one crawl.

    Args:
        seed_url: Page to read anchors from.
        renderer: Source of page sessions.
        visited: VisitedSet owned by the current crawl.
        navigation_timeout_ms: Bound for loading the seed page.
        wait_until: Playwright load state that marks the page as loaded.

    Returns:
        Normalized same-origin links not seen before, in page order.

    Raises:
        RenderTimeout: If the seed page does not finish loading in time.
        ExtractionFailed: For any other renderer failure.
    """
    try:
        async with open_session(renderer) as session:
            await session.goto(
                seed_url, timeout_ms=navigation_timeout_ms, wait_until=wait_until
            )
            hrefs = await session.links()
    except PageScrapeError:
        raise
    except Exception as exc:
        raise ExtractionFailed(
            f"Link discovery on {seed_url} failed: {exc}", url=seed_url
        ) from exc

    seed = normalize_url(seed_url)
    visited.add(seed)

    new_links: List[str] = []
    for href in hrefs:
        if not is_same_origin(href, seed_url):
            continue
        link = normalize_url(href)
        if link in visited:
            continue
        visited.add(link)
        new_links.append(link)

    LOGGER.info(
        "Discovered %d new same-origin link(s) on %s (%d anchor(s) total)",
        len(new_links),
        seed_url,
        len(hrefs),
    )
    return new_links
