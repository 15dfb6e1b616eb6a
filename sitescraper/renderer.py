"""Page renderer sessions backed by a headless browser.

The pipeline only needs a narrow contract from the renderer: open a page,
navigate, read paragraph text and anchor targets, close. ``PageRenderer`` and
``PageSession`` describe that contract; ``PlaywrightRenderer`` implements it
with headless Chromium.

Sessions must always be acquired through :func:`open_session`, which closes
them on every exit path.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .auth import AuthConfig, build_context_options
from .errors import ExtractionFailed, InvalidInput, RenderTimeout

LOGGER = logging.getLogger(__name__)

_PARAGRAPHS_JS = """() => {
    const body = document.body;
    if (!body) return [];
    return Array.from(body.querySelectorAll('p')).map(p => p.innerText || '');
}"""

_LINKS_JS = """() => Array.from(document.querySelectorAll('a'))
    .map(a => a.href)
    .filter(href => typeof href === 'string' && href.length > 0)"""


class PageSession(Protocol):
    """A single rendered page. Never reused across URLs or attempts."""

    async def goto(self, url: str, *, timeout_ms: int, wait_until: str) -> None: ...

    async def wait_for_body(self, *, timeout_ms: int) -> None: ...

    async def paragraphs(self) -> List[str]: ...

    async def links(self) -> List[str]: ...

    async def close(self) -> None: ...


class PageRenderer(Protocol):
    """Factory of page sessions."""

    async def new_session(self) -> PageSession: ...


@asynccontextmanager
async def open_session(renderer: PageRenderer) -> AsyncIterator[PageSession]:
    """Acquire a session and release it on return, error or cancellation."""
    session = await renderer.new_session()
    try:
        yield session
    finally:
        try:
            await session.close()
        except Exception as exc:
            LOGGER.warning("Failed to close renderer session: %s", exc)


class PlaywrightPageSession:
    """``PageSession`` over a Playwright page."""

    def __init__(self, page: Any):
        self._page = page
        self._url = ""

    async def goto(self, url: str, *, timeout_ms: int, wait_until: str) -> None:
        self._url = url
        try:
            await self._page.goto(url, wait_until=wait_until, timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise RenderTimeout(
                f"Navigation to {url} timed out after {timeout_ms} ms", url=url
            ) from exc
        except PlaywrightError as exc:
            raise ExtractionFailed(f"Navigation to {url} failed: {exc}", url=url) from exc

    async def wait_for_body(self, *, timeout_ms: int) -> None:
        try:
            await self._page.wait_for_selector("body", state="attached", timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise RenderTimeout(
                f"Timed out waiting for <body> on {self._url}", url=self._url
            ) from exc
        except PlaywrightError as exc:
            raise ExtractionFailed(
                f"Waiting for <body> on {self._url} failed: {exc}", url=self._url
            ) from exc

    async def paragraphs(self) -> List[str]:
        return await self._evaluate_strings(_PARAGRAPHS_JS)

    async def links(self) -> List[str]:
        return await self._evaluate_strings(_LINKS_JS)

    async def close(self) -> None:
        if not self._page.is_closed():
            await self._page.close()

    async def _evaluate_strings(self, script: str) -> List[str]:
        try:
            values = await self._page.evaluate(script)
        except PlaywrightError as exc:
            raise ExtractionFailed(
                f"Reading DOM of {self._url} failed: {exc}", url=self._url
            ) from exc
        return [str(value) for value in values or []]


class PlaywrightRenderer:
    """Headless Chromium renderer.

    Use as an async context manager; every page it hands out lives in one
    shared browser context, which is torn down on exit.

        async with PlaywrightRenderer() as renderer:
            async with open_session(renderer) as session:
                await session.goto("https://example.com", timeout_ms=120000, wait_until="load")
    """

    def __init__(self, *, headless: bool = True, auth: Optional[AuthConfig] = None):
        self.headless = headless
        self.auth = auth
        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None

    async def __aenter__(self) -> PlaywrightRenderer:
        try:
            await self._start()
        except FileNotFoundError as exc:
            await self._stop()
            raise InvalidInput(str(exc)) from exc
        except Exception as exc:
            await self._stop()
            raise ExtractionFailed(f"Could not start the browser: {exc}") from exc
        except BaseException:
            await self._stop()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self._stop()

    async def new_session(self) -> PlaywrightPageSession:
        if self._context is None:
            raise RuntimeError("PlaywrightRenderer is not started; use 'async with'")
        try:
            page = await self._context.new_page()
        except PlaywrightError as exc:
            raise ExtractionFailed(f"Could not open a browser page: {exc}") from exc
        return PlaywrightPageSession(page)

    async def _start(self) -> None:
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.headless)
        self._context = await self._browser.new_context(**build_context_options(self.auth))
        if self.auth and self.auth.cookies:
            await self._context.add_cookies(self.auth.cookies)
            LOGGER.info("Auth: injected %d cookie(s)", len(self.auth.cookies))
        LOGGER.debug("Browser started (headless=%s)", self.headless)

    async def _stop(self) -> None:
        for name in ("_context", "_browser"):
            handle = getattr(self, name)
            setattr(self, name, None)
            if handle is None:
                continue
            try:
                await handle.close()
            except Exception as exc:
                LOGGER.warning("Failed to close browser %s: %s", name.strip("_"), exc)
        if self._playwright is not None:
            playwright, self._playwright = self._playwright, None
            try:
                await playwright.stop()
            except Exception as exc:
                LOGGER.warning("Failed to stop Playwright: %s", exc)
