"""Tests for sitescraper.renderer module."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from sitescraper.auth import AuthConfig
from sitescraper.errors import ExtractionFailed, InvalidInput, RenderTimeout
from sitescraper.renderer import PlaywrightPageSession, PlaywrightRenderer, open_session


def _page(**overrides) -> AsyncMock:
    page = AsyncMock()
    page.is_closed = MagicMock(return_value=False)
    for name, value in overrides.items():
        setattr(page, name, value)
    return page


class TestPlaywrightPageSession:
    @pytest.mark.asyncio
    async def test_goto_forwards_options(self):
        page = _page()
        session = PlaywrightPageSession(page)

        await session.goto("https://e.com/", timeout_ms=1000, wait_until="networkidle")

        page.goto.assert_awaited_once_with(
            "https://e.com/", wait_until="networkidle", timeout=1000
        )

    @pytest.mark.asyncio
    async def test_goto_timeout(self):
        page = _page(goto=AsyncMock(side_effect=PlaywrightTimeoutError("Timeout 1000ms")))
        session = PlaywrightPageSession(page)

        with pytest.raises(RenderTimeout) as exc_info:
            await session.goto("https://e.com/", timeout_ms=1000, wait_until="load")

        assert exc_info.value.url == "https://e.com/"

    @pytest.mark.asyncio
    async def test_goto_error(self):
        page = _page(goto=AsyncMock(side_effect=PlaywrightError("net::ERR_NAME_NOT_RESOLVED")))
        session = PlaywrightPageSession(page)

        with pytest.raises(ExtractionFailed, match="ERR_NAME_NOT_RESOLVED"):
            await session.goto("https://e.com/", timeout_ms=1000, wait_until="load")

    @pytest.mark.asyncio
    async def test_wait_for_body(self):
        page = _page()
        session = PlaywrightPageSession(page)

        await session.wait_for_body(timeout_ms=500)

        page.wait_for_selector.assert_awaited_once_with("body", state="attached", timeout=500)

    @pytest.mark.asyncio
    async def test_wait_for_body_timeout(self):
        page = _page(wait_for_selector=AsyncMock(side_effect=PlaywrightTimeoutError("t")))

        with pytest.raises(RenderTimeout):
            await PlaywrightPageSession(page).wait_for_body(timeout_ms=500)

    @pytest.mark.asyncio
    async def test_paragraphs_and_links(self):
        page = _page(evaluate=AsyncMock(side_effect=[["One", "Two"], None]))
        session = PlaywrightPageSession(page)

        assert await session.paragraphs() == ["One", "Two"]
        assert await session.links() == []

    @pytest.mark.asyncio
    async def test_evaluate_error(self):
        page = _page(evaluate=AsyncMock(side_effect=PlaywrightError("Execution context was destroyed")))

        with pytest.raises(ExtractionFailed):
            await PlaywrightPageSession(page).links()

    @pytest.mark.asyncio
    async def test_close(self):
        page = _page()
        await PlaywrightPageSession(page).close()
        page.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_already_closed(self):
        page = _page()
        page.is_closed.return_value = True
        await PlaywrightPageSession(page).close()
        page.close.assert_not_awaited()


class TestOpenSession:
    @pytest.mark.asyncio
    async def test_closes_on_error(self):
        session = AsyncMock()
        renderer = MagicMock()
        renderer.new_session = AsyncMock(return_value=session)

        with pytest.raises(ValueError):
            async with open_session(renderer):
                raise ValueError("boom")

        session.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_failure_logged(self, caplog):
        session = AsyncMock()
        session.close.side_effect = RuntimeError("gone")
        renderer = MagicMock()
        renderer.new_session = AsyncMock(return_value=session)

        async with open_session(renderer) as acquired:
            assert acquired is session

        assert "Failed to close renderer session" in caplog.text


class TestPlaywrightRenderer:
    @pytest.mark.asyncio
    async def test_new_session_requires_start(self):
        with pytest.raises(RuntimeError):
            await PlaywrightRenderer().new_session()

    @pytest.mark.asyncio
    async def test_lifecycle(self):
        playwright = MagicMock()
        playwright.stop = AsyncMock()
        browser = MagicMock()
        browser.close = AsyncMock()
        context = MagicMock()
        context.close = AsyncMock()
        context.add_cookies = AsyncMock()
        context.new_page = AsyncMock(return_value=_page())
        playwright.chromium.launch = AsyncMock(return_value=browser)
        browser.new_context = AsyncMock(return_value=context)
        starter = MagicMock()
        starter.start = AsyncMock(return_value=playwright)

        cookies = [{"name": "s", "value": "1", "domain": "e.com"}]
        auth = AuthConfig(cookies=cookies, headers={"X-Token": "t"})

        with patch("sitescraper.renderer.async_playwright", return_value=starter):
            async with PlaywrightRenderer(headless=False, auth=auth) as renderer:
                session = await renderer.new_session()
                assert isinstance(session, PlaywrightPageSession)

        playwright.chromium.launch.assert_awaited_once_with(headless=False)
        browser.new_context.assert_awaited_once_with(extra_http_headers={"X-Token": "t"})
        context.add_cookies.assert_awaited_once_with(cookies)
        context.close.assert_awaited_once()
        browser.close.assert_awaited_once()
        playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_failure_cleans_up(self):
        playwright = MagicMock()
        playwright.stop = AsyncMock()
        playwright.chromium.launch = AsyncMock(side_effect=PlaywrightError("no browser"))
        starter = MagicMock()
        starter.start = AsyncMock(return_value=playwright)

        with patch("sitescraper.renderer.async_playwright", return_value=starter):
            with pytest.raises(ExtractionFailed, match="no browser") as exc_info:
                async with PlaywrightRenderer():
                    pass

        assert isinstance(exc_info.value.__cause__, PlaywrightError)
        playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_playwright_unavailable(self):
        starter = MagicMock()
        starter.start = AsyncMock(side_effect=RuntimeError("Executable doesn't exist"))

        with patch("sitescraper.renderer.async_playwright", return_value=starter):
            with pytest.raises(ExtractionFailed, match="Executable"):
                async with PlaywrightRenderer():
                    pass

    @pytest.mark.asyncio
    async def test_missing_storage_state(self, tmp_path):
        playwright = MagicMock()
        playwright.stop = AsyncMock()
        browser = MagicMock()
        browser.close = AsyncMock()
        browser.new_context = AsyncMock()
        playwright.chromium.launch = AsyncMock(return_value=browser)
        starter = MagicMock()
        starter.start = AsyncMock(return_value=playwright)
        auth = AuthConfig(storage_state=str(tmp_path / "absent.json"))

        with patch("sitescraper.renderer.async_playwright", return_value=starter):
            with pytest.raises(InvalidInput, match="Storage state file not found"):
                async with PlaywrightRenderer(auth=auth):
                    pass

        browser.new_context.assert_not_awaited()
        browser.close.assert_awaited_once()
        playwright.stop.assert_awaited_once()
