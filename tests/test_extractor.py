"""Tests for sitescraper.extractor module."""

from __future__ import annotations

import pytest

from conftest import FakePage, FakeRenderer
from sitescraper.errors import ExtractionFailed, RenderTimeout
from sitescraper.extractor import extract_page

URL = "https://example.com/about"


@pytest.mark.asyncio
async def test_extracts_paragraphs_and_links():
    renderer = FakeRenderer(
        {URL: FakePage(paragraphs=["One", "Two"], links=["https://example.com/"])}
    )

    result = await extract_page(renderer, URL)

    assert result.url == URL
    assert result.paragraphs == ["One", "Two"]
    assert result.links == ["https://example.com/"]
    assert renderer.all_closed


@pytest.mark.asyncio
async def test_empty_page():
    renderer = FakeRenderer({URL: FakePage()})

    result = await extract_page(renderer, URL)

    assert result.paragraphs == []
    assert result.links == []


@pytest.mark.asyncio
async def test_call_order_and_options():
    renderer = FakeRenderer({URL: FakePage()})

    await extract_page(renderer, URL, navigation_timeout_ms=900, wait_until="load")

    session = renderer.sessions[0]
    assert [call[0] for call in session.calls] == [
        "goto",
        "wait_for_body",
        "paragraphs",
        "links",
    ]
    assert renderer.goto_options == [(900, "load")]
    assert ("wait_for_body", 900) in session.calls


@pytest.mark.asyncio
async def test_timeout_closes_session():
    renderer = FakeRenderer({URL: FakePage(failures=1, failure="timeout")})

    with pytest.raises(RenderTimeout):
        await extract_page(renderer, URL)

    assert renderer.all_closed
    assert renderer.active == 0


@pytest.mark.asyncio
async def test_unexpected_error_wrapped():
    class CrashingRenderer(FakeRenderer):
        async def new_session(self):
            session = await super().new_session()

            async def paragraphs():
                raise RuntimeError("target closed")

            session.paragraphs = paragraphs
            return session

    renderer = CrashingRenderer({URL: FakePage()})

    with pytest.raises(ExtractionFailed) as exc_info:
        await extract_page(renderer, URL)

    assert exc_info.value.url == URL
    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert renderer.all_closed


@pytest.mark.asyncio
async def test_close_failure_does_not_mask_result():
    class StickyRenderer(FakeRenderer):
        async def new_session(self):
            session = await super().new_session()

            async def close():
                raise RuntimeError("already gone")

            session.close = close
            return session

    renderer = StickyRenderer({URL: FakePage(paragraphs=["kept"])})

    result = await extract_page(renderer, URL)

    assert result.paragraphs == ["kept"]
