"""Shared fixtures: an in-memory page renderer and in-memory stores."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pytest

from sitescraper.document import PointerRecord
from sitescraper.errors import ExtractionFailed, RenderTimeout


@dataclass
class FakePage:
    paragraphs: List[str] = field(default_factory=list)
    links: List[str] = field(default_factory=list)
    # Number of leading goto() calls that fail before the page loads
    failures: int = 0
    # "timeout" raises RenderTimeout, anything else ExtractionFailed
    failure: str = "timeout"
    delay: float = 0.0


class FakeSession:
    def __init__(self, renderer: "FakeRenderer"):
        self._renderer = renderer
        self._page: Optional[FakePage] = None
        self.closed = False
        self.calls: List[tuple] = []

    async def goto(self, url: str, *, timeout_ms: int, wait_until: str) -> None:
        renderer = self._renderer
        renderer.goto_calls.append(url)
        renderer.goto_options.append((timeout_ms, wait_until))
        self.calls.append(("goto", url))
        page = renderer.pages.get(url)
        if page is None:
            raise ExtractionFailed(f"no such page: {url}", url=url)
        attempts = renderer.attempts.get(url, 0) + 1
        renderer.attempts[url] = attempts
        if page.delay:
            await asyncio.sleep(page.delay)
        if attempts <= page.failures:
            if page.failure == "timeout":
                raise RenderTimeout(f"timed out: {url}", url=url)
            raise ExtractionFailed(f"failed: {url}", url=url)
        self._page = page

    async def wait_for_body(self, *, timeout_ms: int) -> None:
        self.calls.append(("wait_for_body", timeout_ms))

    async def paragraphs(self) -> List[str]:
        self.calls.append(("paragraphs",))
        return list(self._page.paragraphs if self._page else [])

    async def links(self) -> List[str]:
        self.calls.append(("links",))
        return list(self._page.links if self._page else [])

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._renderer.active -= 1


class FakeRenderer:
    """Renders scripted pages and tracks every session it hands out."""

    def __init__(self, pages: Optional[Dict[str, FakePage]] = None):
        self.pages: Dict[str, FakePage] = dict(pages or {})
        self.sessions: List[FakeSession] = []
        self.goto_calls: List[str] = []
        self.goto_options: List[tuple] = []
        self.attempts: Dict[str, int] = {}
        self.active = 0
        self.max_active = 0

    async def new_session(self) -> FakeSession:
        session = FakeSession(self)
        self.sessions.append(session)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        return session

    @property
    def all_closed(self) -> bool:
        return all(session.closed for session in self.sessions)


class MemoryArtifactStore:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.payloads: List[bytes] = []

    async def put(self, payload: bytes) -> str:
        if self.fail:
            raise OSError("disk full")
        self.payloads.append(payload)
        return f"memory://artifact/{len(self.payloads)}"


class MemoryRecordStore:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.records: List[PointerRecord] = []
        self.closed = False

    async def save(self, record: PointerRecord) -> None:
        if self.fail:
            raise ConnectionError("database unavailable")
        self.records.append(record)

    async def find_by_owner(self, owner: str) -> List[PointerRecord]:
        return [record for record in self.records if record.owner == owner]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def artifact_store() -> MemoryArtifactStore:
    return MemoryArtifactStore()


@pytest.fixture
def record_store() -> MemoryRecordStore:
    return MemoryRecordStore()
