"""Tests for sitescraper.document module."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from sitescraper.document import PointerRecord, ScrapeDocument, SiteScrapeResult


class TestScrapeDocument:
    def test_json_bytes(self):
        doc = ScrapeDocument(paragraphs=["Grüße"], links=["https://e.com/"], urls=["https://e.com/"])

        payload = doc.to_json_bytes()

        assert json.loads(payload.decode("utf-8")) == doc.to_dict()
        assert "Grüße".encode("utf-8") in payload
        assert b'\n  "paragraphs"' in payload

    def test_to_dict_copies(self):
        doc = ScrapeDocument(paragraphs=["a"])
        doc.to_dict()["paragraphs"].append("b")
        assert doc.paragraphs == ["a"]


class TestPointerRecord:
    def test_to_dict(self):
        record = PointerRecord(
            owner="u",
            locator="s3://b/k",
            unique_id="id1",
            created_at=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        )
        assert record.to_dict() == {
            "owner": "u",
            "locator": "s3://b/k",
            "uniqueId": "id1",
            "createdAt": "2024-01-02T03:04:05+00:00",
        }

    def test_default_created_at_is_utc(self):
        record = PointerRecord(owner="u", locator="l", unique_id="i")
        assert record.created_at.tzinfo is timezone.utc

    def test_from_dict_string(self):
        record = PointerRecord.from_dict(
            {"owner": "u", "locator": "l", "uniqueId": "i", "createdAt": "2024-01-02T03:04:05+00:00"}
        )
        assert record.created_at == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_from_dict_naive_datetime(self):
        record = PointerRecord.from_dict(
            {"owner": "u", "locator": "l", "uniqueId": "i", "createdAt": datetime(2024, 1, 2)}
        )
        assert record.created_at.tzinfo is timezone.utc

    def test_from_dict_missing_created_at(self):
        record = PointerRecord.from_dict({"owner": "u", "locator": "l", "uniqueId": "i"})
        assert record.created_at.tzinfo is not None


def test_failed_urls():
    record = PointerRecord(owner="u", locator="l", unique_id="i")
    result = SiteScrapeResult(
        locator="l",
        record=record,
        errors=[{"url": "https://e.com/a", "error": "x", "code": "RenderTimeout"}],
    )
    assert result.failed_urls == ("https://e.com/a",)
