"""Data structures passed through the scrape pipeline."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple


@dataclass(slots=True)
class PageExtraction:
    """Paragraph text and outbound links read from one rendered page."""

    url: str
    paragraphs: List[str] = field(default_factory=list)
    links: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ScrapeDocument:
    """Deduplicated ``{paragraphs, links, urls}`` snapshot of a scrape."""

    paragraphs: List[str] = field(default_factory=list)
    links: List[str] = field(default_factory=list)
    urls: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "paragraphs": list(self.paragraphs),
            "links": list(self.links),
            "urls": list(self.urls),
        }

    def to_json_bytes(self) -> bytes:
        """Serialize to the persisted artifact format."""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False).encode("utf-8")


@dataclass(frozen=True)
class PointerRecord:
    """Ownership and retrieval metadata for a stored artifact."""

    owner: str
    locator: str
    unique_id: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, str]:
        """Return the persisted record schema."""
        return {
            "owner": self.owner,
            "locator": self.locator,
            "uniqueId": self.unique_id,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PointerRecord:
        created = data.get("createdAt")
        if isinstance(created, str):
            created = datetime.fromisoformat(created)
        if created is None:
            created = datetime.now(timezone.utc)
        elif created.tzinfo is None:
            # Mongo hands back naive UTC datetimes
            created = created.replace(tzinfo=timezone.utc)
        return cls(
            owner=str(data["owner"]),
            locator=str(data["locator"]),
            unique_id=str(data["uniqueId"]),
            created_at=created,
        )


@dataclass
class SiteScrapeResult:
    """Result of a whole-site scrape."""

    locator: str
    record: PointerRecord
    errors: List[Dict[str, str]] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def failed_urls(self) -> Tuple[str, ...]:
        return tuple(entry["url"] for entry in self.errors)
