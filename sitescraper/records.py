"""Pointer record stores: who owns which artifact."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, List, Optional, Protocol

from pymongo import ASCENDING, MongoClient

from .document import PointerRecord

LOGGER = logging.getLogger(__name__)

DEFAULT_RECORDS_FILE = "artifacts/records.jsonl"
DEFAULT_MONGO_DATABASE = "sitescraper"
DEFAULT_MONGO_COLLECTION = "scraped_data"


class RecordStore(Protocol):
    async def save(self, record: PointerRecord) -> None: ...

    async def find_by_owner(self, owner: str) -> List[PointerRecord]: ...

    def close(self) -> None: ...


class JsonLinesRecordStore:
    """Appends records to a JSON Lines file."""

    def __init__(self, path: str | Path = DEFAULT_RECORDS_FILE):
        self.path = Path(path).expanduser()

    async def save(self, record: PointerRecord) -> None:
        await asyncio.to_thread(self._append, record)

    async def find_by_owner(self, owner: str) -> List[PointerRecord]:
        return await asyncio.to_thread(self._scan, owner)

    def close(self) -> None:
        pass

    def _append(self, record: PointerRecord) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as fh:
            fh.write(json.dumps(record.to_dict(), ensure_ascii=False) + "\n")
        LOGGER.info("Saved pointer record %s for %s", record.unique_id, record.owner)

    def _scan(self, owner: str) -> List[PointerRecord]:
        if not self.path.is_file():
            return []
        records: List[PointerRecord] = []
        with open(self.path, "r", encoding="utf-8") as fh:
            for lineno, line in enumerate(fh, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError as exc:
                    LOGGER.warning(
                        "Skipping malformed record at %s:%d: %s", self.path, lineno, exc
                    )
                    continue
                if data.get("owner") == owner:
                    records.append(PointerRecord.from_dict(data))
        return records


class MongoRecordStore:
    """Stores records in a MongoDB collection."""

    def __init__(self, collection: Any, client: Optional[MongoClient] = None):
        self._collection = collection
        self._client = client

    @classmethod
    def from_uri(
        cls,
        uri: str,
        *,
        database: str = DEFAULT_MONGO_DATABASE,
        collection: str = DEFAULT_MONGO_COLLECTION,
        timeout_ms: int = 5000,
    ) -> MongoRecordStore:
        client: MongoClient = MongoClient(uri, serverSelectionTimeoutMS=timeout_ms)
        return cls(client[database][collection], client=client)

    async def save(self, record: PointerRecord) -> None:
        document = record.to_dict()
        document["createdAt"] = record.created_at
        await asyncio.to_thread(self._collection.insert_one, document)
        LOGGER.info("Saved pointer record %s for %s", record.unique_id, record.owner)

    async def find_by_owner(self, owner: str) -> List[PointerRecord]:
        def _query() -> List[PointerRecord]:
            cursor = self._collection.find({"owner": owner}, {"_id": 0}).sort(
                "createdAt", ASCENDING
            )
            return [PointerRecord.from_dict(doc) for doc in cursor]

        return await asyncio.to_thread(_query)

    def close(self) -> None:
        """Close the client created by :meth:`from_uri`, if any."""
        if self._client is not None:
            self._client.close()
            self._client = None


def build_record_store_from_env() -> RecordStore:
    """Choose a record store from environment variables.

    ``MONGODB_URI`` selects MongoDB (``SCRAPE_MONGO_DATABASE`` and
    ``SCRAPE_MONGO_COLLECTION`` name the target); otherwise records go to
    ``SCRAPE_RECORDS_FILE`` (default ``./artifacts/records.jsonl``).
    """
    uri = os.getenv("MONGODB_URI")
    if uri:
        return MongoRecordStore.from_uri(
            uri,
            database=os.getenv("SCRAPE_MONGO_DATABASE") or DEFAULT_MONGO_DATABASE,
            collection=os.getenv("SCRAPE_MONGO_COLLECTION") or DEFAULT_MONGO_COLLECTION,
        )
    return JsonLinesRecordStore(os.getenv("SCRAPE_RECORDS_FILE") or DEFAULT_RECORDS_FILE)
