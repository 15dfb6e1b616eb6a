"""Artifact stores: write a serialized scrape once, return its locator.

Keys always contain a fresh UUID, so artifacts are never overwritten.
"""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from pathlib import Path
from typing import Any, Optional, Protocol

import boto3
from botocore.config import Config as BotoConfig

LOGGER = logging.getLogger(__name__)

DEFAULT_ARTIFACT_DIR = "artifacts"
ARTIFACT_CONTENT_TYPE = "application/json"


class ArtifactStore(Protocol):
    async def put(self, payload: bytes) -> str:
        """Persist ``payload`` under a new unique key and return its locator."""
        ...


def new_artifact_key(prefix: str = "") -> str:
    """Return ``[prefix/]scraped_data_<uuid>.json``."""
    name = f"scraped_data_{uuid.uuid4().hex}.json"
    prefix = prefix.strip("/")
    return f"{prefix}/{name}" if prefix else name


class LocalArtifactStore:
    """Writes artifacts as JSON files under a directory."""

    def __init__(self, directory: str | Path = DEFAULT_ARTIFACT_DIR):
        self.directory = Path(directory).expanduser()

    async def put(self, payload: bytes) -> str:
        return await asyncio.to_thread(self._write, payload)

    def _write(self, payload: bytes) -> str:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = (self.directory / new_artifact_key()).resolve()
        # "xb" refuses to replace an existing file
        with open(path, "xb") as fh:
            fh.write(payload)
        LOGGER.info("Wrote artifact %s (%d bytes)", path, len(payload))
        return path.as_uri()


class S3ArtifactStore:
    """Uploads artifacts to an S3 bucket."""

    def __init__(
        self,
        bucket: str,
        *,
        prefix: str = "",
        region: Optional[str] = None,
        client: Any = None,
    ):
        if not bucket:
            raise ValueError("bucket must be a non-empty name")
        self.bucket = bucket
        self.prefix = prefix
        if client is None:
            session_args = {"region_name": region} if region else {}
            client = boto3.client(
                "s3",
                config=BotoConfig(retries={"max_attempts": 3, "mode": "standard"}),
                **session_args,
            )
        self._client = client

    async def put(self, payload: bytes) -> str:
        key = new_artifact_key(self.prefix)
        await asyncio.to_thread(
            self._client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=payload,
            ContentType=ARTIFACT_CONTENT_TYPE,
        )
        locator = f"s3://{self.bucket}/{key}"
        LOGGER.info("Uploaded artifact %s (%d bytes)", locator, len(payload))
        return locator


def build_artifact_store_from_env() -> ArtifactStore:
    """Choose an artifact store from environment variables.

    ``SCRAPE_ARTIFACT_BUCKET`` selects S3 (with optional ``AWS_REGION`` and
    ``SCRAPE_ARTIFACT_PREFIX``); otherwise files go to ``SCRAPE_ARTIFACT_DIR``
    (default ``./artifacts``).
    """
    bucket = os.getenv("SCRAPE_ARTIFACT_BUCKET")
    if bucket:
        return S3ArtifactStore(
            bucket,
            prefix=os.getenv("SCRAPE_ARTIFACT_PREFIX", ""),
            region=os.getenv("AWS_REGION"),
        )
    return LocalArtifactStore(os.getenv("SCRAPE_ARTIFACT_DIR") or DEFAULT_ARTIFACT_DIR)
