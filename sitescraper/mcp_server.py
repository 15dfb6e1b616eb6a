"""MCP Server for the site scraper.

Provides tools for:
- Scraping the current page (paragraphs and links, returned directly)
- Scraping an entire site and storing the result under a unique key
- Listing the stored scrapes of an owner

Supports both STDIO and HTTP transports.

Usage:
    # STDIO (for desktop MCP clients)
    python -m sitescraper.mcp_server

    # HTTP (for remote access)
    python -m sitescraper.mcp_server --transport http --port 8000

Environment Variables:
    SCRAPE_BATCH_SIZE, SCRAPE_MAX_RETRY_ATTEMPTS, SCRAPE_NAVIGATION_TIMEOUT_MS:
        Pipeline tuning (see sitescraper.config)
    SCRAPE_ARTIFACT_BUCKET / SCRAPE_ARTIFACT_DIR: Artifact destination
    MONGODB_URI / SCRAPE_RECORDS_FILE: Pointer record destination
"""

from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP

from .auth import load_auth_from_env
from .config import ScrapeConfig
from .errors import ScrapeError
from .records import RecordStore, build_record_store_from_env
from .storage import build_artifact_store_from_env

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
LOGGER = logging.getLogger(__name__)

# Load .env before reading environment variables
load_dotenv()

# Create the MCP server
mcp = FastMCP(
    name="Site Scraper",
    instructions="""
    A site scraper that renders pages in a headless browser and provides:

    1. scrape_current_page: paragraphs and links of a single page
    2. scrape_entire_site: scrape every same-origin page linked from a seed
       URL and store the deduplicated result; returns its locator
    3. list_scrapes: stored scrapes of an owner

    All tools return JSON. Failures are returned as {"error": ..., "message": ...}.
    """,
)


_RECORD_STORE: Optional[RecordStore] = None


def _record_store() -> RecordStore:
    """Record store shared by every tool call, so one database client serves the process."""
    global _RECORD_STORE
    if _RECORD_STORE is None:
        _RECORD_STORE = build_record_store_from_env()
    return _RECORD_STORE


def _format_timestamp() -> str:
    """Get current timestamp in ISO format."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _error_payload(exc: Exception) -> str:
    payload: Dict[str, Any] = {
        "error": getattr(exc, "code", type(exc).__name__),
        "message": str(exc),
    }
    url = getattr(exc, "url", "")
    if url:
        payload["url"] = url
    locator = getattr(exc, "locator", None)
    if locator:
        payload["locator"] = locator
    return json.dumps(payload, ensure_ascii=False)


# =============================================================================
# SCRAPE TOOLS
# =============================================================================


async def scrape_current_page(url: str) -> str:
    """
    Scrape a single web page and return its paragraphs and links.

    Args:
        url: The page URL (absolute http/https)

    Returns:
        JSON with "paragraphs", "links" and "urls" arrays.

    Examples:
        scrape_current_page(url="https://example.com/about")
    """
    from . import scrape_current_page_async

    LOGGER.info("Scraping the current page: %s", url)
    try:
        document = await scrape_current_page_async(
            url, config=ScrapeConfig.from_env(), auth=load_auth_from_env()
        )
    except ScrapeError as exc:
        LOGGER.error("Scraping %s failed: %s", url, exc)
        return _error_payload(exc)
    except Exception as exc:
        LOGGER.error("Unexpected error scraping %s: %s", url, exc)
        return _error_payload(exc)

    result = {"scraped_at": _format_timestamp(), **document.to_dict()}
    return json.dumps(result, indent=2, ensure_ascii=False)


async def scrape_entire_site(url: str, owner: str) -> str:
    """
    Scrape every same-origin page linked from a seed URL and store the result.

    Args:
        url: The seed URL
        owner: Identifier of the user the stored scrape belongs to

    Returns:
        JSON with the artifact "locator", the record "uniqueId", crawl
        "stats" and per-URL "errors" for pages that were dropped.

    Examples:
        scrape_entire_site(url="https://docs.example.com", owner="user-42")
    """
    from . import scrape_entire_site_async

    LOGGER.info("Scraping the entire site: %s (owner=%s)", url, owner)
    try:
        result = await scrape_entire_site_async(
            url,
            owner,
            artifact_store=build_artifact_store_from_env(),
            record_store=_record_store(),
            config=ScrapeConfig.from_env(),
            auth=load_auth_from_env(),
        )
    except ScrapeError as exc:
        LOGGER.error("Site scrape of %s failed: %s", url, exc)
        return _error_payload(exc)
    except Exception as exc:
        LOGGER.error("Unexpected error scraping site %s: %s", url, exc)
        return _error_payload(exc)

    LOGGER.info(
        "Site scrape complete: %d page(s) scraped, %d failed",
        result.stats.get("pages_scraped", 0),
        result.stats.get("pages_failed", 0),
    )
    payload = {
        "scraped_at": _format_timestamp(),
        "locator": result.locator,
        "uniqueId": result.record.unique_id,
        "stats": result.stats,
        "errors": result.errors,
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


async def list_scrapes(owner: str) -> str:
    """
    List the stored site scrapes of an owner.

    Args:
        owner: Identifier of the user

    Returns:
        JSON with a "records" array of {owner, locator, uniqueId, createdAt}.
    """
    from . import list_scrapes_async

    try:
        records = await list_scrapes_async(owner, _record_store())
    except ScrapeError as exc:
        return _error_payload(exc)
    except Exception as exc:
        LOGGER.error("Listing scrapes of %s failed: %s", owner, exc)
        return _error_payload(exc)

    return json.dumps(
        {"owner": owner, "records": [record.to_dict() for record in records]},
        indent=2,
        ensure_ascii=False,
    )


mcp.tool(scrape_current_page)
mcp.tool(scrape_entire_site)
mcp.tool(list_scrapes)


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


def main():
    """CLI entry point for running the MCP server."""
    parser = argparse.ArgumentParser(
        description="Run the site scraper MCP server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # STDIO transport (default)
    python -m sitescraper.mcp_server

    # HTTP transport (for remote access)
    python -m sitescraper.mcp_server --transport http --port 8000

    # Store artifacts in S3 and records in MongoDB
    SCRAPE_ARTIFACT_BUCKET=scraped-data MONGODB_URI=mongodb://localhost:27017 \\
        python -m sitescraper.mcp_server
""",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to for HTTP transport (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to for HTTP transport (default: 8000)",
    )

    args = parser.parse_args()

    if args.transport == "http":
        LOGGER.info("Starting MCP server on http://%s:%d/mcp", args.host, args.port)
        mcp.run(transport="http", host=args.host, port=args.port)
    else:
        LOGGER.info("Starting MCP server with STDIO transport")
        mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
