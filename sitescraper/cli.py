"""Command-line interface for the site scraper."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import shutil
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .auth import AuthConfig, load_auth_from_env
from .config import WAIT_UNTIL_CHOICES, ScrapeConfig
from .errors import InvalidInput, RecordWriteFailed, ScrapeError
from .records import JsonLinesRecordStore, RecordStore, build_record_store_from_env
from .storage import ArtifactStore, LocalArtifactStore, build_artifact_store_from_env

# Configuration directory for global CLI usage
CONFIG_DIR = Path.home() / ".config" / "sitescraper"
CONFIG_ENV_FILE = CONFIG_DIR / ".env"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID_INPUT = 2
EXIT_INTERRUPTED = 130


def _load_config() -> None:
    """Load .env configuration with fallback to user config directory.

    Search order:
    1. .env in current working directory
    2. ~/.config/sitescraper/.env

    If neither exists and .env.example is found next to the package, it is
    copied to ~/.config/sitescraper/.env as a starting point.
    """
    local_env = Path.cwd() / ".env"
    if local_env.is_file():
        load_dotenv(local_env)
        return

    if CONFIG_ENV_FILE.is_file():
        load_dotenv(CONFIG_ENV_FILE)
        return

    example_file = Path(__file__).parent.parent / ".env.example"
    if example_file.is_file():
        try:
            CONFIG_DIR.mkdir(parents=True, exist_ok=True)
            shutil.copy(example_file, CONFIG_ENV_FILE)
            logging.info("Created config file at %s from .env.example.", CONFIG_ENV_FILE)
            load_dotenv(CONFIG_ENV_FILE)
        except OSError as exc:
            logging.debug("Could not create %s: %s", CONFIG_ENV_FILE, exc)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _emit(payload: Dict[str, Any], output: Optional[str]) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if output is None:
        print(text)
        return
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    logging.info("Wrote %s", path)


def _parse_headers(values: Optional[List[str]]) -> Optional[Dict[str, str]]:
    if not values:
        return None
    headers: Dict[str, str] = {}
    for value in values:
        if ":" not in value:
            logging.warning("Invalid header format (expected 'Key: Value'): %s", value)
            continue
        key, _, header_value = value.partition(":")
        headers[key.strip()] = header_value.strip()
    return headers or None


def _build_auth(args: argparse.Namespace) -> Optional[AuthConfig]:
    headers = _parse_headers(getattr(args, "header", None))
    storage_state = getattr(args, "storage_state", None)
    if headers or storage_state:
        return AuthConfig(headers=headers, storage_state=storage_state)
    return load_auth_from_env()


def _build_config(args: argparse.Namespace) -> ScrapeConfig:
    return ScrapeConfig.from_env().with_overrides(
        batch_size=args.batch_size,
        max_retry_attempts=args.max_retries,
        navigation_timeout_ms=args.navigation_timeout_ms,
        retry_backoff_seconds=args.retry_backoff,
        wait_until=args.wait_until,
        deadline_seconds=args.deadline,
        headless=False if args.headed else None,
    )


def _build_artifact_store(args: argparse.Namespace) -> ArtifactStore:
    if args.artifact_dir:
        return LocalArtifactStore(args.artifact_dir)
    return build_artifact_store_from_env()


def _build_record_store(args: argparse.Namespace) -> RecordStore:
    if args.records_file:
        return JsonLinesRecordStore(args.records_file)
    return build_record_store_from_env()


# =============================================================================
# SCRAPE COMMAND
# =============================================================================


def _parse_scrape_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="scrape",
        description="Scrape paragraphs and links from a page or an entire site.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # Current page to stdout
  scrape https://example.com

  # Current page to file
  scrape https://example.com -o page.json

  # Entire site, stored under ./artifacts with a pointer record for the owner
  scrape https://docs.example.com --site --owner user-42

  # Smaller batches, more retries with backoff
  scrape https://docs.example.com --site --owner user-42 --batch-size 5 --max-retries 5 --retry-backoff 1

  # Render with an authenticated browser state
  scrape https://example.com --storage-state ./state.json
""",
    )

    parser.add_argument("url", help="URL to scrape (seed URL with --site)")
    parser.add_argument(
        "--site",
        action="store_true",
        help="Scrape every same-origin page linked from URL and store the result",
    )
    parser.add_argument(
        "--owner",
        type=str,
        default=None,
        help="Owner recorded for the stored scrape (required with --site)",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Write the JSON result to this file instead of stdout",
    )

    tuning = parser.add_argument_group("pipeline tuning")
    tuning.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Pages scraped concurrently per batch (default: 10)",
    )
    tuning.add_argument(
        "--max-retries",
        type=int,
        default=None,
        help="Attempts per page before it is dropped (default: 3)",
    )
    tuning.add_argument(
        "--navigation-timeout-ms",
        type=int,
        default=None,
        help="Navigation timeout in milliseconds (default: 120000)",
    )
    tuning.add_argument(
        "--retry-backoff",
        type=float,
        default=None,
        help="Base seconds of exponential backoff between attempts (default: 0)",
    )
    tuning.add_argument(
        "--wait-until",
        type=str,
        default=None,
        choices=list(WAIT_UNTIL_CHOICES),
        help="Page load event to wait for when scraping a page (default: load)",
    )
    tuning.add_argument(
        "--deadline",
        type=float,
        default=None,
        help="Overall deadline in seconds for a site scrape",
    )
    tuning.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser window",
    )

    storage = parser.add_argument_group("storage")
    storage.add_argument(
        "--artifact-dir",
        type=str,
        default=None,
        help="Directory for stored scrapes (overrides SCRAPE_ARTIFACT_BUCKET/DIR)",
    )
    storage.add_argument(
        "--records-file",
        type=str,
        default=None,
        help="JSON Lines file for pointer records (overrides MONGODB_URI/SCRAPE_RECORDS_FILE)",
    )

    auth = parser.add_argument_group("authentication")
    auth.add_argument(
        "--storage-state",
        type=str,
        default=None,
        help="Path to Playwright storage state JSON for authenticated rendering",
    )
    auth.add_argument(
        "--header",
        action="append",
        default=None,
        help='Custom HTTP header (can be repeated). Example: --header "Authorization: Bearer xyz"',
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser.parse_args(argv)


async def _run_scrape_async(args: argparse.Namespace) -> int:
    """Main async entry point for scrape."""
    from . import scrape_current_page_async, scrape_entire_site_async

    config = _build_config(args)
    auth = _build_auth(args)
    started = time.monotonic()

    if args.site:
        if not args.owner:
            raise InvalidInput("--owner is required with --site")
        logging.info("Scraping the entire site: %s", args.url)
        record_store = _build_record_store(args)
        try:
            result = await scrape_entire_site_async(
                args.url,
                args.owner,
                artifact_store=_build_artifact_store(args),
                record_store=record_store,
                config=config,
                auth=auth,
            )
        finally:
            record_store.close()
        for entry in result.errors:
            logging.warning("Failed: %s - %s", entry["url"], entry["error"])
        payload: Dict[str, Any] = {
            "locator": result.locator,
            "uniqueId": result.record.unique_id,
            "stats": result.stats,
            "errors": result.errors,
        }
    else:
        logging.info("Scraping the current page: %s", args.url)
        document = await scrape_current_page_async(args.url, config=config, auth=auth)
        payload = document.to_dict()

    logging.info("Time taken: %.2f seconds", time.monotonic() - started)
    _emit(payload, args.output)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the scrape command."""
    args = _parse_scrape_args(argv)
    _setup_logging(args.verbose)
    _load_config()

    try:
        return asyncio.run(_run_scrape_async(args))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return EXIT_INTERRUPTED
    except InvalidInput as exc:
        logging.error("Invalid input: %s", exc)
        return EXIT_INVALID_INPUT
    except RecordWriteFailed as exc:
        logging.error("%s: %s", exc.code, exc)
        logging.error("Unreferenced artifact: %s", exc.locator)
        return EXIT_FAILED
    except ScrapeError as exc:
        logging.error("%s: %s", exc.code, exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return EXIT_FAILED
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return EXIT_FAILED


# =============================================================================
# RECORDS COMMAND
# =============================================================================


def _parse_records_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="scrape-records",
        description="List stored site scrapes of an owner.",
    )
    parser.add_argument("--owner", type=str, required=True, help="Owner to look up")
    parser.add_argument(
        "--records-file",
        type=str,
        default=None,
        help="JSON Lines file for pointer records (overrides MONGODB_URI/SCRAPE_RECORDS_FILE)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


async def _run_records_async(args: argparse.Namespace) -> int:
    from . import list_scrapes_async

    record_store = _build_record_store(args)
    try:
        records = await list_scrapes_async(args.owner, record_store)
    finally:
        record_store.close()
    _emit({"owner": args.owner, "records": [r.to_dict() for r in records]}, None)
    return EXIT_OK


def records_main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the scrape-records command."""
    args = _parse_records_args(argv)
    _setup_logging(args.verbose)
    _load_config()

    try:
        return asyncio.run(_run_records_async(args))
    except InvalidInput as exc:
        logging.error("Invalid input: %s", exc)
        return EXIT_INVALID_INPUT
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
