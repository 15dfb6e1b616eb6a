"""Authentication options for rendering protected pages.

Example usage:

    from sitescraper.auth import AuthConfig

    # Storage state exported from a logged-in browser
    auth = AuthConfig(storage_state="./auth_state.json")

    # Bearer token header
    auth = AuthConfig(headers={"Authorization": "Bearer xyz"})

    async with PlaywrightRenderer(auth=auth) as renderer:
        ...
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

LOGGER = logging.getLogger(__name__)


@dataclass
class AuthConfig:
    """Browser-context authentication for the renderer.

    Attributes:
        cookies: List of cookie dicts with 'name', 'value', 'domain' keys
            (or 'url'). Optionally 'path', 'secure', 'httpOnly', 'sameSite'.
        headers: Extra HTTP headers sent with every request.
        storage_state: Path to a Playwright storage state JSON file.
    """

    cookies: Optional[List[Dict[str, Any]]] = None
    headers: Optional[Dict[str, str]] = None
    storage_state: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.cookies and not self.headers and not self.storage_state


def build_context_options(auth: Optional[AuthConfig] = None) -> Dict[str, Any]:
    """Keyword arguments for Playwright's ``browser.new_context()``.

    Cookies are not part of the options; the renderer adds them to the
    context after it is created.
    """
    if auth is None or auth.is_empty:
        return {}

    options: Dict[str, Any] = {}

    if auth.headers:
        options["extra_http_headers"] = dict(auth.headers)
        LOGGER.info("Auth: injecting %d custom header(s)", len(auth.headers))

    if auth.storage_state:
        path = Path(auth.storage_state).expanduser()
        if not path.is_file():
            raise FileNotFoundError(f"Storage state file not found: {path}")
        options["storage_state"] = str(path)
        LOGGER.info("Auth: using storage state from %s", path)

    return options


def load_auth_from_env() -> Optional[AuthConfig]:
    """Load auth configuration from environment variables.

    Supported variables:
        SCRAPE_AUTH_STORAGE_STATE: Path to storage state JSON file.
        SCRAPE_AUTH_COOKIES_FILE: Path to cookies JSON file (list of dicts).

    Returns:
        AuthConfig if any variable is set, None otherwise.
    """
    storage_state = os.environ.get("SCRAPE_AUTH_STORAGE_STATE")
    cookies_file = os.environ.get("SCRAPE_AUTH_COOKIES_FILE")

    if not storage_state and not cookies_file:
        return None

    cookies = None
    if cookies_file:
        path = Path(cookies_file).expanduser()
        if path.is_file():
            with open(path, "r", encoding="utf-8") as fh:
                cookies = json.load(fh)
            LOGGER.info("Loaded %d cookie(s) from %s", len(cookies), path)
        else:
            LOGGER.warning("Cookies file not found: %s", path)

    return AuthConfig(storage_state=storage_state, cookies=cookies)
