"""Scrape run configuration.

Values come from keyword arguments, or from ``SCRAPE_*`` environment
variables via :meth:`ScrapeConfig.from_env`. The environment is read at call
time so that late ``.env`` loading and test monkeypatching both work.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .errors import InvalidInput

LOGGER = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
DEFAULT_MAX_RETRY_ATTEMPTS = 3
DEFAULT_NAVIGATION_TIMEOUT_MS = 120_000

# Playwright load states accepted by page.goto(wait_until=...)
WAIT_UNTIL_CHOICES = ("load", "domcontentloaded", "networkidle", "commit")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ScrapeConfig:
    """Tunables for one scrape invocation."""

    batch_size: int = DEFAULT_BATCH_SIZE
    max_retry_attempts: int = DEFAULT_MAX_RETRY_ATTEMPTS
    navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS
    retry_backoff_seconds: float = 0.0
    wait_until: str = "load"
    discovery_wait_until: str = "networkidle"
    headless: bool = True
    deadline_seconds: Optional[float] = None

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise InvalidInput(f"batch_size must be >= 1, got {self.batch_size}")
        if self.max_retry_attempts < 1:
            raise InvalidInput(
                f"max_retry_attempts must be >= 1, got {self.max_retry_attempts}"
            )
        if self.navigation_timeout_ms <= 0:
            raise InvalidInput(
                f"navigation_timeout_ms must be > 0, got {self.navigation_timeout_ms}"
            )
        if self.retry_backoff_seconds < 0:
            raise InvalidInput(
                f"retry_backoff_seconds must be >= 0, got {self.retry_backoff_seconds}"
            )
        for name in ("wait_until", "discovery_wait_until"):
            value = getattr(self, name)
            if value not in WAIT_UNTIL_CHOICES:
                raise InvalidInput(
                    f"{name} must be one of {', '.join(WAIT_UNTIL_CHOICES)}, got {value!r}"
                )
        if self.deadline_seconds is not None and self.deadline_seconds <= 0:
            raise InvalidInput(
                f"deadline_seconds must be > 0, got {self.deadline_seconds}"
            )

    def with_overrides(self, **overrides: Any) -> ScrapeConfig:
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        if not changes:
            return self
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_env(cls) -> ScrapeConfig:
        """Build a config from ``SCRAPE_*`` environment variables."""
        defaults = cls()
        return cls(
            batch_size=_env_value("SCRAPE_BATCH_SIZE", int, defaults.batch_size),
            max_retry_attempts=_env_value(
                "SCRAPE_MAX_RETRY_ATTEMPTS", int, defaults.max_retry_attempts
            ),
            navigation_timeout_ms=_env_value(
                "SCRAPE_NAVIGATION_TIMEOUT_MS", int, defaults.navigation_timeout_ms
            ),
            retry_backoff_seconds=_env_value(
                "SCRAPE_RETRY_BACKOFF_SECONDS", float, defaults.retry_backoff_seconds
            ),
            wait_until=os.getenv("SCRAPE_WAIT_UNTIL") or defaults.wait_until,
            discovery_wait_until=(
                os.getenv("SCRAPE_DISCOVERY_WAIT_UNTIL") or defaults.discovery_wait_until
            ),
            headless=_env_bool("SCRAPE_HEADLESS", defaults.headless),
            deadline_seconds=_env_value("SCRAPE_DEADLINE_SECONDS", float, None),
        )


def _env_value(name: str, convert: Callable[[str], Any], default: Any) -> Any:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return convert(raw.strip())
    except ValueError as exc:
        raise InvalidInput(f"{name} is not a valid {convert.__name__}: {raw!r}") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    LOGGER.warning("Ignoring unrecognized %s=%r; using %s", name, raw, default)
    return default
