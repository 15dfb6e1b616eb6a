"""Sequential batches of concurrent per-link work.

At most ``batch_size`` coroutines run at once: a batch starts only after
every task of the previous batch has settled. A failing link is logged and
recorded; it never cancels its siblings or later batches.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, List, Sequence, Tuple, TypeVar

from .errors import InvalidInput

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class BatchResult(Generic[T]):
    """Outcome of one batch."""

    index: int
    urls: List[str]
    results: List[T] = field(default_factory=list)
    errors: List[Tuple[str, Exception]] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> int:
        return len(self.errors)


def partition(links: Sequence[str], batch_size: int) -> List[List[str]]:
    """Split ``links`` into contiguous groups of at most ``batch_size``."""
    if batch_size < 1:
        raise InvalidInput(f"batch_size must be >= 1, got {batch_size}")
    return [list(links[i : i + batch_size]) for i in range(0, len(links), batch_size)]


async def run_batches(
    links: Sequence[str],
    batch_size: int,
    per_link: Callable[[str], Awaitable[T]],
) -> List[BatchResult[T]]:
    """
    Run ``per_link`` over ``links``, one batch at a time.

    Args:
        links: Ordered URLs to process.
        batch_size: Maximum concurrent ``per_link`` calls.
        per_link: Coroutine function invoked once per URL.

    Returns:
        One BatchResult per batch, in batch order.
    """
    batches = partition(links, batch_size)
    outcomes: List[BatchResult[T]] = []

    for index, batch in enumerate(batches):
        LOGGER.info("Batch %d/%d: %d link(s)", index + 1, len(batches), len(batch))
        settled = await asyncio.gather(
            *(per_link(url) for url in batch), return_exceptions=True
        )

        outcome: BatchResult[T] = BatchResult(index=index, urls=list(batch))
        for url, value in zip(batch, settled):
            if isinstance(value, Exception):
                LOGGER.warning("Dropping %s: %s", url, value)
                outcome.errors.append((url, value))
            elif isinstance(value, BaseException):
                raise value
            else:
                outcome.results.append(value)
        outcomes.append(outcome)

        LOGGER.info(
            "Batch %d/%d done: %d succeeded, %d failed",
            index + 1,
            len(batches),
            outcome.succeeded,
            outcome.failed,
        )

    return outcomes
