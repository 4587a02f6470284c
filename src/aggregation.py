"""Fetch every page of a paginated collection and flatten it.

Page 1 is fetched first to learn the page count; pages 2..N are then issued
together and joined. Any failed page fails the whole aggregate, so callers
never commit a partial collection.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

PageFetcher = Callable[[int], Awaitable[tuple[list[T], int]]]


async def fetch_all_pages(fetch_page: PageFetcher) -> list[T]:
    """Return the items of every page, in page order then within-page order.

    *fetch_page(n)* returns ``(items, last_page)``. If any page raises, the
    first failure (by page number) is re-raised after all pages settled.
    """
    items, last_page = await fetch_page(1)
    collected = list(items)
    if last_page <= 1:
        return collected

    pages = range(2, last_page + 1)
    results = await asyncio.gather(*(fetch_page(page) for page in pages), return_exceptions=True)
    for page, result in zip(pages, results):
        if isinstance(result, BaseException):
            logger.debug("Aggregate page %s of %s failed: %r", page, last_page, result)
            raise result
    for page_items, _ in results:
        collected.extend(page_items)
    logger.debug("Aggregated %s items from %s pages", len(collected), last_page)
    return collected
