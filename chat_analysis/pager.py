"""
Page-number pagination with a fixed throttle.

Huggy list endpoints take a zero-based `page` parameter and return an empty
array past the last page. The API enforces tight rate limits, so every
request is followed by a fixed sleep, including the last one.
"""

import logging
import time
from typing import Callable, Generator, List, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RateLimitedPager:
    """Fetches consecutive pages until an empty page or the page cap."""

    def __init__(
        self,
        delay: float,
        max_pages: int,
        sleep: Callable[[float], None] = time.sleep,
        name: str = "pages",
    ):
        if max_pages < 1:
            raise ValueError(f"max_pages must be >= 1, got {max_pages}")
        self.delay = delay
        self.max_pages = max_pages
        self.sleep = sleep
        self.name = name

    def iter_pages(
        self, fetch_page: Callable[[int], Sequence[T]]
    ) -> Generator[Sequence[T], None, None]:
        """
        Yield non-empty pages starting at index 0.

        Args:
            fetch_page: Called with the page index, returns that page's items

        Exceptions raised by fetch_page propagate unchanged.
        """
        page = 0
        while page < self.max_pages:
            items = fetch_page(page)
            # Sleep after every request, the terminating one included
            self.sleep(self.delay)
            if not items:
                logger.debug(f"{self.name}: empty page {page}, done")
                return
            yield items
            page += 1

        logger.warning(f"{self.name}: stopped at page cap ({self.max_pages})")

    def fetch_all(self, fetch_page: Callable[[int], Sequence[T]]) -> List[T]:
        """Return the concatenation of all pages."""
        results: List[T] = []
        for items in self.iter_pages(fetch_page):
            results.extend(items)
        logger.debug(f"{self.name}: fetched {len(results)} items")
        return results


def fetch_all_pages(
    fetch_page: Callable[[int], Sequence[T]],
    delay: float,
    max_pages: int,
    sleep: Callable[[float], None] = time.sleep,
) -> List[T]:
    """Functional shortcut for RateLimitedPager(delay, max_pages).fetch_all()."""
    return RateLimitedPager(delay, max_pages, sleep=sleep).fetch_all(fetch_page)
