"""Lazy enumeration of cursor-paginated list endpoints.

The service returns pages shaped as {"data": [...], "has_more": bool,
"next_page": cursor}. A PageEnumerator walks them forward one item at a
time and fetches the next page only when the current one is used up.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterator, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of a paginated listing."""

    items: list[T] = field(default_factory=list)
    has_more: bool = False
    next_cursor: Optional[str] = None

    @classmethod
    def from_response(cls, response: dict) -> "Page":
        return cls(
            items=list(response.get("data") or []),
            has_more=bool(response.get("has_more", False)),
            next_cursor=response.get("next_page") or None,
        )


PageFetcher = Callable[[Optional[str]], Union[Page, dict]]


class PageEnumerator(Iterator[T]):
    """Forward-only iterator over every item of a paginated resource.

    State is held explicitly: the current page, the position within it, the
    cursor for the next fetch and whether the listing is exhausted. Iterating
    a consumed enumerator yields nothing; call reset() to start over.

    Example:
        for transfer in enumerate_pages(lambda cursor: api.list_transfers(w, a, page=cursor)):
            print(transfer["transfer_id"])
    """

    def __init__(self, fetch_page: PageFetcher, build: Optional[Callable[[Any], T]] = None):
        self._fetch_page = fetch_page
        self._build = build
        self.reset()

    def reset(self) -> None:
        """Drop all state so the next item comes from the first page again."""
        self.page: Optional[Page] = None
        self.index = 0
        self.cursor: Optional[str] = None
        self.exhausted = False
        self.fetch_count = 0

    def _fetch(self) -> None:
        response = self._fetch_page(self.cursor)
        self.page = response if isinstance(response, Page) else Page.from_response(response)
        self.index = 0
        self.fetch_count += 1
        logger.debug(
            f"Fetched page {self.fetch_count}: {len(self.page.items)} items, has_more={self.page.has_more}"
        )

        # An empty page ends the listing even if the service claims more
        if not self.page.items:
            self.exhausted = True
            return

        if self.page.has_more and self.page.next_cursor is not None:
            self.cursor = self.page.next_cursor
        else:
            self.cursor = None
            if self.page.has_more:
                logger.warning("Page reports has_more without a next cursor; stopping")

    def _has_next_page(self) -> bool:
        if self.page is None:
            return True
        return self.cursor is not None

    def __iter__(self) -> "PageEnumerator[T]":
        return self

    def __next__(self) -> T:
        while not self.exhausted:
            if self.page is not None and self.index < len(self.page.items):
                item = self.page.items[self.index]
                self.index += 1
                return self._build(item) if self._build else item

            if not self._has_next_page():
                self.exhausted = True
                break

            self._fetch()

        raise StopIteration


def enumerate_pages(fetch_page: PageFetcher, build: Optional[Callable[[Any], T]] = None) -> PageEnumerator[T]:
    """Lazily enumerate every item across a paginated listing.

    Args:
        fetch_page: Called with the cursor (None for the first page), returns
            a Page or a raw {"data", "has_more", "next_page"} response
        build: Optional converter applied to each item as it is yielded

    Returns:
        PageEnumerator producing items in server order
    """
    return PageEnumerator(fetch_page, build)
