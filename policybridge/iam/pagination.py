from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Iterator, Optional, Sequence, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")

PageCursor = Optional[str]


@dataclass(frozen=True)
class Page(Generic[T]):
    items: Sequence[T]
    next_cursor: PageCursor = None


FetchPage = Callable[[PageCursor], Page[T]]


def paginate(fetch_page: FetchPage[T]) -> Iterator[T]:
    """
    Lazily follow a continuation cursor until the server stops returning one.

    The first call passes ``None``. Items are yielded in page order and the
    next page is only requested once the consumer has pulled every item of
    the current one, so breaking out of the loop stops fetching. The
    generator cannot be restarted; call ``paginate`` again to re-enumerate.
    """
    cursor: PageCursor = None
    pages = 0
    while True:
        page = fetch_page(cursor)
        pages += 1
        logger.debug(
            "Fetched page %s: items=%s has_more=%s",
            pages,
            len(page.items),
            bool(page.next_cursor),
            extra={"page": pages, "items": len(page.items)},
        )
        yield from page.items
        cursor = page.next_cursor or None
        if cursor is None:
            return
