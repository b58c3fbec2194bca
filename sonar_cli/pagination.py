"""Generic page aggregation for SonarQube search endpoints.

Every paged resource is collected the same way: a *fetch* function maps a
page number to a :class:`Page`, and :func:`collect_pages` folds the lazy
sequence of pages into one result with :func:`accumulate` until a stop
condition holds.

Two stop rules exist:

* ``ITEM_COUNT`` stops once the collected items reach the reported total.
* ``PAGE_ARITHMETIC`` stops once ``page * page_size`` reaches the total. Use
  it whenever results are filtered after the fetch, since the collected count
  can then stay below the total forever.

Both rules also stop on a short page and after ``MAX_PAGES`` pages.
"""

import itertools
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, Sequence

PAGE_SIZE = 100
MAX_PAGES = 100


class StopRule(Enum):
    ITEM_COUNT = "item_count"
    PAGE_ARITHMETIC = "page_arithmetic"


@dataclass(frozen=True)
class Page:
    """One page of results as returned by a fetch function.

    ``fetched`` is the number of raw records the server returned on this
    page, before any client-side filtering. It defaults to ``len(items)``.
    """

    items: Sequence
    total: int
    fetched: int | None = None

    @property
    def size(self) -> int:
        return len(self.items) if self.fetched is None else self.fetched


@dataclass(frozen=True)
class PageState:
    page: int = 0
    items: tuple = ()
    done: bool = False


Fetch = Callable[[int, int], Page]
Merge = Callable[[tuple, Sequence], tuple]


def extend(items: tuple, new: Sequence) -> tuple:
    return items + tuple(new)


def accumulate(
    state: PageState,
    page: Page,
    *,
    page_size: int = PAGE_SIZE,
    stop: StopRule = StopRule.ITEM_COUNT,
    limit: int | None = None,
    merge: Merge = extend,
    max_pages: int = MAX_PAGES,
) -> PageState:
    """Fold *page* into *state* and decide whether another fetch is needed."""
    number = state.page + 1
    items = merge(state.items, page.items)

    # The limit wins over every other rule so no extra request is made.
    if limit is not None and len(items) >= limit:
        return PageState(page=number, items=items[:limit], done=True)

    if stop is StopRule.ITEM_COUNT:
        exhausted = len(items) >= page.total
    else:
        exhausted = number * page_size >= page.total

    done = page.size < page_size or exhausted or number >= max_pages
    return PageState(page=number, items=items, done=done)


def iter_pages(fetch: Fetch, page_size: int = PAGE_SIZE) -> Iterator[Page]:
    """Lazily fetch pages 1, 2, 3, ... until the consumer stops iterating."""
    for number in itertools.count(1):
        yield fetch(number, page_size)


def collect_pages(
    fetch: Fetch,
    *,
    page_size: int = PAGE_SIZE,
    stop: StopRule = StopRule.ITEM_COUNT,
    limit: int | None = None,
    merge: Merge = extend,
    max_pages: int = MAX_PAGES,
) -> list:
    """Fetch every page of a resource and return the merged items.

    Errors raised by *fetch* propagate untouched; nothing collected so far is
    returned.
    """
    state = PageState()
    for page in iter_pages(fetch, page_size):
        state = accumulate(
            state,
            page,
            page_size=page_size,
            stop=stop,
            limit=limit,
            merge=merge,
            max_pages=max_pages,
        )
        if state.done:
            break
    return list(state.items)
