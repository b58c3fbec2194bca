"""Tests for sonar_cli/pagination.py"""

import math

import pytest

from sonar_cli.pagination import (
    MAX_PAGES,
    Page,
    PageState,
    StopRule,
    accumulate,
    collect_pages,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class FakeResource:
    """Serves ``items`` in pages and records every requested page number."""

    def __init__(self, items: list, total: int | None = None) -> None:
        self.items = items
        self.total = len(items) if total is None else total
        self.calls: list[int] = []

    def __call__(self, page: int, size: int) -> Page:
        self.calls.append(page)
        start = (page - 1) * size
        return Page(items=self.items[start:start + size], total=self.total)


class EndlessResource:
    """A server that always returns a full page and overstates the total."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, page: int, size: int) -> Page:
        self.calls += 1
        return Page(items=[page] * size, total=10**9)


# ---------------------------------------------------------------------------
# collect_pages — termination
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("count", [0, 1, 99, 100, 101, 250])
def test_returns_every_item_in_ceil_n_over_page_size_fetches(count):
    fetch = FakeResource(list(range(count)))
    results = collect_pages(fetch)
    assert results == list(range(count))
    assert len(fetch.calls) == max(1, math.ceil(count / 100))


def test_101_items_take_two_fetches():
    fetch = FakeResource(list(range(101)))
    assert len(collect_pages(fetch)) == 101
    assert fetch.calls == [1, 2]


def test_halts_after_max_pages_when_total_is_overstated():
    fetch = EndlessResource()
    results = collect_pages(fetch)
    assert fetch.calls == MAX_PAGES == 100
    assert len(results) == 100 * 100


def test_short_page_stops_even_if_total_claims_more():
    fetch = FakeResource(list(range(30)), total=1000)
    assert len(collect_pages(fetch)) == 30
    assert fetch.calls == [1]


def test_custom_page_size_is_passed_to_fetch():
    fetch = FakeResource(list(range(5)))
    assert collect_pages(fetch, page_size=2) == [0, 1, 2, 3, 4]
    assert fetch.calls == [1, 2, 3]


def test_fetch_errors_propagate():
    def fetch(page, size):
        if page == 2:
            raise RuntimeError("page 2 failed")
        return Page(items=list(range(size)), total=500)

    with pytest.raises(RuntimeError, match="page 2 failed"):
        collect_pages(fetch)


# ---------------------------------------------------------------------------
# collect_pages — limit
# ---------------------------------------------------------------------------

def test_limit_truncates_results():
    fetch = FakeResource(list(range(5)))
    assert collect_pages(fetch, limit=2) == [0, 1]


def test_limit_stops_paging_before_the_total_check():
    fetch = FakeResource(list(range(10)))
    assert collect_pages(fetch, page_size=2, limit=2) == [0, 1]
    assert fetch.calls == [1]


def test_limit_reached_mid_page_on_later_page():
    fetch = FakeResource(list(range(10)))
    assert collect_pages(fetch, page_size=3, limit=5) == [0, 1, 2, 3, 4]
    assert fetch.calls == [1, 2]


def test_limit_above_available_returns_everything():
    fetch = FakeResource(list(range(5)))
    assert collect_pages(fetch, limit=50) == list(range(5))


# ---------------------------------------------------------------------------
# accumulate — stop rules
# ---------------------------------------------------------------------------

def test_item_count_rule_stops_when_total_collected():
    state = accumulate(PageState(), Page(items=[1, 2], total=2), page_size=2)
    assert state.done
    assert state.items == (1, 2)
    assert state.page == 1


def test_item_count_rule_continues_while_short_of_total():
    state = accumulate(PageState(), Page(items=[1, 2], total=3), page_size=2)
    assert not state.done


def test_page_arithmetic_rule_ignores_filtered_count():
    # 2 raw records fetched, 0 kept: the item count can never reach 4.
    first = accumulate(
        PageState(), Page(items=[], total=4, fetched=2),
        page_size=2, stop=StopRule.PAGE_ARITHMETIC,
    )
    assert not first.done
    second = accumulate(
        first, Page(items=["x"], total=4, fetched=2),
        page_size=2, stop=StopRule.PAGE_ARITHMETIC,
    )
    assert second.done
    assert second.items == ("x",)


def test_filtered_page_is_not_mistaken_for_a_short_page():
    state = accumulate(
        PageState(), Page(items=[], total=10, fetched=2),
        page_size=2, stop=StopRule.PAGE_ARITHMETIC,
    )
    assert not state.done


def test_accumulate_does_not_mutate_previous_state():
    start = PageState(page=1, items=(1,))
    accumulate(start, Page(items=[2], total=5), page_size=1)
    assert start == PageState(page=1, items=(1,))


def test_custom_merge_is_used():
    def merge(items, new):
        return items + tuple(x * 10 for x in new)

    fetch = FakeResource([1, 2, 3])
    assert collect_pages(fetch, merge=merge) == [10, 20, 30]
