"""
Paginated sources for HAL collections.

A Paginator wraps an adapter that knows the total item count and can slice
out a window of items; iterating the paginator yields the current page.
"""

from __future__ import annotations

import math
from typing import Any, Callable, Iterable, Iterator, List, Protocol, Sequence

from .errors import InvalidArgumentError


class PaginatorAdapter(Protocol):
    def count(self) -> int: ...

    def get_items(self, offset: int, limit: int) -> Iterable[Any]: ...


class SequenceAdapter:
    """Adapter over an in-memory sequence."""

    def __init__(self, items: Sequence[Any]):
        self._items = list(items)

    def count(self) -> int:
        return len(self._items)

    def get_items(self, offset: int, limit: int) -> List[Any]:
        return self._items[offset : offset + limit]


class CallbackAdapter:
    """Adapter delegating to callables, e.g. a query and a COUNT(*)."""

    def __init__(
        self,
        items_callback: Callable[[int, int], Iterable[Any]],
        count_callback: Callable[[], int],
    ):
        self._items_callback = items_callback
        self._count_callback = count_callback

    def count(self) -> int:
        return int(self._count_callback())

    def get_items(self, offset: int, limit: int) -> Iterable[Any]:
        return self._items_callback(offset, limit)


class Paginator:
    DEFAULT_ITEM_COUNT_PER_PAGE = 10

    def __init__(self, adapter: PaginatorAdapter):
        if not hasattr(adapter, "count") or not hasattr(adapter, "get_items"):
            raise InvalidArgumentError(
                "Paginator adapter must provide count() and get_items(offset, limit)"
            )
        self._adapter = adapter
        self._item_count_per_page = self.DEFAULT_ITEM_COUNT_PER_PAGE
        self._current_page_number = 1
        self._total: int | None = None

    @classmethod
    def from_sequence(cls, items: Sequence[Any]) -> "Paginator":
        return cls(SequenceAdapter(items))

    @property
    def item_count_per_page(self) -> int:
        return self._item_count_per_page

    @property
    def current_page_number(self) -> int:
        return self._current_page_number

    def set_item_count_per_page(self, count: int) -> "Paginator":
        count = int(count)
        self._item_count_per_page = count if count > 0 else 1
        return self

    def set_current_page_number(self, page: int) -> "Paginator":
        self._current_page_number = int(page)
        return self

    @property
    def total_item_count(self) -> int:
        if self._total is None:
            self._total = self._adapter.count()
        return self._total

    @property
    def page_count(self) -> int:
        return math.ceil(self.total_item_count / self._item_count_per_page)

    def _normalized_page(self) -> int:
        # Out-of-range pages are clamped for iteration only; renderers check
        # the requested page against page_count themselves.
        count = self.page_count
        if count == 0:
            return 1
        return min(max(self._current_page_number, 1), count)

    def get_current_items(self) -> List[Any]:
        if self.page_count == 0:
            return []
        offset = (self._normalized_page() - 1) * self._item_count_per_page
        return list(self._adapter.get_items(offset, self._item_count_per_page))

    def __iter__(self) -> Iterator[Any]:
        return iter(self.get_current_items())

    def __len__(self) -> int:
        return self.page_count


__all__ = ["Paginator", "PaginatorAdapter", "SequenceAdapter", "CallbackAdapter"]
