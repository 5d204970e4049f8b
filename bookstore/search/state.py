"""
Filter state for catalogue search.

``FilterState`` is the canonical, serialisable description of what the
user is asking for: free text, facet selections, sort order and page.
It is an immutable value object; every mutation goes through
:func:`update_filter` or :func:`clear_all_filters`, which return a new
state and never trigger requests or URL changes themselves.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Iterable, Mapping, Optional

DEFAULT_PAGE_SIZE = 12


class SortOption(str, Enum):
    RELEVANCE = "relevance"
    PRICE_LOW_HIGH = "price-low-high"
    PRICE_HIGH_LOW = "price-high-low"
    NEWEST = "newest"
    RATING = "rating"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortOption":
        """Map a raw sort string to an option, falling back to relevance."""
        if isinstance(value, SortOption):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.RELEVANCE


@dataclass(frozen=True)
class PriceRange:
    """Inclusive price bounds; ``None`` leaves that side unbounded.

    ``min > max`` is accepted as-is and simply matches nothing.
    """

    min: Optional[float] = None
    max: Optional[float] = None

    def is_set(self) -> bool:
        return self.min is not None or self.max is not None

    def contains(self, amount: float) -> bool:
        if self.min is not None and amount < self.min:
            return False
        if self.max is not None and amount > self.max:
            return False
        return True


@dataclass(frozen=True)
class FilterState:
    query: str = ""
    categories: FrozenSet[str] = field(default_factory=frozenset)
    price_range: PriceRange = field(default_factory=PriceRange)
    format: FrozenSet[str] = field(default_factory=frozenset)
    # None means "no rating constraint"; 0 is a legitimate threshold.
    rating: Optional[float] = None
    publication_year: FrozenSet[int] = field(default_factory=frozenset)
    sort_by: SortOption = SortOption.RELEVANCE
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def is_empty(self) -> bool:
        """True when no text or facet constraint is active."""
        return not self.query and self.active_filter_count() == 0

    def active_filter_count(self) -> int:
        count = len(self.categories) + len(self.format) + len(self.publication_year)
        if self.price_range.is_set():
            count += 1
        if self.rating is not None:
            count += 1
        return count


FILTER_KEYS = tuple(f.name for f in dataclasses.fields(FilterState))


def _as_str_set(value: Any) -> FrozenSet[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return frozenset([value]) if value else frozenset()
    return frozenset(str(v) for v in value if str(v))


def _as_int_set(value: Any) -> FrozenSet[int]:
    if value is None:
        return frozenset()
    if isinstance(value, (int, str)):
        value = [value]
    return frozenset(int(v) for v in value)


def _as_price_range(value: Any) -> PriceRange:
    if value is None:
        return PriceRange()
    if isinstance(value, PriceRange):
        return value
    if isinstance(value, Mapping):
        lo, hi = value.get("min"), value.get("max")
    else:
        lo, hi = value
    return PriceRange(
        min=float(lo) if lo is not None else None,
        max=float(hi) if hi is not None else None,
    )


def _coerce(key: str, value: Any) -> Any:
    if key in ("categories", "format"):
        return _as_str_set(value)
    if key == "publication_year":
        return _as_int_set(value)
    if key == "price_range":
        return _as_price_range(value)
    if key == "rating":
        return float(value) if value is not None else None
    if key == "sort_by":
        return SortOption.parse(value)
    if key in ("page", "page_size"):
        return int(value)
    if key == "query":
        return (value or "").strip()
    return value


def update_filter(state: FilterState, key: str, value: Any) -> FilterState:
    """Return a copy of ``state`` with exactly ``key`` replaced.

    The value is coerced to the field's canonical type (lists become
    frozensets, a ``{"min": .., "max": ..}`` mapping becomes a
    ``PriceRange``). Unknown keys raise ``KeyError``.
    """
    if key not in FILTER_KEYS:
        raise KeyError(f"Unknown filter key: {key}")
    return dataclasses.replace(state, **{key: _coerce(key, value)})


def clear_all_filters() -> FilterState:
    return FilterState()


def toggle_value(values: Iterable[Any], value: Any, checked: bool) -> FrozenSet[Any]:
    """Add or remove ``value`` from a set-valued filter, checkbox style."""
    current = set(values)
    if checked:
        current.add(value)
    else:
        current.discard(value)
    return frozenset(current)
