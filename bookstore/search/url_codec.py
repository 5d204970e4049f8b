"""
Bidirectional mapping between ``FilterState`` and a URL query string.

The query string is the only durable record of a search, so it has to be
shareable and bookmarkable. Fields at their default value are left out
entirely and set-valued fields become one repeated key per element, e.g.
``category=fiction&category=mystery``. Decoding never raises: numbers that
do not parse are treated as absent constraints.
"""

from __future__ import annotations

import math
import urllib.parse
from typing import FrozenSet, Iterable, List, Optional, Tuple

from .state import DEFAULT_PAGE_SIZE, FilterState, PriceRange, SortOption

QUERY_KEY = "q"
CATEGORY_KEY = "category"
MIN_PRICE_KEY = "minPrice"
MAX_PRICE_KEY = "maxPrice"
FORMAT_KEY = "format"
RATING_KEY = "rating"
YEAR_KEY = "year"
SORT_KEY = "sort"
PAGE_KEY = "page"

# Sentinel used by category links for "no category constraint".
ALL_CATEGORIES = "all"


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _parse_float(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    try:
        value = float(raw.strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _parse_int(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def encode(
    state: FilterState,
    query: Optional[str] = None,
    sort_by: Optional[SortOption] = None,
) -> str:
    """Serialise ``state`` into a minimal query string.

    ``query`` and ``sort_by`` override the values carried by ``state``.
    Set elements are written in sorted order so equal states produce the
    same string.
    """
    text = state.query if query is None else query.strip()
    sort = state.sort_by if sort_by is None else SortOption.parse(sort_by)

    pairs: List[Tuple[str, str]] = []
    if text:
        pairs.append((QUERY_KEY, text))
    pairs.extend((CATEGORY_KEY, c) for c in sorted(state.categories))
    if state.price_range.min is not None:
        pairs.append((MIN_PRICE_KEY, _format_number(state.price_range.min)))
    if state.price_range.max is not None:
        pairs.append((MAX_PRICE_KEY, _format_number(state.price_range.max)))
    pairs.extend((FORMAT_KEY, f) for f in sorted(state.format))
    if state.rating is not None:
        pairs.append((RATING_KEY, _format_number(state.rating)))
    pairs.extend((YEAR_KEY, str(y)) for y in sorted(state.publication_year))
    if sort is not SortOption.RELEVANCE:
        pairs.append((SORT_KEY, sort.value))
    if state.page != 1:
        pairs.append((PAGE_KEY, str(state.page)))
    return urllib.parse.urlencode(pairs)


def _collect(pairs: Iterable[Tuple[str, str]], key: str) -> List[str]:
    return [v for k, v in pairs if k == key]


def _first(pairs: Iterable[Tuple[str, str]], key: str) -> Optional[str]:
    values = _collect(pairs, key)
    return values[0] if values else None


def decode(query_string: str, page_size: int = DEFAULT_PAGE_SIZE) -> FilterState:
    """Parse a query string back into a ``FilterState``.

    Missing keys map to defaults and repeated keys are collected. Malformed
    numbers, ``category=all``, unknown sort values and pages below 1 all
    degrade to "no constraint" rather than raising.
    """
    pairs = urllib.parse.parse_qsl((query_string or "").lstrip("?"))

    categories: FrozenSet[str] = frozenset(
        c.strip() for c in _collect(pairs, CATEGORY_KEY)
        if c.strip() and c.strip() != ALL_CATEGORIES
    )
    formats = frozenset(f.strip() for f in _collect(pairs, FORMAT_KEY) if f.strip())
    years = frozenset(
        y for y in (_parse_int(raw) for raw in _collect(pairs, YEAR_KEY)) if y is not None
    )
    page = _parse_int(_first(pairs, PAGE_KEY))

    return FilterState(
        query=(_first(pairs, QUERY_KEY) or "").strip(),
        categories=categories,
        price_range=PriceRange(
            min=_parse_float(_first(pairs, MIN_PRICE_KEY)),
            max=_parse_float(_first(pairs, MAX_PRICE_KEY)),
        ),
        format=formats,
        rating=_parse_float(_first(pairs, RATING_KEY)),
        publication_year=years,
        sort_by=SortOption.parse(_first(pairs, SORT_KEY)),
        page=max(1, page) if page is not None else 1,
        page_size=page_size,
    )
