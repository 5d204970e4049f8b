"""
The single filter/sort/paginate implementation for catalogue search.

Both the commerce API path and the local sample-data fallback call
:func:`run_search`, so the two code paths cannot drift apart. Facet
counts are disjunctive: the counts of a dimension are computed under
every active constraint except that dimension's own, so selected values
keep showing their alternatives.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..catalog.schemas import Book, Facet, FacetValue, Pagination
from .facets import PRICE_BUCKETS, RATING_THRESHOLDS, merge_facets
from .pagination import clamp_page, page_info, total_pages_for
from .request_builder import (
    CATEGORY_FACET,
    FACET_CODES,
    FACET_NAMES,
    FORMAT_FACET,
    PRICE_FACET,
    RATING_FACET,
    YEAR_FACET,
)
from .state import FilterState, SortOption

logger = logging.getLogger(__name__)


def _norm(s: Optional[str]) -> str:
    return (s or "").strip().lower()


def _matches_query(book: Book, query: str) -> bool:
    nq = _norm(query)
    if not nq:
        return True
    return nq in _norm(book.title) or nq in _norm(book.author)


def _matches_categories(book: Book, state: FilterState) -> bool:
    if not state.categories:
        return True
    return any(c.id in state.categories for c in book.categories)


def _matches_price(book: Book, state: FilterState) -> bool:
    return state.price_range.contains(book.price.amount)


def _matches_format(book: Book, state: FilterState) -> bool:
    if not state.format:
        return True
    wanted = {_norm(f) for f in state.format}
    return _norm(book.attributes.format) in wanted


def _matches_rating(book: Book, state: FilterState) -> bool:
    if state.rating is None:
        return True
    rating = book.attributes.rating
    return rating is not None and rating >= state.rating


def _matches_year(book: Book, state: FilterState) -> bool:
    if not state.publication_year:
        return True
    return book.attributes.publication_year in state.publication_year


_DIMENSION_PREDICATES: Dict[str, Callable[[Book, FilterState], bool]] = {
    CATEGORY_FACET: _matches_categories,
    PRICE_FACET: _matches_price,
    FORMAT_FACET: _matches_format,
    RATING_FACET: _matches_rating,
    YEAR_FACET: _matches_year,
}


def matches(book: Book, state: FilterState, skip: Optional[str] = None) -> bool:
    """Return True if ``book`` satisfies every constraint of ``state``.

    Constraints are AND-combined across dimensions and OR-combined within
    a set-valued dimension. ``skip`` names a facet dimension to ignore.
    """
    if not _matches_query(book, state.query):
        return False
    for code, predicate in _DIMENSION_PREDICATES.items():
        if code != skip and not predicate(book, state):
            return False
    return True


def filter_books(books: Iterable[Book], state: FilterState, skip: Optional[str] = None) -> List[Book]:
    return [b for b in books if matches(b, state, skip)]


def sort_books(books: Sequence[Book], sort_by: SortOption, keep_order: bool = False) -> List[Book]:
    """Order ``books`` for ``sort_by``.

    With ``keep_order`` set, relevance keeps the incoming order, which is
    how ranked results from the commerce API arrive.
    """
    items = list(books)
    if sort_by is SortOption.PRICE_LOW_HIGH:
        items.sort(key=lambda b: b.price.amount)
    elif sort_by is SortOption.PRICE_HIGH_LOW:
        items.sort(key=lambda b: b.price.amount, reverse=True)
    elif sort_by is SortOption.NEWEST:
        items.sort(key=lambda b: b.attributes.publication_year or 0, reverse=True)
    elif sort_by is SortOption.RATING:
        items.sort(key=lambda b: b.attributes.rating or 0.0, reverse=True)
    elif not keep_order:
        # Default ranking: best sellers first, then most reviewed.
        items.sort(key=lambda b: (not b.attributes.is_best_seller, -(b.attributes.review_count or 0)))
    return items


def paginate(items: Sequence[Book], page: int, page_size: int) -> Tuple[List[Book], Pagination]:
    """Slice ``items`` for ``page``; the reported page is the requested one."""
    total = len(items)
    current = clamp_page(page, total_pages_for(total, page_size))
    start = (current - 1) * page_size
    return list(items[start:start + page_size]), page_info(total, page_size, max(1, page))


def _term_values(counts: "OrderedDict[str, Tuple[str, int]]") -> List[FacetValue]:
    return [
        FacetValue(value=value, name=name, count=count)
        for value, (name, count) in counts.items()
        if count > 0
    ]


def _count_terms(pairs: Iterable[Tuple[str, str]]) -> "OrderedDict[str, Tuple[str, int]]":
    counts: "OrderedDict[str, Tuple[str, int]]" = OrderedDict()
    for value, name in pairs:
        prev_name, prev_count = counts.get(value, (name, 0))
        counts[value] = (prev_name, prev_count + 1)
    return counts


def _category_values(books: List[Book]) -> List[FacetValue]:
    counts = _count_terms((c.id, c.name) for b in books for c in b.categories)
    values = _term_values(counts)
    values.sort(key=lambda v: (-v.count, v.name.lower()))
    return values


def _format_values(books: List[Book]) -> List[FacetValue]:
    counts = _count_terms(
        (_norm(b.attributes.format), b.attributes.format)
        for b in books
        if b.attributes.format
    )
    values = _term_values(counts)
    values.sort(key=lambda v: v.name.lower())
    return values


def _year_values(books: List[Book]) -> List[FacetValue]:
    counts = _count_terms(
        (str(b.attributes.publication_year), str(b.attributes.publication_year))
        for b in books
        if b.attributes.publication_year is not None
    )
    values = _term_values(counts)
    values.sort(key=lambda v: int(v.value), reverse=True)
    return values


def _rating_values(books: List[Book]) -> List[FacetValue]:
    values = []
    for threshold in RATING_THRESHOLDS:
        count = sum(
            1 for b in books
            if b.attributes.rating is not None and b.attributes.rating >= threshold
        )
        if count:
            values.append(FacetValue(value=str(threshold), name=f"{threshold}+ Stars", count=count))
    return values


def _price_values(books: List[Book]) -> List[FacetValue]:
    values = []
    for bucket in PRICE_BUCKETS:
        count = sum(1 for b in books if bucket.holds(b.price.amount))
        if count:
            values.append(FacetValue(value=bucket.value, name=bucket.name, count=count))
    return values


_FACET_VALUE_BUILDERS: Dict[str, Callable[[List[Book]], List[FacetValue]]] = {
    CATEGORY_FACET: _category_values,
    PRICE_FACET: _price_values,
    FORMAT_FACET: _format_values,
    RATING_FACET: _rating_values,
    YEAR_FACET: _year_values,
}


def facet_counts(
    books: Sequence[Book],
    state: FilterState,
    codes: Sequence[str] = FACET_CODES,
) -> List[Facet]:
    """Compute facet value counts for ``books`` under ``state``.

    Dimensions without any value are omitted. ``selected`` flags are
    filled in by :func:`merge_facets`.
    """
    facets: List[Facet] = []
    for code in codes:
        builder = _FACET_VALUE_BUILDERS.get(code)
        if builder is None:
            logger.debug("No facet builder for %s", code)
            continue
        values = builder(filter_books(books, state, skip=code))
        if values:
            facets.append(Facet(code=code, name=FACET_NAMES.get(code, code), values=values))
    return merge_facets(facets, state)


@dataclass
class SearchOutcome:
    items: List[Book]
    facets: List[Facet]
    pagination: Pagination


def run_search(books: Sequence[Book], state: FilterState, ranked: bool = False) -> SearchOutcome:
    """Filter, sort, paginate and facet ``books`` according to ``state``.

    ``ranked`` marks ``books`` as already in relevance order.
    """
    filtered = filter_books(books, state)
    ordered = sort_books(filtered, state.sort_by, keep_order=ranked)
    page_items, pagination = paginate(ordered, state.page, state.page_size)
    return SearchOutcome(
        items=page_items,
        facets=facet_counts(books, state),
        pagination=pagination,
    )
