"""
Translate canonical search state into a request for the catalog API.

The builder produces flat per-dimension filter expressions, a sort
directive and the fixed list of facet dimensions to count. The facet list
does not depend on which filters are active, so switching a filter on never
hides the facet needed to switch it back off.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from . import url_codec
from .state import FilterState, SortOption

CATEGORY_FACET = "category"
FORMAT_FACET = "attributes.format"
RATING_FACET = "attributes.rating"
YEAR_FACET = "attributes.publicationYear"
PRICE_FACET = "price.amount"

FACET_CODES: Tuple[str, ...] = (
    CATEGORY_FACET,
    PRICE_FACET,
    FORMAT_FACET,
    RATING_FACET,
    YEAR_FACET,
)

FACET_NAMES: Dict[str, str] = {
    CATEGORY_FACET: "Category",
    PRICE_FACET: "Price",
    FORMAT_FACET: "Format",
    RATING_FACET: "Rating",
    YEAR_FACET: "Publication Year",
}

ASCENDING = "asc"
DESCENDING = "desc"


@dataclass(frozen=True)
class SortDirective:
    field: str
    direction: str

    def to_param(self) -> str:
        return f"{self.field}:{self.direction}"


SORT_DIRECTIVES: Dict[SortOption, Optional[SortDirective]] = {
    SortOption.RELEVANCE: None,
    SortOption.PRICE_LOW_HIGH: SortDirective("price.amount", ASCENDING),
    SortOption.PRICE_HIGH_LOW: SortDirective("price.amount", DESCENDING),
    SortOption.NEWEST: SortDirective("publicationYear", DESCENDING),
    SortOption.RATING: SortDirective("rating", DESCENDING),
}


@dataclass(frozen=True)
class SearchRequest:
    """A fully resolved search request.

    ``key`` is the canonical encoded URL of the state that produced the
    request; callers use it to recognise responses that arrive after the
    state has moved on.
    """

    key: str
    query: str
    filters: Dict[str, List[str]] = field(default_factory=dict)
    sort: Optional[SortDirective] = None
    facets: Tuple[str, ...] = FACET_CODES
    page: int = 1
    page_size: int = 12

    def to_params(self) -> List[Tuple[str, str]]:
        """Flatten into collaborator query parameters."""
        params: List[Tuple[str, str]] = []
        if self.query:
            params.append(("q", self.query))
        for code, expressions in self.filters.items():
            params.extend((f"filter[{code}]", expr) for expr in expressions)
        if self.sort is not None:
            params.append(("sort", self.sort.to_param()))
        params.append(("facets", ",".join(self.facets)))
        params.append(("page", str(self.page)))
        params.append(("limit", str(self.page_size)))
        return params


def _number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def build_filters(state: FilterState) -> Dict[str, List[str]]:
    filters: Dict[str, List[str]] = {}
    if state.categories:
        filters[CATEGORY_FACET] = sorted(state.categories)
    price: List[str] = []
    if state.price_range.min is not None:
        price.append(f">={_number(state.price_range.min)}")
    if state.price_range.max is not None:
        price.append(f"<={_number(state.price_range.max)}")
    if price:
        filters[PRICE_FACET] = price
    if state.format:
        filters[FORMAT_FACET] = sorted(state.format)
    if state.rating is not None:
        filters[RATING_FACET] = [f">={_number(state.rating)}"]
    if state.publication_year:
        filters[YEAR_FACET] = [str(y) for y in sorted(state.publication_year)]
    return filters


def build_search_request(state: FilterState) -> SearchRequest:
    return SearchRequest(
        key=url_codec.encode(state),
        query=state.query,
        filters=build_filters(state),
        sort=SORT_DIRECTIVES[state.sort_by],
        facets=FACET_CODES,
        page=state.page,
        page_size=state.page_size,
    )
