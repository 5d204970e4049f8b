"""
Merge server facet counts with the current filter state.

:func:`merge_facets` is a pure projection: it recomputes the ``selected``
flag of every facet value against a ``FilterState`` and returns new facet
objects. It never writes back into the state, so values the user picked
but has not yet applied are left alone.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..catalog.schemas import Facet, FacetValue
from .request_builder import CATEGORY_FACET, FORMAT_FACET, PRICE_FACET, RATING_FACET, YEAR_FACET
from .state import FilterState, PriceRange

logger = logging.getLogger(__name__)

RATING_THRESHOLDS: Tuple[int, ...] = (4, 3, 2, 1)


@dataclass(frozen=True)
class PriceBucket:
    low: float
    high: Optional[float]

    @property
    def value(self) -> str:
        if self.high is None:
            return f"{int(self.low)}+"
        return f"{int(self.low)}-{int(self.high)}"

    @property
    def name(self) -> str:
        if self.high is None:
            return f"Over ${int(self.low)}"
        if self.low == 0:
            return f"Under ${int(self.high)}"
        return f"${int(self.low)} - ${int(self.high)}"

    def holds(self, amount: float) -> bool:
        """Inclusive at both ends, like the price filter the bucket selects."""
        if amount < self.low:
            return False
        return self.high is None or amount <= self.high


PRICE_BUCKETS: Tuple[PriceBucket, ...] = (
    PriceBucket(0, 10),
    PriceBucket(10, 20),
    PriceBucket(20, 30),
    PriceBucket(30, None),
)


def parse_price_bucket(value: str) -> Optional[Tuple[float, float]]:
    """Parse ``"lo-hi"`` or ``"lo+"`` into inclusive bounds; ``None`` if malformed."""
    raw = (value or "").strip()
    try:
        if raw.endswith("+"):
            return float(raw[:-1]), math.inf
        low, high = raw.split("-", 1)
        return float(low), float(high)
    except ValueError:
        return None


def _price_selected(value: str, price_range: PriceRange) -> bool:
    if not price_range.is_set():
        return False
    bounds = parse_price_bucket(value)
    if bounds is None:
        return False
    low, high = bounds
    lower_ok = price_range.min is None or low >= price_range.min
    upper_ok = price_range.max is None or high <= price_range.max
    return lower_ok and upper_ok


def _rating_selected(value: str, rating: Optional[float]) -> bool:
    if rating is None:
        return False
    try:
        return float(value) == rating
    except ValueError:
        return False


def _year_selected(value: str, years) -> bool:
    try:
        return int(value) in years
    except ValueError:
        return False


_SELECTORS: Dict[str, Callable[[str, FilterState], bool]] = {
    CATEGORY_FACET: lambda v, s: v in s.categories,
    FORMAT_FACET: lambda v, s: v.lower() in {f.lower() for f in s.format},
    YEAR_FACET: lambda v, s: _year_selected(v, s.publication_year),
    RATING_FACET: lambda v, s: _rating_selected(v, s.rating),
    PRICE_FACET: lambda v, s: _price_selected(v, s.price_range),
}


def is_selected(code: str, value: str, state: FilterState) -> bool:
    selector = _SELECTORS.get(code)
    if selector is None:
        return False
    return selector(value, state)


def merge_facets(facets: Optional[Sequence[Facet]], state: FilterState) -> List[Facet]:
    merged: List[Facet] = []
    for facet in facets or []:
        if facet.code not in _SELECTORS:
            logger.debug("Unknown facet %s; values left unselected", facet.code)
        values = [
            value.model_copy(update={"selected": is_selected(facet.code, value.value, state)})
            for value in facet.values
        ]
        merged.append(facet.model_copy(update={"values": values}))
    return merged


def find_facet(facets: Sequence[Facet], code: str) -> Optional[Facet]:
    return next((f for f in facets if f.code == code), None)


def selected_values(facet: Facet) -> List[FacetValue]:
    return [v for v in facet.values if v.selected]
