"""
Client-side search context.

A ``SearchContext`` owns the canonical ``FilterState`` for one view and
is constructed explicitly by whoever renders that view; there is no
module-level instance. Each outgoing request is tagged with the encoded
URL of the state that produced it, and a response whose tag no longer
matches the current state is discarded instead of being rendered.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable, List, Optional

from ..catalog.schemas import Book, Facet, Pagination, SearchResponse
from . import url_codec
from .facets import merge_facets
from .pagination import PageControls, page_controls
from .request_builder import SearchRequest, build_search_request
from .state import FilterState, SortOption, clear_all_filters, update_filter

logger = logging.getLogger(__name__)


class SearchContext:
    def __init__(self, state: Optional[FilterState] = None) -> None:
        self.state: FilterState = state or FilterState()
        self.items: List[Book] = []
        self.facets: List[Facet] = []
        self.pagination: Optional[Pagination] = None
        self.controls: Optional[PageControls] = None
        self.error: Optional[str] = None
        self._in_flight: Optional[str] = None

    @classmethod
    def from_url(cls, query_string: str) -> "SearchContext":
        return cls(url_codec.decode(query_string))

    # -- state changes -----------------------------------------------------

    @property
    def key(self) -> str:
        return url_codec.encode(self.state)

    @property
    def url(self) -> str:
        return self.key

    @property
    def loading(self) -> bool:
        return self._in_flight is not None and self._in_flight == self.key

    def navigate(self, query_string: str) -> FilterState:
        self.state = url_codec.decode(query_string, page_size=self.state.page_size)
        return self.state

    def update_filter(self, key: str, value: Any) -> FilterState:
        """Replace one field; any change other than the page restarts at page 1."""
        state = update_filter(self.state, key, value)
        if key != "page":
            state = dataclasses.replace(state, page=1)
        self.state = state
        return state

    def set_query(self, query: str) -> FilterState:
        return self.update_filter("query", query)

    def set_sort(self, sort_by: SortOption) -> FilterState:
        return self.update_filter("sort_by", sort_by)

    def go_to_page(self, page: int) -> FilterState:
        return self.update_filter("page", page)

    def clear_all_filters(self) -> FilterState:
        """Drop every facet constraint but keep the free-text query."""
        self.state = dataclasses.replace(
            clear_all_filters(),
            query=self.state.query,
            page_size=self.state.page_size,
        )
        return self.state

    # -- request lifecycle -------------------------------------------------

    def begin_search(self) -> SearchRequest:
        request = build_search_request(self.state)
        self._in_flight = request.key
        self.error = None
        return request

    def is_current(self, request: SearchRequest) -> bool:
        return request.key == self.key

    def receive(self, request: SearchRequest, response: SearchResponse) -> bool:
        """Apply ``response`` if it still answers the current state.

        Returns False, leaving the rendered results untouched, when the
        state has changed since ``request`` was issued.
        """
        if not self.is_current(request):
            logger.debug("Discarding stale search response for %r (current %r)", request.key, self.key)
            return False
        self.items = list(response.items)
        self.facets = merge_facets(response.facets, self.state)
        self.pagination = response.pagination
        self.controls = page_controls(response.pagination)
        self.error = None
        if self._in_flight == request.key:
            self._in_flight = None
        return True

    def fail(self, request: SearchRequest, error: Exception) -> bool:
        if not self.is_current(request):
            logger.debug("Ignoring error from stale search %r: %s", request.key, error)
            return False
        logger.warning("Search %r failed: %s", request.key, error)
        self.error = str(error) or error.__class__.__name__
        if self._in_flight == request.key:
            self._in_flight = None
        return True

    def search(self, fetch: Callable[[SearchRequest], SearchResponse]) -> bool:
        """Issue the current search through ``fetch`` and apply the answer."""
        request = self.begin_search()
        try:
            response = fetch(request)
        except Exception as exc:
            self.fail(request, exc)
            raise
        return self.receive(request, response)
