"""
Route definitions for the catalogue and search API.

Endpoints:
- GET  /api/books           : list books (category, text search, sort, pagination)
- GET  /api/books/{book_id} : get one book
- GET  /api/categories      : list categories
- GET  /api/search          : faceted search, query string parsed by the URL codec
- GET  /api/search/facets   : facet counts over the whole catalogue
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from typing_extensions import Literal

from ..config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, Settings
from ..deps import get_catalog, get_settings
from ..search import url_codec
from ..search.state import FilterState, SortOption
from .schemas import BookResponse, BooksPage, CategoriesResponse, FacetsResponse, SearchResponse
from .store import CatalogStore

logger = logging.getLogger(__name__)

SortField = Literal["relevance", "price-low-high", "price-high-low", "newest", "rating"]

router = APIRouter(prefix="/api", tags=["catalog"])


def _parse_limit(raw: Optional[str], default: int) -> int:
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        return default
    return min(max(1, value), MAX_PAGE_SIZE)


@router.get("/books", response_model=BooksPage)
def list_books(
    page: int = Query(default=1, ge=1, description="Current page (1-indexed)"),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Page size"),
    category: Optional[str] = Query(default=None, description="Category id; 'all' for no filter"),
    search: Optional[str] = Query(default=None, description="Text search (title/author)"),
    sort: SortField = Query(default="relevance", description="Sort order"),
    catalog: CatalogStore = Depends(get_catalog),
) -> BooksPage:
    """Return a page of books.

    The parameters are folded into a ``FilterState`` and evaluated by the
    same search engine as ``/api/search``.
    """
    categories = frozenset()
    if category and category.strip() and category.strip() != url_codec.ALL_CATEGORIES:
        categories = frozenset([category.strip()])
    state = FilterState(
        query=(search or "").strip(),
        categories=categories,
        sort_by=SortOption.parse(sort),
        page=page,
        page_size=limit,
    )
    outcome = catalog.search(state)
    return BooksPage(books=outcome.items, pagination=outcome.pagination)


@router.get("/books/{book_id}", response_model=BookResponse)
def get_book(book_id: str, catalog: CatalogStore = Depends(get_catalog)) -> BookResponse:
    book = catalog.get_book(book_id)
    if book is None:
        raise HTTPException(status_code=404, detail="Book not found")
    return BookResponse(book=book)


@router.get("/categories", response_model=CategoriesResponse)
def list_categories(catalog: CatalogStore = Depends(get_catalog)) -> CategoriesResponse:
    return CategoriesResponse(categories=catalog.categories())


@router.get("/search", response_model=SearchResponse)
def search(
    request: Request,
    catalog: CatalogStore = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
) -> SearchResponse:
    """Faceted search.

    Accepts ``q``, ``category``*, ``minPrice``, ``maxPrice``, ``format``*,
    ``rating``, ``year``*, ``sort``, ``page`` and ``limit`` (* repeatable).
    Values that fail to parse are ignored rather than rejected.
    """
    page_size = _parse_limit(request.query_params.get("limit"), settings.page_size)
    state = url_codec.decode(request.url.query, page_size=page_size)
    outcome = catalog.search(state)
    return SearchResponse(
        items=outcome.items,
        facets=outcome.facets,
        pagination=outcome.pagination,
        query=state.query,
        sort=state.sort_by.value,
    )


@router.get("/search/facets", response_model=FacetsResponse)
def search_facets(catalog: CatalogStore = Depends(get_catalog)) -> FacetsResponse:
    return FacetsResponse(facets=catalog.facets())
