"""
Data store for the catalogue API.

``SAMPLE_BOOKS`` and ``SAMPLE_CATEGORIES`` are loaded at import time from
the JSON files in ``bookstore/data``. ``CatalogStore`` decides where a
request is served from: the commerce API when one is configured, or the
sample data in development when the API is unavailable or empty. Both
sources then go through the same :func:`run_search` so results are
filtered, sorted and paginated identically, except that relevance keeps
the order the commerce API ranked its books in.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import ValidationError

from ..config import Settings
from ..search.query import SearchOutcome, facet_counts, run_search
from ..search.request_builder import build_search_request
from ..search.state import FilterState
from .commerce_service import CommerceClient, NotFound
from .schemas import Book, Category, Facet

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parents[1] / "data"
BOOKS_FILE = DATA_DIR / "sample_books.json"
CATEGORIES_FILE = DATA_DIR / "sample_categories.json"


class CatalogUnavailableError(Exception):
    """The commerce API failed and no fallback is allowed."""


def _load_json_list(path: Path) -> list:
    try:
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError) as exc:
        logger.error("Could not load sample data from %s: %s", path, exc)
        return []
    return raw if isinstance(raw, list) else []


def load_sample_books(path: Path = BOOKS_FILE) -> List[Book]:
    """Load the local sample books used for development and fallback."""
    books: List[Book] = []
    for entry in _load_json_list(path):
        try:
            books.append(Book.model_validate(entry))
        except ValidationError as exc:
            logger.warning("Skipping malformed sample book %r: %s", entry.get("id"), exc.errors()[:1])
    return books


def load_sample_categories(path: Path = CATEGORIES_FILE) -> List[Category]:
    categories: List[Category] = []
    for entry in _load_json_list(path):
        try:
            categories.append(Category.model_validate(entry))
        except ValidationError as exc:
            logger.warning("Skipping malformed sample category %r: %s", entry.get("id"), exc.errors()[:1])
    return categories


SAMPLE_BOOKS: List[Book] = load_sample_books()
SAMPLE_CATEGORIES: List[Category] = load_sample_categories()


class CatalogStore:
    def __init__(
        self,
        settings: Settings,
        client: Optional[CommerceClient] = None,
        sample_books: Optional[List[Book]] = None,
        sample_categories: Optional[List[Category]] = None,
    ) -> None:
        self.settings = settings
        self.client = client if client is not None else CommerceClient(settings)
        self.sample_books = list(SAMPLE_BOOKS if sample_books is None else sample_books)
        self.sample_categories = list(SAMPLE_CATEGORIES if sample_categories is None else sample_categories)

    @property
    def allow_fallback(self) -> bool:
        return not self.settings.is_production

    def _use_upstream(self) -> bool:
        return self.settings.upstream_enabled

    def _load(self, state: FilterState) -> Tuple[List[Book], bool]:
        """Return the books ``state`` is evaluated against, and whether they
        came ranked from the commerce API.

        Raises ``CatalogUnavailableError`` in production when the commerce
        API cannot be reached. An empty answer is not an error.
        """
        if not self._use_upstream():
            return self.sample_books, False
        books = self.client.search(build_search_request(state))
        if books is None:
            if not self.allow_fallback:
                raise CatalogUnavailableError("Commerce API is unavailable")
            logger.warning("Commerce API unavailable; serving sample data")
            return self.sample_books, False
        if not books and self.allow_fallback:
            logger.info("Commerce API returned no books; serving sample data")
            return self.sample_books, False
        return books, True

    def candidates(self, state: FilterState) -> List[Book]:
        return self._load(state)[0]

    def search(self, state: FilterState) -> SearchOutcome:
        books, ranked = self._load(state)
        return run_search(books, state, ranked=ranked)

    def facets(self) -> List[Facet]:
        """Facet counts over the whole catalogue, with nothing selected."""
        state = FilterState()
        return facet_counts(self.candidates(state), state)

    def get_book(self, book_id: str) -> Optional[Book]:
        if self._use_upstream():
            try:
                book = self.client.get_book(book_id)
            except NotFound:
                book = None
                if not self.allow_fallback:
                    return None
            if book is not None:
                return book
            if not self.allow_fallback:
                raise CatalogUnavailableError(f"Could not fetch book {book_id}")
        return next((b for b in self.sample_books if str(b.id) == str(book_id)), None)

    def categories(self) -> List[Category]:
        if self._use_upstream():
            categories = self.client.get_categories()
            if not self.allow_fallback:
                if categories is None:
                    raise CatalogUnavailableError("Could not fetch categories")
                return categories
            if categories:
                return categories
        return self.sample_categories
