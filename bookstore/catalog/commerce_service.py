"""
Commerce API integration for the catalogue.

The commerce API is an opaque HTTP JSON service. This module exposes a
small client that:

* ``search()`` — fetches candidate books for a ``SearchRequest`` built
  by :mod:`bookstore.search.request_builder`.
* ``get_book()`` — retrieves a single book by its identifier.
* ``get_categories()`` — lists the shop's categories.

Failures (network errors, non-2xx statuses, malformed JSON) are logged
and reported as ``None`` so the store can decide whether to fall back to
the local sample data. Only the Python standard library is used for HTTP
requests. Responses are kept in small in-memory caches to avoid repeated
requests for the same queries.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from ..config import Settings
from ..search.request_builder import SearchRequest
from .schemas import Book, Category

logger = logging.getLogger(__name__)


class NotFound(Exception):
    """The commerce API answered 404 for a resource."""


def _http_get_json(url: str, headers: Dict[str, str], timeout: float) -> Optional[Any]:
    """Perform an HTTP GET and return parsed JSON or ``None`` on failure.

    A 404 raises :class:`NotFound` so callers can tell a missing resource
    apart from an unreachable service.
    """
    try:
        request = urllib.request.Request(url, headers=headers)
        with urllib.request.urlopen(request, timeout=timeout) as response:
            if response.status < 200 or response.status >= 300:
                logger.warning("Commerce API request to %s returned status %s", url, response.status)
                return None
            data = response.read().decode("utf-8", errors="ignore")
            return json.loads(data)
    except urllib.error.HTTPError as exc:
        if exc.code == 404:
            raise NotFound(url) from exc
        logger.error("Commerce API request to %s failed with status %s", url, exc.code)
        return None
    except (urllib.error.URLError, OSError, ValueError) as exc:
        logger.error("Error fetching %s: %s", url, exc)
        return None


def _parse_books(raw: Any) -> List[Book]:
    books: List[Book] = []
    for entry in raw or []:
        try:
            books.append(Book.model_validate(entry))
        except ValidationError as exc:
            logger.warning("Skipping malformed book from commerce API: %s", exc.errors()[:1])
    return books


def _total_count(data: Dict[str, Any]) -> Optional[int]:
    pagination = data.get("pagination")
    raw = pagination.get("totalCount") if isinstance(pagination, dict) else data.get("totalCount")
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


class CommerceClient:
    def __init__(self, settings: Settings) -> None:
        self.base_url = settings.commerce_api_url.rstrip("/")
        self.api_key = settings.commerce_api_key
        self.timeout = settings.commerce_timeout
        self.fetch_limit = settings.upstream_fetch_limit
        self._search_cache: Dict[str, List[Book]] = {}
        self._book_cache: Dict[str, Book] = {}
        self._categories: Optional[List[Category]] = None

    @property
    def headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _url(self, path: str, params: Sequence[Tuple[str, str]] = ()) -> str:
        url = f"{self.base_url}/{path.lstrip('/')}"
        if params:
            url = f"{url}?{urllib.parse.urlencode(list(params))}"
        return url

    def _get(self, path: str, params: Sequence[Tuple[str, str]] = ()) -> Optional[Any]:
        return _http_get_json(self._url(path, params), self.headers, self.timeout)

    def search(self, request: SearchRequest) -> Optional[List[Book]]:
        """Fetch every candidate book matching ``request``.

        The API is paged through ``fetch_limit`` books at a time until its
        reported ``totalCount`` is covered; filtering, sorting, pagination
        and facet counts are then done locally by
        :func:`bookstore.search.query.run_search`. Books keep the order the
        API ranked them in. Returns ``None`` when the API is unreachable.
        """
        params = [(k, v) for k, v in request.to_params() if k not in ("page", "limit")]
        cache_key = urllib.parse.urlencode(params)
        if cache_key in self._search_cache:
            return self._search_cache[cache_key]

        books: List[Book] = []
        page = 1
        while True:
            page_params = params + [("page", str(page)), ("limit", str(self.fetch_limit))]
            try:
                data = self._get("/books", page_params)
            except NotFound:
                data = None
            if not isinstance(data, dict):
                return None
            raw = data.get("books") or data.get("items") or []
            books.extend(_parse_books(raw))
            total = _total_count(data)
            if not raw or len(raw) < self.fetch_limit:
                break
            if total is not None and page * self.fetch_limit >= total:
                break
            page += 1

        logger.debug("Fetched %d books from commerce API in %d page(s)", len(books), page)
        self._search_cache[cache_key] = books
        return books

    def get_book(self, book_id: str) -> Optional[Book]:
        """Return a book by id, or ``None`` if the API is unreachable.

        Raises :class:`NotFound` when the API reports the book as missing.
        """
        if not book_id:
            raise NotFound(book_id)
        if book_id in self._book_cache:
            return self._book_cache[book_id]
        data = self._get(f"/books/{urllib.parse.quote(book_id)}")
        if not isinstance(data, dict) or "book" not in data:
            return None
        try:
            book = Book.model_validate(data["book"])
        except ValidationError as exc:
            logger.warning("Malformed book %s from commerce API: %s", book_id, exc.errors()[:1])
            return None
        self._book_cache[book_id] = book
        return book

    def get_categories(self) -> Optional[List[Category]]:
        if self._categories is not None:
            return self._categories
        try:
            data = self._get("/categories")
        except NotFound:
            data = None
        if not isinstance(data, dict):
            return None
        categories: List[Category] = []
        for entry in data.get("categories") or []:
            try:
                categories.append(Category.model_validate(entry))
            except ValidationError as exc:
                logger.warning("Skipping malformed category: %s", exc.errors()[:1])
        self._categories = categories
        return categories
