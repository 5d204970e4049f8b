from __future__ import annotations

import io
import json
import urllib.error
import urllib.parse
from typing import Any, Dict, List

import pytest

from bookstore.catalog import commerce_service
from bookstore.catalog.commerce_service import CommerceClient, NotFound
from bookstore.config import Settings
from bookstore.search.request_builder import build_search_request
from bookstore.search.state import FilterState, SortOption


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="production",
        commerce_api_url="https://commerce.test/v1/",
        commerce_api_key="k3y",
        upstream_fetch_limit=50,
    )


class RecordedCalls(list):
    """Calls made to the fake HTTP layer, plus the canned responses by URL prefix."""

    def __init__(self) -> None:
        super().__init__()
        self.responses: Dict[str, Any] = {}


@pytest.fixture
def calls(monkeypatch: pytest.MonkeyPatch) -> RecordedCalls:
    recorded = RecordedCalls()
    responses = recorded.responses

    def fake_get(url: str, headers: Dict[str, str], timeout: float) -> Any:
        recorded.append({"url": url, "headers": headers, "timeout": timeout})
        for prefix, value in responses.items():
            if url.startswith(prefix):
                if isinstance(value, Exception):
                    raise value
                return value
        return None

    monkeypatch.setattr(commerce_service, "_http_get_json", fake_get)
    return recorded


def _book_payload(book_id: str) -> Dict[str, Any]:
    return {
        "id": book_id,
        "title": f"Book {book_id}",
        "author": "Someone",
        "price": {"amount": 9.5, "currency": "USD"},
        "attributes": {"format": "Ebook", "rating": 3.5},
    }


class TestSearch:
    def test_builds_url_from_request(self, settings: Settings, calls) -> None:
        calls.responses["https://commerce.test/v1/books"] = {"books": [_book_payload("a")]}
        client = CommerceClient(settings)
        state = FilterState(query="dune", categories=frozenset({"fiction"}), sort_by=SortOption.NEWEST, page=3)

        books = client.search(build_search_request(state))

        assert [b.id for b in books] == ["a"]
        url = calls[0]["url"]
        assert url.startswith("https://commerce.test/v1/books?")
        assert "q=dune" in url
        assert "filter%5Bcategory%5D=fiction" in url
        assert "sort=publicationYear%3Adesc" in url
        assert "page=1" in url and "limit=50" in url
        assert calls[0]["headers"]["Authorization"] == "Bearer k3y"

    def test_results_are_cached(self, settings: Settings, calls) -> None:
        calls.responses["https://commerce.test/v1/books"] = {"books": []}
        client = CommerceClient(settings)
        request = build_search_request(FilterState(query="x"))
        assert client.search(request) == []
        assert client.search(request) == []
        assert len(calls) == 1

    def test_failure_is_none(self, settings: Settings, calls) -> None:
        assert CommerceClient(settings).search(build_search_request(FilterState())) is None

    def test_malformed_books_are_skipped(self, settings: Settings, calls) -> None:
        calls.responses["https://commerce.test/v1/books"] = {"books": [{"id": "bad"}, _book_payload("ok")]}
        books = CommerceClient(settings).search(build_search_request(FilterState()))
        assert [b.id for b in books] == ["ok"]


class TestGetBook:
    def test_found(self, settings: Settings, calls) -> None:
        calls.responses["https://commerce.test/v1/books/b1"] = {"book": _book_payload("b1")}
        book = CommerceClient(settings).get_book("b1")
        assert book.title == "Book b1"
        assert book.attributes.rating == 3.5

    def test_not_found_raises(self, settings: Settings, calls) -> None:
        calls.responses["https://commerce.test/v1/books/zz"] = NotFound("zz")
        with pytest.raises(NotFound):
            CommerceClient(settings).get_book("zz")

    def test_unreachable_is_none(self, settings: Settings, calls) -> None:
        assert CommerceClient(settings).get_book("b1") is None


class TestCategories:
    def test_parses_categories(self, settings: Settings, calls) -> None:
        calls.responses["https://commerce.test/v1/categories"] = {
            "categories": [{"id": "poetry", "name": "Poetry", "slug": "poetry"}, {"bogus": True}]
        }
        categories = CommerceClient(settings).get_categories()
        assert [c.id for c in categories] == ["poetry"]


class TestHttpGetJson:
    def test_404_raises_not_found(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_urlopen(request, timeout):
            raise urllib.error.HTTPError(request.full_url, 404, "Not Found", {}, io.BytesIO(b""))

        monkeypatch.setattr(commerce_service.urllib.request, "urlopen", fake_urlopen)
        with pytest.raises(NotFound):
            commerce_service._http_get_json("https://commerce.test/v1/books/x", {}, 1.0)

    def test_server_error_is_none(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_urlopen(request, timeout):
            raise urllib.error.HTTPError(request.full_url, 503, "Unavailable", {}, io.BytesIO(b""))

        monkeypatch.setattr(commerce_service.urllib.request, "urlopen", fake_urlopen)
        assert commerce_service._http_get_json("https://commerce.test/v1/books", {}, 1.0) is None

    def test_network_error_is_none(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_urlopen(request, timeout):
            raise urllib.error.URLError("connection refused")

        monkeypatch.setattr(commerce_service.urllib.request, "urlopen", fake_urlopen)
        assert commerce_service._http_get_json("https://commerce.test/v1/books", {}, 1.0) is None

    def test_decodes_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        class FakeResponse(io.BytesIO):
            status = 200

        def fake_urlopen(request, timeout):
            assert request.get_header("Accept") == "application/json"
            return FakeResponse(json.dumps({"ok": True}).encode("utf-8"))

        monkeypatch.setattr(commerce_service.urllib.request, "urlopen", fake_urlopen)
        data = commerce_service._http_get_json(
            "https://commerce.test/v1/books", {"Accept": "application/json"}, 1.0
        )
        assert data == {"ok": True}


def _paged_api(payloads: List[Dict[str, Any]], seen: List[Dict[str, str]]):
    def fake_get(url: str, headers: Dict[str, str], timeout: float) -> Any:
        query = dict(urllib.parse.parse_qsl(urllib.parse.urlsplit(url).query))
        seen.append(query)
        page, limit = int(query["page"]), int(query["limit"])
        start = (page - 1) * limit
        return {"books": payloads[start:start + limit], "pagination": {"totalCount": len(payloads)}}

    return fake_get


class TestSearchPaging:
    def test_pages_until_total_count_is_covered(self, monkeypatch: pytest.MonkeyPatch) -> None:
        payloads = [_book_payload(str(i)) for i in range(30)]
        seen: List[Dict[str, str]] = []
        monkeypatch.setattr(commerce_service, "_http_get_json", _paged_api(payloads, seen))
        settings = Settings(commerce_api_key="k", upstream_fetch_limit=10)

        books = CommerceClient(settings).search(build_search_request(FilterState(page=2)))

        assert [b.id for b in books] == [str(i) for i in range(30)]
        assert [(q["page"], q["limit"]) for q in seen] == [("1", "10"), ("2", "10"), ("3", "10")]

    def test_exact_multiple_stops_at_total(self, monkeypatch: pytest.MonkeyPatch) -> None:
        payloads = [_book_payload(str(i)) for i in range(20)]
        seen: List[Dict[str, str]] = []
        monkeypatch.setattr(commerce_service, "_http_get_json", _paged_api(payloads, seen))
        books = CommerceClient(Settings(commerce_api_key="k", upstream_fetch_limit=10)).search(
            build_search_request(FilterState())
        )
        assert len(books) == 20
        assert len(seen) == 2

    def test_failed_later_page_is_none(self, settings: Settings, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: List[str] = []

        def flaky(url: str, headers: Dict[str, str], timeout: float) -> Any:
            calls.append(url)
            if "page=1" in url:
                return {"books": [_book_payload(str(i)) for i in range(50)], "pagination": {"totalCount": 80}}
            return None

        monkeypatch.setattr(commerce_service, "_http_get_json", flaky)
        assert CommerceClient(settings).search(build_search_request(FilterState())) is None
        assert len(calls) == 2
