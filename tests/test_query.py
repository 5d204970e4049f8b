from __future__ import annotations

from typing import List

from bookstore.catalog.schemas import Book
from bookstore.search.facets import find_facet, parse_price_bucket
from bookstore.search.query import facet_counts, filter_books, matches, paginate, run_search, sort_books
from bookstore.search.state import FilterState, PriceRange, SortOption


def _ids(books: List[Book]) -> List[str]:
    return [b.id for b in books]


class TestMatches:
    def test_text_matches_title_or_author(self, books: List[Book]) -> None:
        assert _ids(filter_books(books, FilterState(query="HABITS"))) == ["2"]
        assert _ids(filter_books(books, FilterState(query="haig"))) == ["5"]

    def test_categories_are_or_combined(self, books: List[Book]) -> None:
        state = FilterState(categories=frozenset({"mystery", "biography"}))
        assert _ids(filter_books(books, state)) == ["1", "3"]

    def test_dimensions_are_and_combined(self, books: List[Book]) -> None:
        state = FilterState(categories=frozenset({"fiction"}), format=frozenset({"paperback"}))
        assert _ids(filter_books(books, state)) == ["5"]

    def test_price_bounds_are_inclusive(self, books: List[Book]) -> None:
        state = FilterState(price_range=PriceRange(min=14.99, max=17.99))
        assert _ids(filter_books(books, state)) == ["1", "3", "4"]

    def test_rating_threshold(self, books: List[Book]) -> None:
        assert _ids(filter_books(books, FilterState(rating=4.5))) == ["1", "2", "4", "6"]

    def test_rating_zero_still_requires_a_rating(self, books: List[Book]) -> None:
        unrated = books[0].model_copy(update={"attributes": books[0].attributes.model_copy(update={"rating": None})})
        assert not matches(unrated, FilterState(rating=0.0))
        assert matches(unrated, FilterState())

    def test_years(self, books: List[Book]) -> None:
        state = FilterState(publication_year=frozenset({2020, 2021}))
        assert _ids(filter_books(books, state)) == ["5", "6"]

    def test_min_above_max_is_empty(self, books: List[Book]) -> None:
        outcome = run_search(books, FilterState(price_range=PriceRange(min=20, max=10)))
        assert outcome.items == []
        assert outcome.pagination.total_count == 0
        assert outcome.pagination.total_pages == 0

    def test_skip_ignores_one_dimension(self, books: List[Book]) -> None:
        state = FilterState(categories=frozenset({"mystery"}))
        assert all(matches(b, state, skip="category") for b in books)


class TestSortBooks:
    def test_price_ascending_and_descending(self, books: List[Book]) -> None:
        assert _ids(sort_books(books, SortOption.PRICE_LOW_HIGH)) == ["5", "3", "1", "4", "2", "6"]
        assert _ids(sort_books(books, SortOption.PRICE_HIGH_LOW)) == ["6", "2", "4", "1", "3", "5"]

    def test_newest_is_stable_for_equal_years(self, books: List[Book]) -> None:
        assert _ids(sort_books(books, SortOption.NEWEST)) == ["6", "5", "1", "2", "3", "4"]

    def test_rating(self, books: List[Book]) -> None:
        assert _ids(sort_books(books, SortOption.RATING)) == ["2", "1", "4", "6", "3", "5"]

    def test_relevance_puts_best_sellers_first(self, books: List[Book]) -> None:
        assert _ids(sort_books(books, SortOption.RELEVANCE)) == ["2", "1", "4", "3", "5", "6"]

    def test_relevance_can_keep_incoming_order(self, books: List[Book]) -> None:
        reversed_books = list(reversed(books))
        assert _ids(sort_books(reversed_books, SortOption.RELEVANCE, keep_order=True)) == ["6", "5", "4", "3", "2", "1"]
        assert _ids(sort_books(reversed_books, SortOption.PRICE_LOW_HIGH, keep_order=True)) == [
            "5", "3", "1", "4", "2", "6"
        ]


class TestPaginate:
    def test_slices_requested_page(self, books: List[Book]) -> None:
        items, info = paginate(books, page=2, page_size=4)
        assert _ids(items) == ["5", "6"]
        assert (info.total_count, info.total_pages, info.current_page) == (6, 2, 2)

    def test_page_past_the_end_is_clamped_for_slicing(self, books: List[Book]) -> None:
        items, info = paginate(books, page=9, page_size=4)
        assert _ids(items) == ["5", "6"]
        assert info.current_page == 9


class TestFacetCounts:
    def test_counts_ignore_own_dimension(self, books: List[Book]) -> None:
        state = FilterState(categories=frozenset({"fiction"}))
        facets = facet_counts(books, state)
        category = find_facet(facets, "category")
        counts = {v.value: v.count for v in category.values}
        assert counts["fiction"] == 3
        assert counts["non-fiction"] == 2
        assert counts["mystery"] == 1
        assert [v.value for v in category.values if v.selected] == ["fiction"]

        fmt = find_facet(facets, "attributes.format")
        assert {v.value: v.count for v in fmt.values} == {"hardcover": 2, "paperback": 1}

    def test_price_and_rating_buckets(self, books: List[Book]) -> None:
        facets = facet_counts(books, FilterState())
        price = find_facet(facets, "price.amount")
        assert [(v.value, v.count) for v in price.values] == [("10-20", 4), ("20-30", 2)]
        rating = find_facet(facets, "attributes.rating")
        assert [(v.value, v.count) for v in rating.values] == [("4", 6), ("3", 6), ("2", 6), ("1", 6)]

    def test_bucket_count_agrees_with_bucket_filter(self, books: List[Book]) -> None:
        twenty = books[0].model_copy(update={"price": books[0].price.model_copy(update={"amount": 20.0})})
        price = find_facet(facet_counts([twenty], FilterState()), "price.amount")
        counts = {v.value: v.count for v in price.values}

        low, high = parse_price_bucket("10-20")
        selected = filter_books([twenty], FilterState(price_range=PriceRange(min=low, max=high)))
        assert counts["10-20"] == len(selected) == 1

    def test_years_descending(self, books: List[Book]) -> None:
        year = find_facet(facet_counts(books, FilterState()), "attributes.publicationYear")
        assert [v.value for v in year.values] == ["2021", "2020", "2019", "2018"]

    def test_empty_dimensions_are_omitted(self) -> None:
        assert facet_counts([], FilterState()) == []


class TestRunSearch:
    def test_fiction_by_price(self, books: List[Book]) -> None:
        state = FilterState(categories=frozenset({"fiction"}), sort_by=SortOption.PRICE_LOW_HIGH)
        outcome = run_search(books, state)
        assert _ids(outcome.items) == ["5", "4", "6"]
        assert outcome.pagination.total_count == 3
        assert outcome.pagination.total_pages == 1

    def test_ranked_input_keeps_its_relevance_order(self, books: List[Book]) -> None:
        ranked = list(reversed(books))
        outcome = run_search(ranked, FilterState(page_size=3), ranked=True)
        assert _ids(outcome.items) == ["6", "5", "4"]
        assert _ids(run_search(ranked, FilterState(page_size=3)).items) == ["2", "1", "4"]
