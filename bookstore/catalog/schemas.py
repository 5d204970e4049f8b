"""
Pydantic schema definitions for the catalog module.

The models mirror the JSON shapes returned by the commerce API, so a
book fetched upstream can be validated directly into a ``Book`` and sent
back to clients unchanged. Python attributes use snake_case while the wire
format stays camelCase through field aliases.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing_extensions import Literal


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Price(CamelModel):
    amount: float
    currency: str = "USD"
    compare_at_amount: Optional[float] = None


class BookImage(CamelModel):
    url: str
    alt_text: Optional[str] = None


class CategoryRef(CamelModel):
    id: str
    name: str


class BookAttributes(CamelModel):
    """Optional merchandising attributes of a book.

    ``rating`` is ``None`` when the provider has no rating, which keeps it
    distinct from a genuine rating of 0.
    """

    format: Optional[str] = None
    publication_year: Optional[int] = None
    is_best_seller: bool = False
    is_new_release: bool = False
    rating: Optional[float] = None
    review_count: int = 0


InventoryStatus = Literal["IN_STOCK", "LOW_STOCK", "OUT_OF_STOCK"]


class Book(CamelModel):
    """A single book as exposed by the commerce API."""

    id: str
    sku: str = ""
    title: str
    author: str
    description: str = ""
    price: Price
    images: List[BookImage] = Field(default_factory=list)
    categories: List[CategoryRef] = Field(default_factory=list)
    attributes: BookAttributes = Field(default_factory=BookAttributes)
    inventory_status: InventoryStatus = "IN_STOCK"

    @property
    def image_url(self) -> str:
        return self.images[0].url if self.images else ""


class Category(CamelModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    parent_id: Optional[str] = None
    image: Optional[str] = None


class Pagination(CamelModel):
    """Pagination metadata; ``total_pages`` is ``ceil(total_count / page_size)``."""

    total_count: int
    page_size: int
    current_page: int
    total_pages: int


FacetType = Literal["term"]


class FacetValue(CamelModel):
    value: str
    name: str
    count: int
    selected: bool = False


class Facet(CamelModel):
    """Per-value match counts for one facet dimension."""

    code: str
    name: str
    type: FacetType = "term"
    values: List[FacetValue] = Field(default_factory=list)


class BooksPage(CamelModel):
    books: List[Book]
    pagination: Pagination


class BookResponse(CamelModel):
    book: Book


class CategoriesResponse(CamelModel):
    categories: List[Category]


class SearchResponse(CamelModel):
    items: List[Book]
    facets: List[Facet]
    pagination: Pagination
    query: str = ""
    sort: str = "relevance"


class FacetsResponse(CamelModel):
    facets: List[Facet]
