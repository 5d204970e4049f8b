"""
Page-strip computation for paginated result lists.

Everything here is derived from the total count and page size alone, so
it does not matter whether results came from the commerce API or from the
local fallback dataset.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Union

from ..catalog.schemas import Pagination


class _Ellipsis:
    """Marker for a gap in the page strip."""

    _instance: Optional["_Ellipsis"] = None

    def __new__(cls) -> "_Ellipsis":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ELLIPSIS"


ELLIPSIS = _Ellipsis()

PageEntry = Union[int, _Ellipsis]


def total_pages_for(total_count: int, page_size: int) -> int:
    if total_count <= 0 or page_size <= 0:
        return 0
    return (total_count + page_size - 1) // page_size


def clamp_page(page: int, total_pages: int) -> int:
    return min(max(1, page), max(1, total_pages))


def page_info(total_count: int, page_size: int, current_page: int) -> Pagination:
    return Pagination(
        total_count=total_count,
        page_size=page_size,
        current_page=current_page,
        total_pages=total_pages_for(total_count, page_size),
    )


def compute_window(current_page: int, total_pages: int, max_visible: int = 5) -> List[PageEntry]:
    """Return the ordered page strip for ``current_page``.

    With few pages every page is listed. Otherwise the first and last pages
    are always present, with a window of up to three pages around the
    current one; the window is pinned to 2..3 near the start and to
    ``total_pages - 2 .. total_pages - 1`` near the end. An ``ELLIPSIS``
    marks any gap wider than one page. The caller is expected to have
    clamped ``current_page`` already.
    """
    if total_pages <= max_visible:
        return list(range(1, total_pages + 1))

    if current_page <= 2:
        start, end = 2, 3
    elif current_page >= total_pages - 1:
        start, end = total_pages - 2, total_pages - 1
    else:
        start, end = current_page - 1, current_page + 1

    window: List[PageEntry] = [1]
    if start > 2:
        window.append(ELLIPSIS)
    window.extend(range(start, end + 1))
    if end < total_pages - 1:
        window.append(ELLIPSIS)
    window.append(total_pages)
    return window


@dataclass(frozen=True)
class PageControls:
    has_prev: bool
    has_next: bool
    prev_page: Optional[int]
    next_page: Optional[int]
    window: List[PageEntry]


def page_controls(info: Pagination, max_visible: int = 5) -> PageControls:
    """Derive previous/next/jump affordances from pagination metadata."""
    current = clamp_page(info.current_page, info.total_pages)
    has_prev = current > 1
    has_next = current < info.total_pages
    return PageControls(
        has_prev=has_prev,
        has_next=has_next,
        prev_page=current - 1 if has_prev else None,
        next_page=current + 1 if has_next else None,
        window=compute_window(current, info.total_pages, max_visible),
    )
