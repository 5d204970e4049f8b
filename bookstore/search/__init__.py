"""
Search/filter synchronisation for the storefront.

This package keeps the free-text query, facet filters, sort order,
pagination and the address bar consistent with each other and with the
facet counts returned by the server. The server-side routes and the
client-side ``SearchContext`` share the same modules, so a URL means the
same thing on both sides.
"""

from .context import SearchContext  # noqa: F401
from .state import FilterState, PriceRange, SortOption, clear_all_filters, update_filter  # noqa: F401
