"""
Catalog package for the storefront API.

This package contains the schemas, the commerce API client and the route
definitions for browsing and searching the book catalogue. Books come from
the commerce API when one is configured. Outside production the local
sample dataset in ``bookstore/data`` stands in whenever the API fails or
returns nothing.
"""
