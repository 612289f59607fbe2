"""Catalog manager: product and category catalog API."""

__version__ = "0.1.0"
