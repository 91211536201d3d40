"""Storefront cart, checkout and payment capture."""

__version__ = "1.0.0"
