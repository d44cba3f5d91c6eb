"""Vigor live events: real-time dashboard broadcaster for gym operations."""

__version__ = "0.1.0"
