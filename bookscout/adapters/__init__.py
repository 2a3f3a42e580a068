"""Adapters package initialization."""
from bookscout.adapters.base import SourceStrategy
from bookscout.adapters.goodreads import GoodreadsAdapter
from bookscout.adapters.amazon import AmazonAdapter
from bookscout.adapters.audible import AudibleAdapter
from bookscout.adapters.google_books import GoogleBooksAdapter
from bookscout.adapters.google_books_api import GoogleBooksClient

__all__ = [
    "SourceStrategy",
    "GoodreadsAdapter",
    "AmazonAdapter",
    "AudibleAdapter",
    "GoogleBooksAdapter",
    "GoogleBooksClient",
]
