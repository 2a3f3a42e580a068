"""BookScout - book metadata extraction for Goodreads, Amazon, Audible and Google Books pages."""

__version__ = "1.0.0"
