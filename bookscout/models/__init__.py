"""Models package initialization."""
from bookscout.models.book import BookDraft, BookIdentifiers, BookRecord, BookSource, SeriesInfo

__all__ = ["BookDraft", "BookIdentifiers", "BookRecord", "BookSource", "SeriesInfo"]
