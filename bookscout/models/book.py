"""
Canonical book record for BookScout.
Every source strategy produces this shape, regardless of how the page exposed the data.
"""
from typing import List, Optional, Tuple, Union
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator

from bookscout.parsing.normalize import (
    clean_text,
    normalize_asin,
    normalize_date,
    normalize_identifier,
    normalize_isbn,
    normalize_tags,
    parse_series_number,
    strip_html,
    strip_publisher,
)


class BookSource(str, Enum):
    """Known source providers."""
    GOODREADS = "goodreads"
    AMAZON = "amazon"
    AUDIBLE = "audible"
    GOOGLE_BOOKS = "google-books"


class BookIdentifiers(BaseModel):
    """Sparse identifier map. Any subset may be present."""
    model_config = ConfigDict(frozen=True)

    isbn10: Optional[str] = None
    isbn13: Optional[str] = None
    asin: Optional[str] = None
    amazon_id: Optional[str] = None
    goodreads_id: Optional[str] = None
    google_id: Optional[str] = None

    def has_isbn(self) -> bool:
        return bool(self.isbn10 or self.isbn13)

    def is_empty(self) -> bool:
        return not any(self.model_dump().values())

    def merged_with(self, other: "BookIdentifiers") -> "BookIdentifiers":
        """Fill gaps from ``other``; values already present win."""
        ours = self.model_dump()
        for key, value in other.model_dump().items():
            if not ours.get(key) and value:
                ours[key] = value
        return BookIdentifiers(**ours)

    def normalized(self) -> "BookIdentifiers":
        asin = normalize_asin(self.asin)
        return BookIdentifiers(
            isbn10=normalize_isbn(self.isbn10, 10),
            isbn13=normalize_isbn(self.isbn13, 13),
            asin=asin,
            amazon_id=normalize_asin(self.amazon_id),
            goodreads_id=normalize_identifier(self.goodreads_id),
            google_id=clean_text(self.google_id),
        )


class SeriesInfo(BaseModel):
    """Series name and positional number. Either may be missing."""
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    number: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.name or self.number)


class BookRecord(BaseModel):
    """
    Normalized book record - the single output of every source strategy.

    Immutable once built; enrichment produces a new record instead of
    mutating this one.
    """
    model_config = ConfigDict(frozen=True)

    # Required fields
    source: Union[BookSource, str]
    source_url: str
    title: str

    # Descriptive fields
    subtitle: Optional[str] = None
    authors: Tuple[str, ...] = ()
    narrators: Tuple[str, ...] = ()
    description: Optional[str] = None
    cover_image: Optional[str] = None

    # Catalog metadata
    identifiers: BookIdentifiers = Field(default_factory=BookIdentifiers)
    publisher: Optional[str] = None
    publish_date: Optional[str] = None
    page_count: Optional[int] = None
    series: Optional[SeriesInfo] = None
    tags: Tuple[str, ...] = ()

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        cleaned = clean_text(value)
        if not cleaned:
            raise ValueError("title must not be empty")
        return cleaned

    def get_present_fields(self) -> List[str]:
        """Return list of non-empty fields."""
        present = ["source", "source_url", "title"]
        for name in (
            "subtitle", "authors", "narrators", "description", "cover_image",
            "publisher", "publish_date", "page_count", "series", "tags",
        ):
            if getattr(self, name):
                present.append(name)
        if not self.identifiers.is_empty():
            present.append("identifiers")
        return present

    def get_missing_fields(self) -> List[str]:
        """Return list of empty optional fields."""
        all_optional = [
            "subtitle", "authors", "narrators", "description", "cover_image",
            "identifiers", "publisher", "publish_date", "page_count", "series", "tags",
        ]
        present = self.get_present_fields()
        return [f for f in all_optional if f not in present]


class BookDraft(BaseModel):
    """
    Mutable, all-optional working copy filled in by a strategy's tiers.

    Fields are resolved independently; :meth:`to_record` validates and
    normalizes once at the end.
    """
    title: Optional[str] = None
    subtitle: Optional[str] = None
    authors: List[str] = Field(default_factory=list)
    narrators: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    cover_image: Optional[str] = None
    identifiers: BookIdentifiers = Field(default_factory=BookIdentifiers)
    publisher: Optional[str] = None
    publish_date: Optional[str] = None
    page_count: Optional[int] = None
    series: Optional[SeriesInfo] = None
    tags: List[str] = Field(default_factory=list)

    def merge(self, other: "BookDraft") -> "BookDraft":
        """
        Return a new draft with gaps filled from ``other``.

        Values already on this draft win field by field; identifiers and
        series are merged per sub-field, lists only when this side is empty.
        """
        data = {}
        for name in ("title", "subtitle", "description", "cover_image",
                     "publisher", "publish_date", "page_count"):
            ours = getattr(self, name)
            data[name] = ours if ours not in (None, "") else getattr(other, name)
        for name in ("authors", "narrators", "tags"):
            ours = getattr(self, name)
            data[name] = list(ours) if ours else list(getattr(other, name))
        data["identifiers"] = self.identifiers.merged_with(other.identifiers)
        if self.series and other.series:
            data["series"] = SeriesInfo(
                name=self.series.name or other.series.name,
                number=self.series.number or other.series.number,
            )
        else:
            data["series"] = self.series or other.series
        return BookDraft(**data)

    def to_record(self, source: Union[BookSource, str], source_url: str) -> Optional[BookRecord]:
        """Normalize every field and build the record, or None without a title."""
        title = clean_text(self.title)
        if not title:
            return None

        series = None
        if self.series:
            candidate = SeriesInfo(
                name=clean_text(self.series.name),
                number=parse_series_number(self.series.number),
            )
            series = None if candidate.is_empty() else candidate

        return BookRecord(
            source=source,
            source_url=source_url,
            title=title,
            subtitle=clean_text(self.subtitle),
            authors=[name for name in (clean_text(n) for n in self.authors) if name],
            narrators=[name for name in (clean_text(n) for n in self.narrators) if name],
            description=strip_html(self.description),
            cover_image=clean_text(self.cover_image),
            identifiers=self.identifiers.normalized(),
            publisher=strip_publisher(self.publisher),
            publish_date=normalize_date(self.publish_date),
            page_count=self.page_count if self.page_count and self.page_count > 0 else None,
            series=series,
            tags=normalize_tags(self.tags),
        )
