"""Unit tests for the canonical record and its draft."""

import pytest
from pydantic import ValidationError

from bookscout.models.book import BookDraft, BookIdentifiers, BookRecord, BookSource, SeriesInfo


class TestBookRecord:
    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError):
            BookRecord(source=BookSource.AMAZON, source_url="https://www.amazon.com/dp/X", title="   ")

    def test_opaque_source_allowed(self):
        record = BookRecord(source="kobo", source_url="https://example.com", title="T")
        assert record.source == "kobo"

    def test_list_fields_cannot_be_changed(self):
        record = BookRecord(source=BookSource.AMAZON, source_url="https://x", title="T", authors=["A"], tags=["Fantasy"])
        assert record.authors == ("A",)
        with pytest.raises(AttributeError):
            record.authors.append("Injected")
        with pytest.raises(AttributeError):
            record.tags.append("Injected")
        assert record.authors == ("A",)

    def test_present_and_missing_fields(self):
        record = BookRecord(
            source=BookSource.GOODREADS,
            source_url="https://www.goodreads.com/book/show/1",
            title="T",
            authors=["A"],
            identifiers=BookIdentifiers(goodreads_id="1"),
        )
        assert "authors" in record.get_present_fields()
        assert "identifiers" in record.get_present_fields()
        assert "series" in record.get_missing_fields()
        assert "title" not in record.get_missing_fields()


class TestDraftMerge:
    def test_self_wins_per_field(self):
        page = BookDraft(title="Page", identifiers=BookIdentifiers(google_id="vol"))
        api = BookDraft(
            title="API",
            publisher="API Press",
            authors=["API Author"],
            identifiers=BookIdentifiers(isbn13="9781111111111", google_id="other"),
        )
        merged = page.merge(api)

        assert merged.title == "Page"
        assert merged.publisher == "API Press"
        assert merged.authors == ["API Author"]
        assert merged.identifiers.google_id == "vol"
        assert merged.identifiers.isbn13 == "9781111111111"

    def test_missing_title_taken_from_other(self):
        merged = BookDraft().merge(BookDraft(title="API"))
        assert merged.title == "API"

    def test_series_merged_per_sub_field(self):
        merged = BookDraft(series=SeriesInfo(name="Saga")).merge(BookDraft(series=SeriesInfo(number="2")))
        assert merged.series == SeriesInfo(name="Saga", number="2")

    def test_merge_does_not_mutate(self):
        page = BookDraft(title="Page")
        page.merge(BookDraft(publisher="X"))
        assert page.publisher is None


class TestToRecord:
    def test_no_title_no_record(self):
        assert BookDraft(authors=["A"]).to_record(BookSource.AMAZON, "https://www.amazon.com") is None

    def test_normalizes_fields(self):
        record = BookDraft(
            title="  Spaced   Title ",
            authors=["Same", " ", "Same"],
            description="<p>Bold <b>text</b></p>",
            identifiers=BookIdentifiers(isbn13="978-1234567890", isbn10="123456789", asin="b00test123"),
            publisher="Example House (January 1, 2020)",
            publish_date="January 1, 2020",
            page_count=0,
            series=SeriesInfo(name=" Saga ", number="#0"),
            tags=["Books", "Fantasy", "FANTASY"],
        ).to_record(BookSource.AMAZON, "https://www.amazon.com/dp/B00TEST123")

        assert record.title == "Spaced Title"
        assert record.authors == ("Same", "Same")
        assert record.description == "Bold text"
        assert record.identifiers.isbn13 == "9781234567890"
        assert record.identifiers.isbn10 is None
        assert record.identifiers.asin == "B00TEST123"
        assert record.publisher == "Example House"
        assert record.publish_date == "2020-01-01"
        assert record.page_count is None
        assert record.series == SeriesInfo(name="Saga")
        assert record.tags == ("Fantasy",)

    def test_empty_series_dropped(self):
        record = BookDraft(title="T", series=SeriesInfo(number="0")).to_record("goodreads", "https://x")
        assert record.series is None

    def test_normalization_is_idempotent(self):
        first = BookDraft(
            title="T",
            publish_date="February 2, 2021",
            identifiers=BookIdentifiers(isbn13="978-1234567890"),
            tags=["Fantasy", "fantasy"],
        ).to_record(BookSource.GOODREADS, "https://www.goodreads.com/book/show/1")
        second = BookDraft(**first.model_dump(exclude={"source", "source_url"})).to_record(
            BookSource.GOODREADS, "https://www.goodreads.com/book/show/1"
        )
        assert second == first
