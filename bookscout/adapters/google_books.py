"""
Google Books adapter for BookScout.
Parses the book info rows of both page layouts and enriches thin pages from the volumes API.
"""
import re
from typing import Dict, List, Optional

from bookscout.adapters.base import first_of, hostname, parse_url
from bookscout.adapters.google_books_api import GoogleBooksClient, extract_volume_id
from bookscout.config import config
from bookscout.models.book import BookDraft, BookIdentifiers, BookRecord, BookSource, SeriesInfo
from bookscout.parsing.covers import from_attribute, from_meta, resolve_cover
from bookscout.parsing.document import PageDocument, element_text
from bookscout.parsing.normalize import (
    clean_text,
    normalize_isbn,
    parse_series_number,
    split_list,
    split_publisher_details,
    to_int,
    unique,
)
from bookscout.utils.logger import LayerLogger

_SERIES_POSITION = re.compile(r"(?:Book|Volume)\s+([\d.]+)\s+of\s+(.+)", re.IGNORECASE)
_SUBJECT_SEPARATOR = re.compile("›|>")

AUTHOR_SELECTORS = [
    ".KJcZOe .aIX766",
    ".bookinfo_sectionwrap a.secondary span",
    ".bookinfo_sectionwrap a.secondary",
]
SERIES_SELECTOR = "#metadata_content_table .metadata_value a.primary, .bookinfo_sectionwrap a.primary"


class GoogleBooksAdapter:
    """
    Google Books pages on ``books.google.*`` and ``www.google.com/books``.

    Tier 1 and 2 are the two page layouts: the ``.kc7Grd`` info rows and
    the older ``#metadata_content_table``. Both feed one label map.
    Tier 3 is the volumes API, consulted only when the page has no title
    or no ISBN. Page values win over API values field by field.
    """

    id = BookSource.GOOGLE_BOOKS.value

    def __init__(
        self,
        api_client: Optional[GoogleBooksClient] = None,
        enrichment_enabled: Optional[bool] = None,
    ):
        self.api_client = api_client or GoogleBooksClient()
        self.enrichment_enabled = enrichment_enabled
        self.logger = LayerLogger("google_books_adapter")

    def matches(self, url: str) -> bool:
        host = hostname(url)
        if "books.google." in host:
            return True
        parsed = parse_url(url)
        return host in ("www.google.com", "google.com") and parsed.path.startswith("/books")

    async def extract(
        self,
        document: PageDocument,
        url: str,
        logger: Optional[LayerLogger] = None,
    ) -> Optional[BookRecord]:
        logger = logger or self.logger

        draft = self.parse_page(document, url)
        logger.log_trace(
            self.id,
            "page",
            title=draft.title,
            has_isbn=draft.identifiers.has_isbn(),
        )

        if not draft.title or not draft.identifiers.has_isbn():
            if self._enrichment_allowed():
                logger.log_fallback(
                    from_source="page",
                    to_source="volumes_api",
                    reason="Page is missing a title" if not draft.title else "Page has no ISBN",
                    url=url,
                )
                api_draft = await self.api_client.lookup(url, logger)
                if api_draft is not None:
                    draft = draft.merge(api_draft)
            else:
                logger.log_decision(
                    decision="skip_enrichment",
                    reason="Enrichment disabled",
                    url=url,
                )

        if not draft.title:
            logger.log_trace(self.id, "no_title")
            return None
        return draft.to_record(BookSource.GOOGLE_BOOKS, url)

    def _enrichment_allowed(self) -> bool:
        if self.enrichment_enabled is not None:
            return self.enrichment_enabled
        return config.is_enrichment_enabled()

    # =========================================================================
    # PAGE TIERS
    # =========================================================================

    def parse_page(self, document: PageDocument, url: str) -> BookDraft:
        """Everything the page itself offers. The title may be missing."""
        info = self.build_info_map(document)
        publisher_details = split_publisher_details(info.get("publisher"))
        isbn_field = info.get("isbn")

        return BookDraft(
            title=first_of([
                lambda: document.first_text([".UDZeY", ".booktitle .fn"]),
                lambda: document.meta('meta[property="og:title"]'),
                lambda: document.meta('meta[name="title"]'),
            ]),
            authors=self._authors(document, info),
            description=first_of([
                lambda: document.first_text(['[jsname="bN97Pc"]', "#synopsistext", "#synopsis-window"]),
                lambda: document.meta('meta[property="og:description"]'),
                lambda: document.meta('meta[name="description"]'),
            ]),
            cover_image=resolve_cover([
                from_meta(document, 'meta[property="og:image"]'),
                from_attribute(document, "#summary-frontcover", "src"),
                from_attribute(document, ".bookcover img", "src"),
            ], url),
            identifiers=BookIdentifiers(
                isbn10=first_of([
                    lambda: normalize_isbn(info.get("isbn 10"), 10),
                    lambda: normalize_isbn(isbn_field, 10),
                ]),
                isbn13=first_of([
                    lambda: normalize_isbn(info.get("isbn 13"), 13),
                    lambda: normalize_isbn(isbn_field, 13),
                ]),
                google_id=extract_volume_id(url),
            ),
            publisher=publisher_details.publisher,
            publish_date=first_of([
                lambda: info.get("published"),
                lambda: publisher_details.publish_date,
            ]),
            page_count=first_of([
                lambda: to_int(info.get("length")),
                lambda: to_int(info.get("print length")),
                lambda: publisher_details.page_count,
            ]),
            series=self._series(document),
            tags=self._subjects(document, info),
        )

    def build_info_map(self, document: PageDocument) -> Dict[str, str]:
        """Lower-cased ``label -> value`` from both info-row layouts. Later rows overwrite."""
        info: Dict[str, str] = {}
        rows = [(row, ".w8qArf", ".LrzXr") for row in document.select(".kc7Grd")]
        rows += [
            (row, ".metadata_label", ".metadata_value")
            for row in document.select("#metadata_content_table .metadata_row")
        ]
        for row, label_selector, value_selector in rows:
            label = element_text(row.select_one(label_selector))
            value = element_text(row.select_one(value_selector))
            if label and value:
                info[label.lower()] = value
        return info

    def _authors(self, document: PageDocument, info: Dict[str, str]) -> List[str]:
        authors = unique(name for selector in AUTHOR_SELECTORS for name in document.texts(selector))
        if authors:
            return authors
        return split_list(info.get("authors") or info.get("author"), ",;")

    def _subjects(self, document: PageDocument, info: Dict[str, str]) -> List[str]:
        subjects: List[str] = []
        for row in document.select("#metadata_content_table .metadata_row"):
            label = element_text(row.select_one(".metadata_label"))
            if not label or "subject" not in label.lower():
                continue
            subjects.extend(
                element_text(node) for node in row.select(".metadata_value a, .metadata_value span")
            )
        subjects = unique(subjects)
        if subjects:
            return subjects
        raw = info.get("subjects")
        if not raw:
            return []
        return unique(clean_text(part) for part in _SUBJECT_SEPARATOR.split(raw))

    def _series(self, document: PageDocument) -> Optional[SeriesInfo]:
        for node in document.select(SERIES_SELECTOR):
            text = element_text(node)
            if not text:
                continue
            match = _SERIES_POSITION.search(text)
            if match:
                return SeriesInfo(
                    name=clean_text(match.group(2)),
                    number=parse_series_number(match.group(1)),
                )
            if text.lower().endswith("series") and "book" not in text.lower():
                return SeriesInfo(name=text)
        return None
