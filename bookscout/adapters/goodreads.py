"""
Goodreads adapter for BookScout.
Reads the Next.js Apollo cache first and falls back to legacy and current page markup.
"""
import re
from typing import Any, Dict, List, Optional

from bookscout.adapters.base import first_of, first_list, hostname, parse_url
from bookscout.models.book import BookDraft, BookIdentifiers, BookRecord, BookSource, SeriesInfo
from bookscout.parsing.covers import (
    from_attribute,
    from_meta,
    from_srcset,
    from_value,
    resolve_cover,
)
from bookscout.parsing.document import PageDocument
from bookscout.parsing.normalize import (
    clean_text,
    epoch_millis_to_date,
    normalize_identifier,
    parse_series_label,
    parse_series_number,
    strip_html,
    to_int,
)
from bookscout.parsing.payloads import ApolloGraph, decode_json, dig, names_of, read_json_ld
from bookscout.utils.logger import LayerLogger

_BOOK_ID = re.compile(r"/(?:book|work)/show/(\d+)")
_PUBLISHED_BY = re.compile(r"(?:First\s+)?Published\s+(.+?)\s+by\s+(.+)$", re.IGNORECASE)
_PUBLISHED = re.compile(r"(?:First\s+)?Published\s+(.+)$", re.IGNORECASE)


class GoodreadsAdapter:
    """
    Goodreads book pages.

    Tier 1: ``script#__NEXT_DATA__`` apolloState, with the book node picked
    by the legacy id in the page address.
    Tier 2: legacy (``#bookTitle``) and current (``data-testid``) markup,
    with JSON-LD ``Book`` nodes as extra candidates per field.
    """

    id = BookSource.GOODREADS.value

    def __init__(self):
        self.logger = LayerLogger("goodreads_adapter")

    def matches(self, url: str) -> bool:
        return "goodreads.com" in hostname(url)

    async def extract(
        self,
        document: PageDocument,
        url: str,
        logger: Optional[LayerLogger] = None,
    ) -> Optional[BookRecord]:
        logger = logger or self.logger
        goodreads_id = self.extract_goodreads_id(url)

        draft = self._parse_next_data(document, goodreads_id, logger)
        if draft is not None:
            logger.log_trace(self.id, "structured_payload", title=draft.title, goodreads_id=goodreads_id)
            return draft.to_record(BookSource.GOODREADS, url)

        logger.log_fallback(
            from_source="next_data",
            to_source="markup",
            reason="No usable apolloState book node",
            url=url,
        )
        draft = self._parse_markup(document, url, goodreads_id, logger)
        if draft is None:
            logger.log_trace(self.id, "no_title")
            return None
        logger.log_trace(self.id, "markup", title=draft.title)
        return draft.to_record(BookSource.GOODREADS, url)

    @staticmethod
    def extract_goodreads_id(url: str) -> Optional[str]:
        parsed = parse_url(url)
        if not parsed:
            return None
        match = _BOOK_ID.search(parsed.path)
        return match.group(1) if match else None

    # =========================================================================
    # TIER 1: APOLLO STATE
    # =========================================================================

    def _parse_next_data(
        self,
        document: PageDocument,
        goodreads_id: Optional[str],
        logger: LayerLogger,
    ) -> Optional[BookDraft]:
        script = document.select_one("script#__NEXT_DATA__")
        if script is None:
            return None
        payload = decode_json(script.string or script.get_text(), logger, origin="__NEXT_DATA__")
        graph = ApolloGraph.from_next_data(payload)
        if graph is None:
            return None

        book = graph.find_node("Book", goodreads_id)
        if book is None:
            return None
        title = clean_text(_as_str(book.get("titleComplete"))) or clean_text(_as_str(book.get("title")))
        if not title:
            return None

        details = book.get("details") if isinstance(book.get("details"), dict) else {}
        authors, narrators = self._contributors(graph, book)
        legacy_id = book.get("legacyId")
        asin = normalize_identifier(_as_str(details.get("asin")))

        return BookDraft(
            title=title,
            authors=authors,
            narrators=narrators,
            description=(
                strip_html(_as_str(book.get('description({"stripped":true})')))
                or strip_html(_as_str(book.get("description")))
            ),
            cover_image=resolve_cover([from_value(book.get("imageUrl"))]),
            identifiers=BookIdentifiers(
                asin=asin,
                amazon_id=asin,
                isbn10=_as_str(details.get("isbn")),
                isbn13=_as_str(details.get("isbn13")),
                goodreads_id=goodreads_id or (str(legacy_id) if legacy_id is not None else None),
            ),
            publisher=clean_text(_as_str(details.get("publisher"))),
            publish_date=epoch_millis_to_date(details.get("publicationTime")),
            page_count=to_int(details.get("numPages")),
            series=self._series(graph, book),
            tags=[
                name
                for name in (
                    clean_text(_as_str(dig(entry, "genre", "name")))
                    for entry in _as_list(book.get("bookGenres"))
                )
                if name
            ],
        )

    def _contributors(self, graph: ApolloGraph, book: Dict[str, Any]):
        edges = []
        if isinstance(book.get("primaryContributorEdge"), dict):
            edges.append(book["primaryContributorEdge"])
        edges.extend(edge for edge in _as_list(book.get("secondaryContributorEdges")) if isinstance(edge, dict))

        authors: List[str] = []
        narrators: List[str] = []
        for edge in edges:
            role = (_as_str(edge.get("role")) or "").lower()
            contributor = graph.resolve(edge.get("node"))
            name = clean_text(_as_str(contributor.get("name"))) if contributor else None
            if not name:
                continue
            if "author" in role:
                authors.append(name)
            elif "narrator" in role:
                narrators.append(name)
        return authors, narrators

    def _series(self, graph: ApolloGraph, book: Dict[str, Any]) -> Optional[SeriesInfo]:
        entries = _as_list(book.get("bookSeries"))
        if not entries or not isinstance(entries[0], dict):
            return None
        entry = entries[0]
        series_node = graph.resolve(entry.get("series"))
        name = clean_text(_as_str(series_node.get("title"))) if series_node else None
        number = parse_series_number(entry.get("userPosition"))
        if not name and not number:
            return None
        return SeriesInfo(name=name, number=number)

    # =========================================================================
    # TIER 2: MARKUP
    # =========================================================================

    def _parse_markup(
        self,
        document: PageDocument,
        url: str,
        goodreads_id: Optional[str],
        logger: LayerLogger,
    ) -> Optional[BookDraft]:
        json_ld = read_json_ld(document, ("Book",), logger)
        book_ld = json_ld[0] if json_ld else {}

        title = first_of([
            lambda: document.first_text([
                "#bookTitle",
                "h1#bookTitle span",
                "h1[data-testid='bookTitle']",
                "[data-testid='bookTitle']",
            ]),
            lambda: clean_text(_as_str(book_ld.get("name"))),
            lambda: document.meta('meta[property="og:title"]'),
        ])
        if not title:
            return None

        publisher, publish_date = self._publication(document)
        series_name, series_number = self._markup_series(document)

        return BookDraft(
            title=title,
            authors=first_list([
                lambda: document.texts(
                    "#bookAuthors span[itemprop='name'], a.authorName span, "
                    ".ContributorLinksList a[data-testid='name'], a[data-testid='name']"
                ),
                lambda: [clean_text(name) for name in names_of(book_ld.get("author")) if clean_text(name)],
            ]),
            description=first_of([
                lambda: document.first_text([
                    "#description span[style*='display:none']",
                    "#description span",
                    "[data-testid='description'] .Formatted",
                    "[data-testid='description']",
                ]),
                lambda: document.meta('meta[property="og:description"]'),
            ]),
            cover_image=resolve_cover([
                from_attribute(document, "#coverImage", "src"),
                from_attribute(document, "[data-testid='coverImage'] img", "src"),
                from_srcset(document, "img.ResponsiveImage"),
                from_attribute(document, "img.ResponsiveImage", "src"),
                from_value(_first_str(book_ld.get("image"))),
                from_meta(document, 'meta[property="og:image"]'),
            ], url),
            identifiers=BookIdentifiers(
                isbn10=first_of([
                    lambda: document.text("#bookDataBox span[itemprop='isbn']"),
                    lambda: _as_str(book_ld.get("isbn")),
                ]),
                isbn13=first_of([
                    lambda: document.text("#bookDataBox span[itemprop='isbn13']"),
                    lambda: _as_str(book_ld.get("isbn")),
                ]),
                goodreads_id=goodreads_id,
            ),
            publisher=publisher,
            publish_date=publish_date,
            page_count=first_of([
                lambda: to_int(document.text("[itemprop='numberOfPages']")),
                lambda: to_int(document.text("[data-testid='pagesFormat']")),
                lambda: to_int(book_ld.get("numberOfPages")),
            ]),
            series=SeriesInfo(name=series_name, number=series_number),
            tags=first_list([
                lambda: document.texts(".left a.bookPageGenreLink"),
                lambda: document.texts("[data-testid='genresList'] .Button__labelItem"),
                lambda: document.texts(".BookPageMetadataSection__genreButton a"),
            ]),
        )

    def _publication(self, document: PageDocument):
        """Publisher and date from "Published March 5th 2019 by Tor Books" rows."""
        rows = document.texts("#details div.row") + document.texts("[data-testid='publicationInfo']")
        publisher = None
        publish_date = None
        for row in rows:
            by_match = _PUBLISHED_BY.search(row)
            if by_match:
                publish_date = publish_date or clean_text(by_match.group(1))
                publisher = publisher or clean_text(by_match.group(2))
                continue
            date_match = _PUBLISHED.search(row)
            if date_match:
                publish_date = publish_date or clean_text(date_match.group(1))
        return publisher, publish_date

    def _markup_series(self, document: PageDocument):
        name = document.text("#bookSeries a")
        container = document.text("#bookSeries")
        if name:
            name, _ = parse_series_label(name)
            number_match = re.search(r"#\s*([\d.]+)", container or "")
            return name, parse_series_number(number_match.group(1)) if number_match else None

        label = first_of([
            lambda: document.text("h3.Text__italic a"),
            lambda: document.text(".BookPageTitleSection__title h3 a"),
        ])
        return parse_series_label(label)


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _first_str(value: Any) -> Optional[str]:
    if isinstance(value, list):
        value = value[0] if value else None
    return value if isinstance(value, str) else None
