"""
Audible adapter for BookScout.
Prefers the product-metadata JSON blocks and JSON-LD, falling back to legacy markup.
"""
import re
from typing import Any, Dict, List, Optional

from bookscout.adapters.base import first_list, first_of, hostname, parse_url
from bookscout.models.book import BookDraft, BookIdentifiers, BookRecord, BookSource, SeriesInfo
from bookscout.parsing.covers import (
    from_attribute,
    from_background,
    from_meta,
    from_srcset,
    from_value,
    resolve_cover,
)
from bookscout.parsing.document import PageDocument
from bookscout.parsing.normalize import (
    clean_text,
    normalize_asin,
    parse_series_label,
    parse_series_number,
    strip_html,
    to_int,
)
from bookscout.parsing.payloads import merge_objects, names_of, read_json_ld, read_json_scripts
from bookscout.utils.logger import LayerLogger

METADATA_SELECTOR = 'adbl-product-metadata script[type="application/json"]'
JSON_LD_TYPES = ("Audiobook", "Book", "Product")

_PATH_ASIN = re.compile(r"/(B0[A-Z0-9]{8}|\d{9}[\dX])(?:[/?]|$)")


class AudibleAdapter:
    """
    Audible product pages.

    Tier 1: every ``adbl-product-metadata`` JSON block merged (first block
    to define a key wins), then JSON-LD ``Audiobook`` / ``Product`` nodes.
    Tier 2: the legacy ``data-testid`` and ``bc-list`` markup.
    Runtime stands in for the page count.
    """

    id = BookSource.AUDIBLE.value

    def __init__(self):
        self.logger = LayerLogger("audible_adapter")

    def matches(self, url: str) -> bool:
        return "audible." in hostname(url)

    async def extract(
        self,
        document: PageDocument,
        url: str,
        logger: Optional[LayerLogger] = None,
    ) -> Optional[BookRecord]:
        logger = logger or self.logger

        metadata = merge_objects(read_json_scripts(document, METADATA_SELECTOR, logger))
        json_ld_nodes = read_json_ld(document, JSON_LD_TYPES, logger)
        ld = json_ld_nodes[0] if json_ld_nodes else {}
        logger.log_trace(
            self.id,
            "structured_payload",
            metadata_keys=sorted(metadata),
            json_ld=bool(ld),
        )

        title = first_of([
            lambda: clean_text(_as_str(metadata.get("title"))),
            lambda: clean_text(_as_str(ld.get("name"))),
            lambda: document.first_text([
                "adbl-title-lockup h1",
                "h1[slot='title']",
                "h1[data-testid='hero-title-block__title']",
                "li.bc-list-item h1.bc-heading",
            ]),
        ])
        if not title:
            logger.log_trace(self.id, "no_title")
            return None

        series_name, series_number = self._series(document, metadata)

        draft = BookDraft(
            title=title,
            subtitle=first_of([
                lambda: clean_text(_as_str(metadata.get("subtitle"))),
                lambda: document.first_text([
                    "adbl-title-lockup [slot='subtitle']",
                    "li.bc-list-item span.bc-size-medium",
                ]),
            ]),
            authors=first_list([
                lambda: _clean_names(metadata.get("authors")),
                lambda: _clean_names(ld.get("author")),
                lambda: document.texts("li[data-testid='author-info'] a"),
                lambda: document.texts("li.authorLabel a"),
            ]),
            narrators=first_list([
                lambda: _clean_names(metadata.get("narrators")),
                lambda: _clean_names(ld.get("readBy")),
                lambda: document.texts("li[data-testid='narrator-info'] a"),
                lambda: document.texts("li.narratorLabel a"),
            ]),
            description=first_of([
                lambda: strip_html(_as_str(metadata.get("description"))),
                lambda: document.first_text([
                    "adbl-text-block[slot='summary']",
                    "[data-testid='product-details-description']",
                    ".productPublisherSummary",
                ]),
                lambda: strip_html(_as_str(ld.get("description"))),
            ]),
            cover_image=resolve_cover([
                from_value(_as_str(metadata.get("image"))),
                from_value(_first_str(ld.get("image"))),
                from_srcset(document, "adbl-product-image img"),
                from_attribute(document, "adbl-product-image img", "src"),
                from_attribute(document, "[data-testid='hero-art'] img", "src"),
                from_attribute(document, "img.bc-image-inset-border", "src"),
                from_background(document, "[data-testid='hero-art'], adbl-product-image"),
                from_meta(document, 'meta[property="og:image"]'),
            ], url),
            identifiers=BookIdentifiers(
                asin=first_of([
                    lambda: normalize_asin(_as_str(metadata.get("asin"))),
                    lambda: normalize_asin(_as_str(ld.get("productID")) or _as_str(ld.get("sku"))),
                    lambda: normalize_asin(document.attr("[data-asin]", "data-asin")),
                    lambda: _asin_from_url(url),
                    lambda: normalize_asin(document.text("[data-testid='product-details'] li span strong")),
                ]),
                isbn13=_as_str(ld.get("isbn")),
                isbn10=_as_str(ld.get("isbn")),
            ),
            publisher=first_of([
                lambda: clean_text(_first_name(metadata.get("publisher"))),
                lambda: clean_text(_first_name(ld.get("publisher"))),
                lambda: document.first_text([
                    "[data-testid='publisher'] span span",
                    "li.publisherLabel a",
                ]),
            ]),
            publish_date=first_of([
                lambda: clean_text(_as_str(metadata.get("releaseDate"))),
                lambda: clean_text(_as_str(ld.get("datePublished"))),
                lambda: document.first_text(["[data-testid='release-date'] span span"]),
                lambda: _after_colon(document.text("li.releaseDateLabel")),
            ]),
            page_count=first_of([
                lambda: to_int(_as_str(metadata.get("duration"))),
                lambda: to_int(_as_str(ld.get("duration"))),
                lambda: to_int(document.text("[data-testid='runtime'] span span")),
                lambda: to_int(document.text("li.runtimeLabel")),
            ]),
            series=SeriesInfo(name=series_name, number=series_number),
            tags=(
                _clean_names(metadata.get("categories"))
                + document.texts("adbl-chip")
                + document.texts("li.categoriesLabel a")
                + document.texts(".bc-breadcrumb a")
            ),
        )
        return draft.to_record(BookSource.AUDIBLE, url)

    def _series(self, document: PageDocument, metadata: Dict[str, Any]):
        entries = metadata.get("series")
        if isinstance(entries, list) and entries and isinstance(entries[0], dict):
            entry = entries[0]
            return (
                clean_text(_as_str(entry.get("name"))),
                parse_series_number(entry.get("part")),
            )

        link = document.text("li.seriesLabel a")
        if link:
            label = document.text("li.seriesLabel") or ""
            number_match = re.search(r"Book\s*([\d.]+)", label, re.IGNORECASE)
            return link, parse_series_number(number_match.group(1)) if number_match else None
        return parse_series_label(document.text("[data-testid='series'] span span"))


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _first_str(value: Any) -> Optional[str]:
    if isinstance(value, list):
        value = value[0] if value else None
    return value if isinstance(value, str) else None


def _first_name(value: Any) -> Optional[str]:
    names = names_of(value)
    return names[0] if names else None


def _clean_names(value: Any) -> List[str]:
    return [name for name in (clean_text(raw) for raw in names_of(value)) if name]


def _after_colon(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    return clean_text(text.split(":", 1)[-1])


def _asin_from_url(url: str) -> Optional[str]:
    parsed = parse_url(url)
    if not parsed:
        return None
    match = _PATH_ASIN.search(parsed.path)
    return normalize_asin(match.group(1)) if match else None
