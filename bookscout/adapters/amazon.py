"""
Amazon adapter for BookScout.
Resolves each field from rich product attributes, detail bullets and page markup, in that order.
"""
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from bookscout.adapters.base import first_of, hostname, parse_url
from bookscout.models.book import BookDraft, BookIdentifiers, BookRecord, BookSource, SeriesInfo
from bookscout.parsing.covers import (
    from_attribute,
    from_background,
    from_dynamic_image,
    from_meta,
    from_srcset,
    resolve_cover,
)
from bookscout.parsing.document import PageDocument, element_attr, element_text
from bookscout.parsing.normalize import (
    clean_text,
    normalize_asin,
    parse_series_label,
    parse_series_number,
    split_publisher_details,
    to_int,
)
from bookscout.utils.logger import LayerLogger

_PATH_ASIN = re.compile(r"/(?:dp|gp/product|gp/aw/d|product)/([A-Za-z0-9]{10})(?:[/?]|$)")
_LABEL_NOISE = re.compile("[:\uff1a\u200e\u200f]")
_INVISIBLE_MARKS = re.compile("[\u200e\u200f]")

MAIN_IMAGE_SELECTORS = ["#ebooksImgBlkFront", "#imgBlkFront", "#landingImage", "#imgTagWrapperId img"]
TAG_SELECTORS = [
    "#wayfinding-breadcrumbs_feature_div a",
    "#ebooksSubtitleBreadcrumb a",
    "#bylineInfo_feature_div a.a-link-normal",
]


@dataclass(frozen=True)
class RichAttribute:
    """One ``data-rpi-attribute-name`` container: its label and value text."""
    label: Optional[str] = None
    value: Optional[str] = None


class AmazonAdapter:
    """
    Amazon product pages for print, Kindle and audio editions.

    Amazon has no single structured payload for books, so each field walks
    its own chain: rich product information attributes first, then the
    detail bullets / tables, then loose page attributes.
    """

    id = BookSource.AMAZON.value

    def __init__(self):
        self.logger = LayerLogger("amazon_adapter")

    def matches(self, url: str) -> bool:
        return "amazon." in hostname(url)

    async def extract(
        self,
        document: PageDocument,
        url: str,
        logger: Optional[LayerLogger] = None,
    ) -> Optional[BookRecord]:
        logger = logger or self.logger

        title = document.first_text(["#productTitle", "#ebooksProductTitle", "#title"])
        if not title:
            logger.log_trace(self.id, "no_title")
            return None

        details = self.parse_detail_entries(document)
        rich = self.parse_rich_product_info(document)
        logger.log_trace(
            self.id,
            "attribute_containers",
            detail_keys=sorted(details),
            rich_keys=sorted(rich),
        )

        publisher_text = first_of([
            lambda: _rich_value(rich, "book_details-publisher"),
            lambda: _rich_value(rich, "audiobook_details-publisher"),
            lambda: details.get("publisher"),
        ])
        publisher_details = split_publisher_details(publisher_text)
        authors, narrators = self._contributors(document)
        asin = self.extract_asin(document, details, url)

        draft = BookDraft(
            title=title,
            authors=authors,
            narrators=narrators,
            description=document.first_text([
                "#bookDescription_feature_div noscript",
                "#bookDescription_feature_div .a-expander-content",
                "#bookDescription_feature_div",
                "#productDescription",
            ]),
            cover_image=self.get_cover_image(document, url, logger),
            identifiers=BookIdentifiers(
                asin=asin,
                amazon_id=asin,
                isbn10=first_of([
                    lambda: _rich_value(rich, "book_details-isbn10"),
                    lambda: details.get("isbn-10"),
                ]),
                isbn13=first_of([
                    lambda: _rich_value(rich, "book_details-isbn13"),
                    lambda: details.get("isbn-13"),
                ]),
            ),
            publisher=publisher_details.publisher,
            publish_date=first_of([
                lambda: _rich_value(rich, "book_details-publication_date"),
                lambda: _rich_value(rich, "audiobook_details-release_date"),
                lambda: details.get("publication date"),
                lambda: details.get("audible.com release date"),
                lambda: publisher_details.publish_date,
            ]),
            page_count=first_of([
                lambda: to_int(_rich_value(rich, "book_details-ebook_pages")),
                lambda: to_int(_rich_value(rich, "book_details-print_length")),
                lambda: to_int(_rich_value(rich, "book_details-fiona_pages")),
                lambda: to_int(details.get("print length")),
                lambda: to_int(details.get("paperback")),
                lambda: to_int(details.get("hardcover")),
                lambda: publisher_details.page_count,
                lambda: to_int(_rich_value(rich, "audiobook_details-listening_length")),
                lambda: to_int(details.get("listening length")),
            ]),
            series=self.parse_series_info(document, rich),
            tags=[tag for selector in TAG_SELECTORS for tag in document.texts(selector)],
        )
        return draft.to_record(BookSource.AMAZON, url)

    # =========================================================================
    # ATTRIBUTE CONTAINERS
    # =========================================================================

    def parse_detail_entries(self, document: PageDocument) -> Dict[str, str]:
        """
        Flatten detail bullets and product detail tables into a
        lower-cased ``label -> value`` map. Later duplicates overwrite earlier ones.
        """
        entries: Dict[str, str] = {}

        def add_entry(key: Optional[str], value: Optional[str]):
            normalized_key = clean_text(_LABEL_NOISE.sub("", key or ""))
            normalized_value = clean_text(_INVISIBLE_MARKS.sub("", value or "").strip().lstrip(":："))
            if normalized_key and normalized_value:
                entries[normalized_key.lower()] = normalized_value

        bullets = (
            document.select("#detailBullets_feature_div li")
            + document.select("#detailBulletsWrapper_feature_div li")
            + document.select("#audibleProductDetails li")
        )
        for item in bullets:
            label = element_text(item.select_one(".a-text-bold"))
            text = element_text(item)
            if label and text:
                add_entry(label, text.replace(label, "", 1))
            elif text and ":" in text:
                key, _, value = text.partition(":")
                add_entry(key, value)

        for row in document.select(
            "#productDetailsTable tr, #productDetails_detailBullets_sections1 tr, "
            "#productDetails_techSpec_section_1 tr, #audibleProductDetails tr"
        ):
            add_entry(element_text(row.select_one("th")), element_text(row.select_one("td")))

        return entries

    def parse_rich_product_info(self, document: PageDocument) -> Dict[str, RichAttribute]:
        attributes: Dict[str, RichAttribute] = {}
        for node in document.select("[data-rpi-attribute-name]"):
            key = element_attr(node, "data-rpi-attribute-name")
            label = element_text(node.select_one(".rpi-attribute-label"))
            value = element_text(node.select_one(".rpi-attribute-value"))
            if key and (label or value) and key not in attributes:
                attributes[key] = RichAttribute(label=label, value=value)
        return attributes

    # =========================================================================
    # FIELD HELPERS
    # =========================================================================

    def extract_asin(self, document: PageDocument, details: Dict[str, str], url: str) -> Optional[str]:
        return first_of([
            lambda: normalize_asin(document.attr("#ASIN", "value")),
            lambda: normalize_asin(document.attr("input[name='ASIN']", "value")),
            lambda: normalize_asin(document.attr("[data-asin]", "data-asin")),
            lambda: normalize_asin(details.get("asin")),
            lambda: _asin_from_url(url),
        ])

    def _contributors(self, document: PageDocument) -> Tuple[List[str], List[str]]:
        """Split byline contributors into authors and narrators by their role label."""
        authors: List[str] = []
        narrators: List[str] = []
        for span in document.select("#bylineInfo span.author"):
            name = element_text(span.select_one("a.contributorNameID")) or element_text(span.select_one("a"))
            if not name:
                continue
            role = (element_text(span.select_one(".contribution")) or "").lower()
            if "narrator" in role:
                narrators.append(name)
            elif not role or "author" in role:
                authors.append(name)

        if not authors:
            authors = document.texts(".contributorNameID")
        return authors, narrators

    def parse_series_info(self, document: PageDocument, rich: Dict[str, RichAttribute]) -> Optional[SeriesInfo]:
        attribute = rich.get("book_details-series")
        if attribute and attribute.value:
            name, _ = parse_series_label(attribute.value)
            return SeriesInfo(name=name, number=parse_series_number(attribute.label))

        widget = document.first_text([
            "#seriesBulletWidget_feature_div a",
            "#seriesTitle_feature_div a",
        ])
        if widget:
            name, number = parse_series_label(widget)
            return SeriesInfo(name=name, number=number)
        return None

    def get_cover_image(self, document: PageDocument, url: str, logger: LayerLogger) -> Optional[str]:
        candidates = [
            from_attribute(document, selector, "data-old-hires") for selector in MAIN_IMAGE_SELECTORS
        ]
        candidates += [from_srcset(document, selector) for selector in MAIN_IMAGE_SELECTORS]
        candidates += [from_attribute(document, selector, "src") for selector in MAIN_IMAGE_SELECTORS]
        candidates += [
            from_dynamic_image(document, logger=logger),
            from_background(document, "#imgTagWrapperId, #img-canvas, .a-dynamic-image"),
            from_meta(document, 'meta[name="twitter:image"]'),
            from_meta(document, 'meta[property="og:image"]'),
        ]
        return resolve_cover(candidates, url)


def _rich_value(attributes: Dict[str, RichAttribute], key: str) -> Optional[str]:
    attribute = attributes.get(key)
    return attribute.value if attribute else None


def _asin_from_url(url: str) -> Optional[str]:
    parsed = parse_url(url)
    if not parsed:
        return None
    match = _PATH_ASIN.search(parsed.path)
    return normalize_asin(match.group(1)) if match else None
