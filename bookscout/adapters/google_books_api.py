"""
Google Books volumes API client.
Used as the enrichment tier when a Google Books page is missing core fields.
"""
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs

import httpx

from bookscout.adapters.base import parse_url
from bookscout.config import config
from bookscout.models.book import BookDraft, BookIdentifiers
from bookscout.parsing.normalize import clean_text, strip_html, to_int, upgrade_https
from bookscout.utils.logger import LayerLogger

# Path segments that never carry a volume id.
NON_ID_SEGMENTS = frozenset({"edition", "reader", "books", "about", "_"})


def extract_volume_id(url: str) -> Optional[str]:
    """
    Volume id from a Google Books address.

    ``?id=`` wins; otherwise the last path segment that is not a known
    route word (``/books/edition/Title/5LImpwAACAAJ``).
    """
    parsed = parse_url(url)
    if not parsed:
        return None
    query_id = parse_qs(parsed.query).get("id")
    if query_id and query_id[0].strip():
        return query_id[0].strip()
    segments = [segment for segment in parsed.path.split("/") if segment]
    for segment in reversed(segments):
        if segment.lower() not in NON_ID_SEGMENTS:
            return segment
    return None


def _as_list(value: Any) -> List[Any]:
    """Volume fields that should be arrays; any other shape contributes nothing."""
    return value if isinstance(value, list) else []


class GoogleBooksClient:
    """
    Thin async client for ``/books/v1/volumes/{id}``.

    Lookups never raise: network failures, non-2xx responses and
    malformed bodies are logged and reported as None.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout if timeout is not None else config.ENRICHMENT_TIMEOUT
        self.base_url = (base_url or config.GOOGLE_BOOKS_API_URL).rstrip("/")
        self.transport = transport
        self.logger = LayerLogger("google_books_api")

    async def lookup(self, url: str, logger: Optional[LayerLogger] = None) -> Optional[BookDraft]:
        """Fetch the volume behind a page address and map it to a draft."""
        logger = logger or self.logger
        volume_id = extract_volume_id(url)
        if not volume_id:
            logger.log_decision(
                decision="skip_enrichment",
                reason="No volume id in page address",
                url=url,
            )
            return None

        volume = await self.fetch_volume(volume_id, logger)
        if volume is None:
            return None
        try:
            return self.volume_to_draft(volume, volume_id)
        except (TypeError, ValueError, AttributeError) as e:
            logger.log_error(
                f"Volume could not be mapped: {str(e)}",
                error_type="malformed_payload",
                volume_id=volume_id,
            )
            return None

    async def fetch_volume(self, volume_id: str, logger: Optional[LayerLogger] = None) -> Optional[Dict[str, Any]]:
        logger = logger or self.logger
        endpoint = f"{self.base_url}/{volume_id}"
        logger.log_action("fetch_volume", "started", volume_id=volume_id)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                response = await client.get(endpoint, headers={"Accept": "application/json"})
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.log_http_probe(
                url=endpoint,
                endpoint="volumes",
                status_code=e.response.status_code,
                result="rejected",
            )
            return None
        except httpx.HTTPError as e:
            logger.log_error(
                f"Volume lookup failed: {str(e)}",
                error_type="http_error",
                endpoint=endpoint,
            )
            return None

        try:
            payload = response.json()
        except ValueError as e:
            logger.log_error(
                f"Volume response is not JSON: {str(e)}",
                error_type="malformed_payload",
                endpoint=endpoint,
            )
            return None

        if not isinstance(payload, dict) or not isinstance(payload.get("volumeInfo"), dict):
            logger.log_http_probe(
                url=endpoint,
                endpoint="volumes",
                status_code=response.status_code,
                result="no_volume_info",
            )
            return None

        logger.log_http_probe(
            url=endpoint,
            endpoint="volumes",
            status_code=response.status_code,
            result="success",
        )
        return payload

    def volume_to_draft(self, volume: Dict[str, Any], volume_id: Optional[str] = None) -> BookDraft:
        info = volume.get("volumeInfo") if isinstance(volume.get("volumeInfo"), dict) else {}

        isbn10 = None
        isbn13 = None
        for entry in _as_list(info.get("industryIdentifiers")):
            if not isinstance(entry, dict) or not isinstance(entry.get("identifier"), str):
                continue
            kind = entry.get("type")
            if kind == "ISBN_10" and not isbn10:
                isbn10 = entry["identifier"]
            elif kind == "ISBN_13" and not isbn13:
                isbn13 = entry["identifier"]

        images = info.get("imageLinks") if isinstance(info.get("imageLinks"), dict) else {}
        cover = upgrade_https(images.get("thumbnail")) or upgrade_https(images.get("smallThumbnail"))

        return BookDraft(
            title=clean_text(info.get("title")),
            subtitle=clean_text(info.get("subtitle")),
            authors=[name for name in _as_list(info.get("authors")) if isinstance(name, str)],
            description=strip_html(info.get("description")),
            cover_image=cover,
            identifiers=BookIdentifiers(
                isbn10=isbn10,
                isbn13=isbn13,
                google_id=clean_text(volume.get("id")) or clean_text(volume_id),
            ),
            publisher=clean_text(info.get("publisher")),
            publish_date=clean_text(info.get("publishedDate")),
            page_count=to_int(info.get("pageCount")),
            tags=[tag for tag in _as_list(info.get("categories")) if isinstance(tag, str)],
        )
