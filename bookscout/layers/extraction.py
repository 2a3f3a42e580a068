"""
Extraction Layer for BookScout.
Single entry point: address + document in, canonical book record (or nothing) out.
"""
from typing import Optional, Union

import httpx
from bs4 import BeautifulSoup

from bookscout.config import config
from bookscout.adapters.base import SourceStrategy
from bookscout.layers.dispatch import SourceDispatcher
from bookscout.models.book import BookRecord
from bookscout.parsing.document import PageDocument
from bookscout.utils.logger import LayerLogger


class ExtractionLayer:
    """
    Extraction Layer - source-agnostic book record extraction.

    This layer:
    - Hands the address to the dispatcher to pick a source strategy
    - Runs that strategy over the document with an injected logger
    - Reports which fields the finished record carries

    "No strategy" and "no title" are both ordinary results (``None``).
    """

    def __init__(
        self,
        dispatcher: Optional[SourceDispatcher] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.dispatcher = dispatcher or SourceDispatcher()
        self.timeout = timeout if timeout is not None else config.REQUEST_TIMEOUT
        self.transport = transport
        self.logger = LayerLogger("extraction_layer")

    async def extract(
        self,
        document: Union[PageDocument, BeautifulSoup, str],
        url: str,
        logger: Optional[LayerLogger] = None,
    ) -> Optional[BookRecord]:
        """
        Extract a book record from an already-loaded page.

        Args:
            document: Parsed page, BeautifulSoup tree or raw HTML
            url: Absolute page address
            logger: Trace logger for this call (defaults to the layer's own)

        Returns:
            BookRecord, or None when no strategy matches or no title is found
        """
        logger = logger or self.logger
        self.logger.log_action("extraction", "started", url=url)

        strategy = self.dispatcher.select(url)
        if strategy is None:
            self.logger.log_action("extraction", "no_match", url=url, reason="unsupported_address")
            return None

        return await self._run_strategy(strategy, document, url, logger)

    async def _run_strategy(
        self,
        strategy: SourceStrategy,
        document: Union[PageDocument, BeautifulSoup, str],
        url: str,
        logger: LayerLogger,
    ) -> Optional[BookRecord]:
        record = await strategy.extract(PageDocument.coerce(document), url, logger)
        if record is None:
            self.logger.log_action("extraction", "no_match", url=url, source=strategy.id, reason="no_title")
            return None

        self.logger.log_extraction(
            source=strategy.id,
            fields_present=record.get_present_fields(),
            fields_missing=record.get_missing_fields(),
            url=url,
        )
        return record

    async def fetch_and_extract(self, url: str, logger: Optional[LayerLogger] = None) -> Optional[BookRecord]:
        """
        Fetch the page over HTTP, then extract.

        Unsupported addresses are rejected before any request is made.
        Fetch failures propagate as ``httpx.HTTPError``.
        """
        strategy = self.dispatcher.select(url)
        if strategy is None:
            return None

        self.logger.log_action("fetch_html", "started", url=url)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                response = await client.get(url, headers=self._get_headers())
                response.raise_for_status()
                html = response.text
        except httpx.HTTPError as e:
            self.logger.log_error(
                f"Failed to fetch URL: {str(e)}",
                error_type="http_error",
                url=url,
            )
            raise

        self.logger.log_action(
            "fetch_html",
            "completed",
            url=url,
            status_code=response.status_code,
            content_length=len(html),
        )
        return await self._run_strategy(strategy, html, url, logger or self.logger)

    def _get_headers(self) -> dict:
        """Get request headers mimicking a browser."""
        return {
            "User-Agent": config.USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        }
