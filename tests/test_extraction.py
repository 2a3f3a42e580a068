"""Unit tests for the extraction layer (dispatch + strategy + fetch)."""

import httpx
import pytest
from bs4 import BeautifulSoup
from pydantic import ValidationError

from bookscout.layers.dispatch import SourceDispatcher
from bookscout.layers.extraction import ExtractionLayer
from bookscout.models.book import BookSource
from bookscout.utils.logger import LayerLogger

AMAZON_URL = "https://www.amazon.com/dp/B000TESTASIN"

AMAZON_PAGE = """
<html><body>
<span id="productTitle">Sample Book</span>
<div id="bylineInfo">
  <span class="author"><a>Author One</a></span>
  <span class="author"><a>Author Two</a></span>
</div>
<div id="detailBullets_feature_div"><ul>
  <li>ISBN-13: 978-1234567890</li>
  <li>Publisher: Example House (January 1, 2020)</li>
</ul></div>
</body></html>
"""


class RecordingLogger(LayerLogger):
    """LayerLogger that keeps the trace events it receives."""

    def __init__(self):
        super().__init__("test_trace")
        self.traces = []

    def log_trace(self, source, stage, **values):
        self.traces.append((source, stage))
        super().log_trace(source, stage, **values)


class TestExtract:
    @pytest.mark.asyncio
    async def test_end_to_end_scenario(self):
        record = await ExtractionLayer().extract(AMAZON_PAGE, AMAZON_URL)

        assert record is not None
        assert record.source == BookSource.AMAZON
        assert record.title == "Sample Book"
        assert record.authors == ("Author One", "Author Two")
        assert record.identifiers.isbn13 == "9781234567890"
        assert record.publisher == "Example House"
        assert record.publish_date == "2020-01-01"

    @pytest.mark.asyncio
    async def test_accepts_soup(self):
        soup = BeautifulSoup(AMAZON_PAGE, "lxml")
        record = await ExtractionLayer().extract(soup, AMAZON_URL)
        assert record.title == "Sample Book"

    @pytest.mark.asyncio
    async def test_unknown_address_is_no_match(self):
        assert await ExtractionLayer().extract(AMAZON_PAGE, "https://example.com/book") is None

    @pytest.mark.asyncio
    async def test_no_title_is_no_match(self):
        assert await ExtractionLayer().extract("<html><body></body></html>", AMAZON_URL) is None

    @pytest.mark.asyncio
    async def test_injected_logger_receives_traces(self):
        logger = RecordingLogger()
        await ExtractionLayer().extract(AMAZON_PAGE, AMAZON_URL, logger=logger)
        assert ("amazon", "attribute_containers") in logger.traces

    @pytest.mark.asyncio
    async def test_record_is_immutable(self):
        record = await ExtractionLayer().extract(AMAZON_PAGE, AMAZON_URL)
        with pytest.raises(ValidationError):
            record.title = "Changed"

    @pytest.mark.asyncio
    async def test_custom_dispatcher(self):
        layer = ExtractionLayer(dispatcher=SourceDispatcher([]))
        assert await layer.extract(AMAZON_PAGE, AMAZON_URL) is None


class TestFetchAndExtract:
    @pytest.mark.asyncio
    async def test_fetches_page(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, text=AMAZON_PAGE)

        layer = ExtractionLayer(transport=httpx.MockTransport(handler))
        record = await layer.fetch_and_extract(AMAZON_URL)

        assert record.title == "Sample Book"
        assert str(seen[0].url) == AMAZON_URL
        assert "Mozilla" in seen[0].headers["User-Agent"]

    @pytest.mark.asyncio
    async def test_unsupported_address_is_not_fetched(self):
        def handler(request):
            raise AssertionError("should not fetch")

        layer = ExtractionLayer(transport=httpx.MockTransport(handler))
        assert await layer.fetch_and_extract("https://example.com/book") is None

    @pytest.mark.asyncio
    async def test_fetch_failure_propagates(self):
        layer = ExtractionLayer(transport=httpx.MockTransport(lambda request: httpx.Response(500)))
        with pytest.raises(httpx.HTTPStatusError):
            await layer.fetch_and_extract(AMAZON_URL)

    @pytest.mark.asyncio
    async def test_strategy_selected_once_per_fetch(self):
        class CountingDispatcher(SourceDispatcher):
            calls = 0

            def select(self, url):
                CountingDispatcher.calls += 1
                return super().select(url)

        layer = ExtractionLayer(
            dispatcher=CountingDispatcher(),
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text=AMAZON_PAGE)),
        )
        record = await layer.fetch_and_extract(AMAZON_URL)

        assert record.title == "Sample Book"
        assert CountingDispatcher.calls == 1
