"""Integration tests for the HTTP host."""

import httpx
import pytest
from httpx import AsyncClient

from bookscout import main

AMAZON_PAGE = """
<html><body>
<span id="productTitle">Sample Book</span>
<div id="bylineInfo"><span class="author"><a>Author One</a></span></div>
<div id="detailBullets_feature_div"><ul><li>ISBN-13: 978-1234567890</li></ul></div>
</body></html>
"""


class TestHealthEndpoints:
    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        resp = await client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_sources_in_dispatch_order(self, client: AsyncClient):
        resp = await client.get("/api/sources")
        assert resp.status_code == 200
        assert resp.json()["sources"] == ["goodreads", "amazon", "audible", "google-books"]


class TestExtractEndpoint:
    @pytest.mark.asyncio
    async def test_extract_from_supplied_html(self, client: AsyncClient):
        resp = await client.post(
            "/api/extract",
            json={"url": "https://www.amazon.com/dp/B000TESTASIN", "html": AMAZON_PAGE},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["trace_id"]
        assert data["record"]["source"] == "amazon"
        assert data["record"]["title"] == "Sample Book"
        assert data["record"]["authors"] == ["Author One"]
        assert data["record"]["identifiers"]["isbn13"] == "9781234567890"

    @pytest.mark.asyncio
    async def test_unsupported_page(self, client: AsyncClient):
        resp = await client.post(
            "/api/extract",
            json={"url": "https://example.com/some/book", "html": AMAZON_PAGE},
        )
        assert resp.status_code == 422
        assert resp.json()["detail"] == "page_not_supported"

    @pytest.mark.asyncio
    async def test_page_without_title(self, client: AsyncClient):
        resp = await client.post(
            "/api/extract",
            json={"url": "https://www.amazon.com/dp/B000TESTASIN", "html": "<html><body></body></html>"},
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_fetch_failure_is_bad_gateway(self, client: AsyncClient, monkeypatch):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        monkeypatch.setattr(main.extraction_layer, "transport", httpx.MockTransport(refuse))
        resp = await client.post("/api/extract", json={"url": "https://www.amazon.com/dp/B000TESTASIN"})
        assert resp.status_code == 502

    @pytest.mark.asyncio
    async def test_fetches_when_html_omitted(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(
            main.extraction_layer,
            "transport",
            httpx.MockTransport(lambda request: httpx.Response(200, text=AMAZON_PAGE)),
        )
        resp = await client.post("/api/extract", json={"url": "https://www.amazon.com/dp/B000TESTASIN"})
        assert resp.status_code == 200
        assert resp.json()["record"]["title"] == "Sample Book"
