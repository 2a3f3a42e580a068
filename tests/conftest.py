"""Shared fixtures: no test reaches the network."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from bookscout.config import Config


@pytest.fixture(autouse=True)
def disable_enrichment(monkeypatch):
    """Google Books pages never reach the real volumes API unless a test injects a client."""
    monkeypatch.setattr(Config, "ENRICHMENT_ENABLED", False)


@pytest_asyncio.fixture
async def client():
    from bookscout.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
