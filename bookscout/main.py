"""
BookScout - FastAPI Application
Thin HTTP host around the extraction layer.
"""
from typing import Optional

import httpx
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from bookscout import __version__
from bookscout.config import config
from bookscout.layers.extraction import ExtractionLayer
from bookscout.models.book import BookRecord
from bookscout.utils.logger import get_logger, set_trace_id


# Initialize FastAPI app
app = FastAPI(
    title="BookScout",
    description="Extracts normalized book metadata from Goodreads, Amazon, Audible and Google Books pages",
    version=__version__,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize layers
extraction_layer = ExtractionLayer()

logger = get_logger("main")


# Request/Response models
class ExtractRequest(BaseModel):
    """Request model for record extraction."""
    url: str
    html: Optional[str] = None  # page markup; fetched when omitted


class ExtractResponse(BaseModel):
    """Response model for record extraction."""
    record: BookRecord
    trace_id: str


# API Routes
@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/api/sources")
async def list_sources():
    """Registered source strategies in dispatch order."""
    return {"sources": extraction_layer.dispatcher.ids()}


@app.post("/api/extract", response_model=ExtractResponse)
async def extract_record(request: ExtractRequest):
    """
    Extract a book record for a page address.

    Uses the supplied markup when present, otherwise fetches the page.
    """
    trace_id = set_trace_id()

    logger.info(
        "extraction_request",
        url=request.url,
        html_supplied=request.html is not None,
        trace_id=trace_id,
    )

    try:
        if request.html is not None:
            record = await extraction_layer.extract(request.html, request.url)
        else:
            record = await extraction_layer.fetch_and_extract(request.url)
    except httpx.HTTPError as e:
        logger.error("page_fetch_error", error=str(e), url=request.url)
        raise HTTPException(status_code=502, detail=f"Could not fetch page: {str(e)}")

    if record is None:
        raise HTTPException(status_code=422, detail="page_not_supported")

    logger.info(
        "extraction_complete",
        url=request.url,
        source=record.source.value if hasattr(record.source, "value") else record.source,
        trace_id=trace_id,
    )
    return ExtractResponse(record=record, trace_id=trace_id)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
