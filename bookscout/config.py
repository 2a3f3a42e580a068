"""
Configuration management for BookScout.
Handles environment variables and application settings.
"""
import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration loaded from environment variables."""

    # Server settings (host surface only)
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")  # json or console

    # Request settings
    REQUEST_TIMEOUT: int = int(os.getenv("REQUEST_TIMEOUT", "30"))
    USER_AGENT: str = os.getenv(
        "USER_AGENT",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    )

    # Remote enrichment (Google Books volumes API)
    GOOGLE_BOOKS_API_URL: str = os.getenv(
        "GOOGLE_BOOKS_API_URL", "https://www.googleapis.com/books/v1/volumes"
    )
    ENRICHMENT_TIMEOUT: float = float(os.getenv("ENRICHMENT_TIMEOUT", "10"))
    ENRICHMENT_ENABLED: bool = os.getenv("ENRICHMENT_ENABLED", "true").lower() == "true"

    @classmethod
    def is_enrichment_enabled(cls) -> bool:
        """Check if the enrichment tier may issue outbound lookups."""
        return bool(cls.ENRICHMENT_ENABLED and cls.GOOGLE_BOOKS_API_URL)


config = Config()
