"""
Centralized configuration for the quotation backend.

All environment variables and settings should be defined here
to avoid duplication across modules.
"""
import os
from functools import lru_cache


def _env_flag(name: str, default: str = "") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings loaded from environment variables."""

    # CORS - comma-separated list of allowed origins
    ALLOWED_ORIGINS: list = os.environ.get(
        "ALLOWED_ORIGINS",
        "http://localhost:8090,http://localhost:5173,http://127.0.0.1:8090"
    ).split(",")

    # SQLite file holding the catalog blob
    DB_PATH: str = os.environ.get("QUOTE_DB_PATH", "data/quotes.db")

    # Pipeline config (empty = the package's quote_config.json)
    CONFIG_PATH: str = os.environ.get("QUOTE_CONFIG_PATH", "")

    # Substitute placeholder parts when an uploaded document fails to parse
    DEGRADED_MODE: bool = _env_flag("QUOTE_DEGRADED_MODE")

    # API key for protecting destructive endpoints (optional)
    API_KEY: str = os.environ.get("QUOTE_API_KEY", "")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton instance for easy import
settings = get_settings()
