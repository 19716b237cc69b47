"""
Catalog write guard.

Importing into or clearing the shared catalog affects every quotation
served by this workspace, so those routes check the X-API-Key header
against QUOTE_API_KEY. With no key configured the guard is open.
"""
import logging
from typing import Optional

from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader

from backend.core.config import settings

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"

catalog_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


def require_api_key(api_key: Optional[str] = Security(catalog_key_header)) -> None:
    expected = settings.API_KEY
    if not expected:
        return
    if api_key is None:
        logger.warning("Rejected catalog change: no API key supplied")
        raise HTTPException(status_code=401, detail=f"Catalog changes require the {API_KEY_HEADER} header")
    if api_key != expected:
        logger.warning("Rejected catalog change: API key mismatch")
        raise HTTPException(status_code=401, detail=f"{API_KEY_HEADER} does not match the configured catalog key")
