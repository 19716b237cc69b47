"""
API Routers package.

Each module contains a FastAPI router for a specific domain.
"""

from .catalog import router as catalog_router
from .quotation import router as quotation_router

__all__ = [
    "catalog_router",
    "quotation_router",
]
