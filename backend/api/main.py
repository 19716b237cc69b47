import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.api.routers import catalog_router, quotation_router
from backend.core.config import settings
from backend.core.workspace import get_session
from harbor.parts_quote import __version__

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown."""
    # Startup: load the catalog before the first request
    try:
        get_session()
    except Exception as e:
        logger.warning(f"Failed to load quotation workspace: {e}")

    yield  # Application runs here


app = FastAPI(title="Marine Parts Quotation", version=__version__, lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(catalog_router)
app.include_router(quotation_router)


@app.get("/api/health")
def health_check():
    session = get_session()
    return {
        "status": "ok",
        "version": __version__,
        "catalog_parts": len(session.catalog),
        "selection_lines": len(session.selection),
    }
