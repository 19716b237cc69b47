"""
Shared quotation workspace for the API.

One QuoteSession serves every request; it is built on first use from
the environment settings and guards its own state with a lock.
"""
import logging
import threading
from typing import Optional

from backend.core.config import settings
from harbor.parts_quote import QuoteSession, SqliteBlobStore, load_config
from harbor.parts_quote.store import BlobStore

logger = logging.getLogger(__name__)

# Global workspace state (loaded on first use)
_workspace_state = {
    "session": None,
}
_state_lock = threading.Lock()


def _build_store() -> BlobStore:
    return SqliteBlobStore(settings.DB_PATH)


def _build_session() -> QuoteSession:
    config = load_config(settings.CONFIG_PATH or None)
    if settings.DEGRADED_MODE:
        config.extraction.degraded_mode = True

    session = QuoteSession(store=_build_store(), config=config)
    session.load_catalog()
    logger.info(f"Quotation workspace ready with {len(session.catalog)} catalog part(s)")
    return session


def get_session() -> QuoteSession:
    """Get the shared session, creating it if needed."""
    with _state_lock:
        if _workspace_state["session"] is None:
            _workspace_state["session"] = _build_session()
        return _workspace_state["session"]


def reset_session(session: Optional[QuoteSession] = None):
    """Replace the shared session; None means rebuild on next use."""
    with _state_lock:
        _workspace_state["session"] = session
