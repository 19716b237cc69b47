"""
Test configuration and fixtures for the quotation backend test suite.

Provides:
- Workspace session backed by an in-memory blob store (isolated per test)
- FastAPI TestClient fixture
- Factory functions for building upload files
"""
import io
from typing import Optional
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook

from harbor.parts_quote import InMemoryBlobStore

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# ---------------------------------------------------------------------------
# Workspace fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def blob_store():
    """Fresh in-memory store for each test."""
    return InMemoryBlobStore()


@pytest.fixture()
def patch_workspace(blob_store, monkeypatch):
    """
    Point the shared workspace at the in-memory store and reset it, so
    every test starts from the sample catalog with an empty selection.
    """
    from backend.core import workspace
    from backend.core.config import settings

    monkeypatch.setattr(settings, "API_KEY", "")
    monkeypatch.setattr(settings, "CONFIG_PATH", "")
    monkeypatch.setattr(settings, "DEGRADED_MODE", False)

    workspace.reset_session()
    with patch("backend.core.workspace._build_store", lambda: blob_store):
        yield workspace
    workspace.reset_session()


@pytest.fixture()
def client(patch_workspace):
    """Provide a FastAPI TestClient with the workspace patched."""
    from backend.api.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture()
def session(client, patch_workspace):
    """The session the API is serving."""
    return patch_workspace.get_session()


# ---------------------------------------------------------------------------
# Factory functions
# ---------------------------------------------------------------------------

def make_xlsx(rows: list, title: Optional[str] = None) -> bytes:
    """Build a one-sheet workbook from row lists and return its bytes."""
    wb = Workbook()
    ws = wb.active
    if title:
        ws.title = title
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def upload(filename: str, content: bytes, media_type: str = XLSX_MEDIA_TYPE) -> dict:
    """Files mapping for TestClient multipart uploads."""
    return {"file": (filename, content, media_type)}
