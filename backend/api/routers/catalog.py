"""
Catalog API router.

Browse, import, clear and export the parts catalog. Import and clear
change shared data and are API-key gated.
"""
import re
from datetime import datetime
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response

from backend.api.security import require_api_key
from backend.core.workspace import get_session
from harbor.parts_quote import ExtractionFailed, ExtractionUnavailable, import_catalog_file
from harbor.parts_quote.catalog import EXPORT_SHEET_NAME, export_catalog_xlsx, search_catalog, sort_catalog

router = APIRouter(prefix="/api/catalog", tags=["Catalog"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe use in Content-Disposition header."""
    safe = re.sub(r'[^\w\s\-\.]', '_', filename)
    return quote(safe, safe='')


def attachment_headers(filename: str) -> dict:
    safe_filename = sanitize_filename(filename)
    return {
        "Content-Disposition": f"attachment; filename=\"{safe_filename}\"; filename*=UTF-8''{safe_filename}"
    }


@router.get("")
def list_catalog(
    q: Optional[str] = Query(None, description="Case-insensitive search text"),
    sort: Optional[str] = Query(None, description="Field to sort by"),
    descending: bool = Query(False),
):
    """List catalog parts, optionally filtered and sorted."""
    session = get_session()
    parts = list(session.catalog)

    if q:
        parts = search_catalog(parts, q)
    if sort:
        try:
            parts = sort_catalog(parts, sort, descending=descending)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    return {"parts": parts, "count": len(parts), "total": len(session.catalog)}


@router.post("/import", dependencies=[Depends(require_api_key)])
async def import_catalog(file: UploadFile = File(...)):
    """Merge a catalog spreadsheet; parts whose id already exists are skipped."""
    content = await file.read()
    session = get_session()
    try:
        added = import_catalog_file(session, content, file.filename)
    except ExtractionUnavailable as e:
        raise HTTPException(status_code=415, detail=str(e))
    except ExtractionFailed as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"success": True, "added": added, "total": len(session.catalog)}


@router.delete("", dependencies=[Depends(require_api_key)])
def clear_catalog():
    """Remove every catalog part (and the current selection)."""
    session = get_session()
    saved = session.clear_catalog()
    return {"success": True, "persisted": saved}


@router.get("/export")
def export_catalog():
    """Download the catalog as XLSX in the import layout."""
    session = get_session()
    try:
        data = export_catalog_xlsx(session.catalog)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    filename = f"{EXPORT_SHEET_NAME}_{datetime.now().strftime('%Y-%m-%d')}.xlsx"
    return Response(content=data, media_type=XLSX_MEDIA_TYPE, headers=attachment_headers(filename))
