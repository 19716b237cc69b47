"""
Quotation API router.

Import customer files or pasted identifiers into the working selection,
edit it, and export the quotation.
"""
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.responses import Response

from backend.api.models import (
    BatchAddRequest,
    CustomerRequest,
    DiscountRequest,
    EntryUpdateRequest,
    PriceOptionRequest,
)
from backend.api.routers.catalog import XLSX_MEDIA_TYPE, attachment_headers
from backend.core.workspace import get_session
from harbor.parts_quote import (
    EmptyExtraction,
    EntryNotFound,
    ExtractionFailed,
    ExtractionUnavailable,
    NoValidData,
    QuoteSession,
    ReconcileResult,
    SelectionEntry,
    export_csv,
    export_xlsx,
    import_batch,
    import_file,
)
from harbor.parts_quote.report import generate_report_filename, match_label, price_type_label

router = APIRouter(prefix="/api/quotation", tags=["Quotation"])


def _import_error(e: Exception) -> HTTPException:
    """Map pipeline errors to HTTP status codes."""
    if isinstance(e, (EmptyExtraction, NoValidData)):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, ExtractionUnavailable):
        return HTTPException(status_code=415, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


def _entry_payload(entry: SelectionEntry, price_option: str) -> dict:
    payload = asdict(entry)
    payload["match_kind"] = entry.match_kind.value
    payload["match_label"] = match_label(entry)
    payload["price_type"] = price_type_label(entry, price_option)
    payload["unit_price"] = entry.effective_price(price_option)
    payload["line_total"] = entry.line_total(price_option)
    return payload


def _quotation_payload(session: QuoteSession) -> dict:
    return {
        "entries": [_entry_payload(e, session.price_option) for e in session.selection],
        "statistics": asdict(session.statistics()),
        "customer": asdict(session.customer),
        "price_option": session.price_option,
        "pending_review": len(session.pending_review()),
    }


def _result_payload(result: ReconcileResult) -> dict:
    return {
        "imported": len(result.entries),
        "matched": result.matched_count,
        "new": result.new_count,
        "skipped": [str(s) for s in result.skipped],
        "colliding_ids": result.colliding_ids,
        "cancelled": result.cancelled,
    }


@router.get("")
def get_quotation():
    """Current selection with statistics, customer and price option."""
    return _quotation_payload(get_session())


@router.delete("")
def clear_quotation():
    session = get_session()
    session.clear_selection()
    return {"success": True}


@router.post("/import")
async def import_quotation_file(
    file: UploadFile = File(...),
    mode: str = Form("auto"),
    degraded: Optional[bool] = Form(None),
):
    """
    Import a customer file and replace the selection with the reconciled lines.

    Modes: auto (scan workbooks, read PDF/Word text), scan, customer, template.
    """
    content = await file.read()
    session = get_session()
    try:
        result = import_file(session, content, file.filename, mode=mode, degraded=degraded)
    except (EmptyExtraction, NoValidData, ExtractionFailed) as e:
        raise _import_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"result": _result_payload(result), **_quotation_payload(session)}


@router.post("/batch")
def batch_add(request: BatchAddRequest):
    """Reconcile pasted identifiers, one per line."""
    session = get_session()
    try:
        result = import_batch(session, request.text)
    except EmptyExtraction as e:
        raise _import_error(e)

    return {"result": _result_payload(result), **_quotation_payload(session)}


@router.post("/select/{part_id}")
def toggle_part(part_id: str):
    """Add a catalog part to the selection, or remove it if already there."""
    try:
        selected = get_session().toggle_part(part_id)
    except EntryNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"part_id": part_id, "selected": selected}


@router.patch("/entries/{entry_id}")
def update_entry(entry_id: str, request: EntryUpdateRequest):
    """Update quantity and/or price override of one entry."""
    session = get_session()
    try:
        entry = session.get_entry(entry_id)
        if request.quantity is not None:
            entry = session.set_quantity(entry_id, request.quantity)
        if "price_override" in request.model_fields_set:
            entry = session.set_price_override(entry_id, request.price_override)
    except EntryNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

    return _entry_payload(entry, session.price_option)


@router.delete("/entries/{entry_id}")
def remove_entry(entry_id: str):
    try:
        get_session().remove_entry(entry_id)
    except EntryNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True}


@router.post("/discount")
def apply_discount(request: DiscountRequest):
    """Reprice every entry at percent of its current price (90 = 10% off)."""
    session = get_session()
    try:
        updated = session.apply_discount(request.percent)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"updated": updated, **_quotation_payload(session)}


@router.get("/review")
def pending_review():
    """Entries matched by a loose tier and not yet confirmed."""
    session = get_session()
    entries = session.pending_review()
    return {
        "entries": [_entry_payload(e, session.price_option) for e in entries],
        "count": len(entries),
    }


@router.post("/review")
def confirm_review():
    return {"confirmed": get_session().confirm_review()}


@router.put("/customer")
def update_customer(request: CustomerRequest):
    customer = get_session().set_customer(**request.model_dump(exclude_none=True))
    return asdict(customer)


@router.put("/price-option")
def update_price_option(request: PriceOptionRequest):
    session = get_session()
    try:
        session.set_price_option(request.price_option)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _quotation_payload(session)


@router.get("/export.csv")
def export_quotation_csv():
    session = get_session()
    try:
        content = export_csv(session.selection, session.price_option, session.customer)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    filename = generate_report_filename(session.customer.name, "csv")
    return Response(
        content=content.encode("utf-8-sig"),
        media_type="text/csv; charset=utf-8",
        headers=attachment_headers(filename),
    )


@router.get("/export.xlsx")
def export_quotation_xlsx():
    session = get_session()
    try:
        data = export_xlsx(session.selection, session.price_option, session.customer)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    filename = generate_report_filename(session.customer.name, "xlsx")
    return Response(content=data, media_type=XLSX_MEDIA_TYPE, headers=attachment_headers(filename))
