"""Public pages: the entry form and the per-record success view.

WHAT: ``/form`` saves a record into the chosen table, ``/success/{s_no}``
shows it back with its QR code.
WHEN: Used by whoever is filling in inventory entries; no login required.
HOW: Input problems re-render the form with a message and a 4xx status;
storage failures re-render it with a generic message so backend error text
never reaches the browser.
"""

from __future__ import annotations

from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, HTTPException, Path, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.orm import Session

from ..core.errors import StorageError, UnknownTable, ValidationError
from ..core.jinja import get_templates
from ..core.qr import SUCCESS_SIZE, encode_data_url
from ..crud.records import MAX_RECORD_ID, get_record, insert_record, validate_record_fields
from ..crud.tables import resolve_table
from ..db.session import get_db

router = APIRouter()

FORM_TITLE = "Add Item"


def _render_form(request: Request, error: str | None = None, status_code: int = 200, values: dict | None = None):
    context = {
        "title": FORM_TITLE,
        "error": error,
        "values": values or {},
        "default_table": request.app.state.settings.DEFAULT_TABLE,
    }
    return get_templates(request).TemplateResponse(request, "form.html", context, status_code=status_code)


@router.get("/", include_in_schema=False)
def index():
    return RedirectResponse(url="/form", status_code=302)


@router.get("/form", response_class=HTMLResponse)
def form_page(request: Request):
    return _render_form(request)


@router.post("/form", response_class=HTMLResponse)
def form_submit(
    request: Request,
    table: str = Form(""),
    lp_no: str = Form(""),
    items: str = Form(""),
    issue_voucher_number: str = Form(""),
    db: Session = Depends(get_db),
):
    values = {"table": table, "lp_no": lp_no, "items": items, "issue_voucher_number": issue_voucher_number}
    try:
        validate_record_fields(table, lp_no, items, issue_voucher_number)
        target = resolve_table(db, table)
        s_no = insert_record(
            db,
            target,
            lp_no=lp_no,
            items=items,
            issue_voucher_number=issue_voucher_number,
        )
    except ValidationError as exc:
        return _render_form(request, exc.message, status_code=400, values=values)
    except UnknownTable as exc:
        return _render_form(request, exc.message, status_code=400, values=values)
    except StorageError as exc:
        return _render_form(request, exc.message, status_code=500, values=values)
    query = urlencode({"table": target.value})
    return RedirectResponse(url=f"/success/{s_no}?{query}", status_code=302)


@router.get("/success/{s_no}", response_class=HTMLResponse)
def success_page(
    request: Request,
    s_no: int = Path(..., ge=1, le=MAX_RECORD_ID),
    table: str | None = None,
    db: Session = Depends(get_db),
):
    settings = request.app.state.settings
    try:
        target = resolve_table(db, table or settings.DEFAULT_TABLE)
    except UnknownTable:
        raise HTTPException(status_code=404, detail="Not found")
    record = get_record(db, target, s_no)
    if record is None:
        raise HTTPException(status_code=404, detail="Not found")

    payload = record.payload()
    context = {
        "title": "Saved",
        "record": record,
        "table": target.value,
        "qr_data_url": encode_data_url(
            payload,
            SUCCESS_SIZE,
            margin=settings.QR_MARGIN,
            error_correction=settings.QR_ERROR_CORRECTION,
        ),
        "json_text": payload.decode("utf-8"),
        "json_url": str(request.url_for("api_item", s_no=record.s_no)),
    }
    return get_templates(request).TemplateResponse(request, "success.html", context)
