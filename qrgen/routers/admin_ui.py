from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from sqlalchemy.orm import Session

from ..core.errors import InvalidCredentials, UnknownTable
from ..core.jinja import get_templates
from ..core.qr import HIRES_SIZE, THUMBNAIL_SIZE, encode_data_url
from ..core.security import AdminSession
from ..crud.records import list_records
from ..crud.tables import resolve_table
from ..db.session import get_db
from ..deps.auth import SESSION_KEY, current_session_id, get_auth_gate, require_admin_session
from ..schemas.record import RecordCard

router = APIRouter(prefix="/admin")
logger = logging.getLogger("qrgen.admin")

LOGIN_TITLE = "Admin Login"


@router.get("/login", response_class=HTMLResponse)
def login_page(request: Request):
    gate = get_auth_gate(request)
    if gate.sessions.get(current_session_id(request)):
        return RedirectResponse(url="/admin", status_code=302)
    return get_templates(request).TemplateResponse(request, "admin_login.html", {"title": LOGIN_TITLE, "error": None})


@router.post("/login", response_class=HTMLResponse)
def login_submit(request: Request, username: str = Form(""), password: str = Form("")):
    gate = get_auth_gate(request)
    try:
        session = gate.login(username, password)
    except InvalidCredentials as exc:
        return get_templates(request).TemplateResponse(
            request,
            "admin_login.html",
            {"title": LOGIN_TITLE, "error": exc.message},
            status_code=401,
        )
    # Drop whatever session this browser had before so an old id cannot linger.
    gate.logout(current_session_id(request))
    request.session.clear()
    request.session[SESSION_KEY] = session.session_id
    return RedirectResponse(url="/admin", status_code=302)


@router.post("/logout")
def logout(request: Request):
    get_auth_gate(request).logout(current_session_id(request))
    request.session.clear()
    return RedirectResponse(url="/admin/login", status_code=302)


@router.get("", response_class=HTMLResponse)
def admin_panel(
    request: Request,
    table: str | None = None,
    session: AdminSession = Depends(require_admin_session),
    db: Session = Depends(get_db),
):
    settings = request.app.state.settings
    try:
        target = resolve_table(db, table or settings.DEFAULT_TABLE)
    except UnknownTable as exc:
        return PlainTextResponse(
            f"Table '{exc.table}' not found. Available tables: {', '.join(exc.available)}",
            status_code=404,
        )

    cards = []
    for record in list_records(db, target):
        payload = record.payload()
        cards.append(
            RecordCard(
                record=record,
                qr=encode_data_url(
                    payload,
                    THUMBNAIL_SIZE,
                    margin=settings.QR_MARGIN,
                    error_correction=settings.QR_ERROR_CORRECTION,
                ),
                qr_hd=encode_data_url(
                    payload,
                    HIRES_SIZE,
                    margin=settings.QR_MARGIN,
                    error_correction=settings.QR_ERROR_CORRECTION,
                ),
                json_url=str(request.url_for("api_item", s_no=record.s_no)),
                json_text=payload.decode("utf-8"),
            )
        )
    logger.info("admin.listed", extra={"extra_data": {"table": target.value, "count": len(cards)}})
    context = {
        "title": "Admin Panel",
        "cards": cards,
        "user": session.username,
        "current_table": target.value,
    }
    return get_templates(request).TemplateResponse(request, "admin_panel.html", context)
