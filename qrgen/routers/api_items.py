from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Path, Request
from sqlalchemy.orm import Session

from ..core.errors import UnknownTable
from ..crud.records import MAX_RECORD_ID, get_record
from ..crud.tables import resolve_table
from ..db.session import get_db
from ..schemas.record import Record

router = APIRouter(prefix="/api", tags=["items"])


@router.get("/item/{s_no}", response_model=Record, name="api_item", summary="Look up a scanned record")
def api_item(
    request: Request,
    s_no: int = Path(..., ge=1, le=MAX_RECORD_ID),
    db: Session = Depends(get_db),
):
    """Return one record from the configured ``API_ITEM_TABLE``.

    Unlike the HTML routes this endpoint does not take a ``table`` parameter.
    """

    try:
        table = resolve_table(db, request.app.state.settings.API_ITEM_TABLE)
    except UnknownTable:
        raise HTTPException(status_code=404, detail="Not found")
    record = get_record(db, table, s_no)
    if record is None:
        raise HTTPException(status_code=404, detail="Not found")
    return record
