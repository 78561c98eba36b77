"""Record CRUD helpers.

Record tables share one shape (``s_no``, ``lp_no``, ``items``,
``issue_voucher_number``) but their names come from the request. Instead of
formatting the name into SQL we describe the table with a SQLAlchemy ``Table``
object, so the dialect quotes the identifier and every value is a bound
parameter.
"""

from __future__ import annotations

import logging

from sqlalchemy import Column, Integer, MetaData, Table, Text, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import StorageError, ValidationError
from ..schemas.record import Record
from .tables import TableName

logger = logging.getLogger("qrgen.records")

RECORD_FIELDS = ("lp_no", "items", "issue_voucher_number")
# Largest value a signed 64-bit INTEGER column can hold.
MAX_RECORD_ID = 2**63 - 1


def record_table(table: TableName) -> Table:
    """Describe a record table without touching the database."""

    return Table(
        table.value,
        MetaData(),
        Column("s_no", Integer, primary_key=True, autoincrement=True),
        Column("lp_no", Text, nullable=False),
        Column("items", Text, nullable=False),
        Column("issue_voucher_number", Text, nullable=False),
    )


def validate_record_fields(
    table: str | None,
    lp_no: str | None,
    items: str | None,
    issue_voucher_number: str | None,
) -> None:
    """Raise ``ValidationError`` naming every missing or empty field."""

    values = {
        "table": table,
        "lp_no": lp_no,
        "items": items,
        "issue_voucher_number": issue_voucher_number,
    }
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ValidationError(missing)


def insert_record(
    db: Session,
    table: TableName,
    *,
    lp_no: str,
    items: str,
    issue_voucher_number: str,
) -> int:
    """Append a row and return the ``s_no`` the database assigned to it."""

    validate_record_fields(table.value, lp_no, items, issue_voucher_number)
    tbl = record_table(table)
    stmt = insert(tbl).values(lp_no=lp_no, items=items, issue_voucher_number=issue_voucher_number)
    try:
        result = db.execute(stmt)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("records.insert_failed", exc_info=exc, extra={"extra_data": {"table": table.value}})
        raise StorageError() from exc
    s_no = int(result.inserted_primary_key[0])
    logger.info("records.inserted", extra={"extra_data": {"table": table.value, "s_no": s_no}})
    return s_no


def get_record(db: Session, table: TableName, s_no: int) -> Record | None:
    if not 1 <= s_no <= MAX_RECORD_ID:
        return None
    tbl = record_table(table)
    stmt = select(tbl).where(tbl.c.s_no == s_no)
    try:
        row = db.execute(stmt).mappings().first()
    except SQLAlchemyError as exc:
        logger.error("records.get_failed", exc_info=exc, extra={"extra_data": {"table": table.value, "s_no": s_no}})
        raise StorageError() from exc
    return Record.model_validate(dict(row)) if row else None


def list_records(db: Session, table: TableName) -> list[Record]:
    """Return every record in ``table`` ordered by ascending ``s_no``."""

    tbl = record_table(table)
    stmt = select(tbl).order_by(tbl.c.s_no.asc())
    try:
        rows = db.execute(stmt).mappings().all()
    except SQLAlchemyError as exc:
        logger.error("records.list_failed", exc_info=exc, extra={"extra_data": {"table": table.value}})
        raise StorageError() from exc
    return [Record.model_validate(dict(row)) for row in rows]
