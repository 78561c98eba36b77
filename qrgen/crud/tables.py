"""Lookups against the live database catalog.

Every call re-reads the catalog, so a table created or dropped behind the
app's back is seen on the next request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import StorageUnavailable, UnknownTable

logger = logging.getLogger("qrgen.tables")


@dataclass(frozen=True)
class TableName:
    """A table name that was found in the catalog.

    Build these through ``resolve_table`` only; the record helpers trust them.
    """

    value: str

    def __str__(self) -> str:
        return self.value


def list_tables(db: Session) -> set[str]:
    try:
        return set(inspect(db.connection()).get_table_names())
    except SQLAlchemyError as exc:
        logger.error("tables.list_failed", exc_info=exc)
        raise StorageUnavailable() from exc


def table_exists(db: Session, name: str) -> bool:
    return name in list_tables(db)


def resolve_table(db: Session, name: str) -> TableName:
    available = list_tables(db)
    if name not in available:
        raise UnknownTable(name, available)
    return TableName(name)
