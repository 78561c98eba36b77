"""Startup checks for the record database."""

from __future__ import annotations

import logging

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from ..core.config import AppSettings
from ..core.errors import StorageUnavailable
from ..crud.records import record_table
from ..crud.tables import TableName
from .session import Storage

logger = logging.getLogger("qrgen.db")


def bootstrap_storage(storage: Storage, settings: AppSettings) -> set[str]:
    """Make sure the database answers and report which tables it holds.

    An unreachable database raises ``StorageUnavailable``; ``create_app`` lets
    that propagate so the process never starts without its datastore.
    """

    try:
        tables = set(inspect(storage.engine).get_table_names())
    except SQLAlchemyError as exc:
        logger.critical("db.unreachable", exc_info=exc)
        raise StorageUnavailable() from exc

    logger.info("db.tables", extra={"extra_data": {"tables": sorted(tables)}})
    default = settings.DEFAULT_TABLE
    if default in tables:
        return tables

    if not settings.CREATE_DEFAULT_TABLE:
        logger.warning("db.default_table_missing", extra={"extra_data": {"table": default}})
        return tables

    try:
        record_table(TableName(default)).create(storage.engine, checkfirst=True)
    except SQLAlchemyError as exc:
        logger.critical("db.create_default_table_failed", exc_info=exc)
        raise StorageUnavailable() from exc
    logger.info("db.default_table_created", extra={"extra_data": {"table": default}})
    tables.add(default)
    return tables
