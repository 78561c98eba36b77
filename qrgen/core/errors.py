from __future__ import annotations

import logging
from typing import Any, Iterable

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("qrgen.errors")

LOGIN_PATH = "/admin/login"


class QrGenError(Exception):
    """Base class for failures the request handlers know how to report."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "error"
    message = "Unexpected error."

    def __init__(self, message: str | None = None, *, details: Any | None = None) -> None:
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)


class ValidationError(QrGenError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"
    message = "All fields are required."

    def __init__(self, missing: Iterable[str] = ()) -> None:
        self.missing = list(missing)
        super().__init__(details={"missing": self.missing} if self.missing else None)


class UnknownTable(QrGenError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "unknown_table"

    def __init__(self, table: str, available: Iterable[str] = ()) -> None:
        self.table = table
        self.available = sorted(available)
        super().__init__(f"Table '{table}' not found.", details={"available": self.available})


class StorageError(QrGenError):
    code = "storage_error"
    message = "Database error."


class StorageUnavailable(StorageError):
    code = "storage_unavailable"
    message = "Database unavailable."


class EncodingError(QrGenError):
    code = "encoding_error"
    message = "Record is too large to encode as a QR code."


class AuthError(QrGenError):
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidCredentials(AuthError):
    code = "invalid_credentials"
    message = "Invalid credentials"


class Unauthenticated(AuthError):
    code = "unauthenticated"
    message = "Login required"


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


def _wants_json(request: Request) -> bool:
    return request.url.path.startswith("/api")


async def qrgen_exception_handler(request: Request, exc: QrGenError):
    if isinstance(exc, Unauthenticated):
        return RedirectResponse(url=LOGIN_PATH, status_code=status.HTTP_302_FOUND)
    if exc.status_code >= 500:
        # The cause chain carries the backend error text; it only goes to the log.
        logger.error(
            "request.failed",
            exc_info=exc,
            extra={"extra_data": {"path": request.url.path, "code": exc.code}},
        )
    if _wants_json(request):
        return ErrorEnvelope(status_code=exc.status_code, code=exc.code, message=exc.message, details=exc.details)
    return PlainTextResponse(exc.message, status_code=exc.status_code)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    if _wants_json(request):
        code = "not_found" if exc.status_code == status.HTTP_404_NOT_FOUND else "http_error"
        return ErrorEnvelope(status_code=exc.status_code, code=code, message=message, headers=exc.headers)
    return PlainTextResponse(message, status_code=exc.status_code, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    # A record id that fails to parse or is out of range cannot exist.
    if errors and all(err.get("loc", ("",))[0] == "path" for err in errors):
        if _wants_json(request):
            return ErrorEnvelope(status_code=status.HTTP_404_NOT_FOUND, code="not_found", message="Not found")
        return PlainTextResponse("Not found", status_code=status.HTTP_404_NOT_FOUND)
    if _wants_json(request):
        return ErrorEnvelope(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="validation_error",
            message="Validation failed",
            details={"errors": jsonable_encoder(errors)},
        )
    return PlainTextResponse("Validation failed", status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("request.crashed", exc_info=exc, extra={"extra_data": {"path": request.url.path}})
    if _wants_json(request):
        return ErrorEnvelope(status_code=500, code="internal_error", message="Internal server error")
    return PlainTextResponse("Internal server error", status_code=500)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(QrGenError, qrgen_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
