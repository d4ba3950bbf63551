"""Envelope construction and error mapping for route handlers."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from unitize.core.results import ErrorKind, ServiceResult
from unitize.db.file_store import FileStoreError
from unitize.utils.dates import now_iso
from unitize.web.schemas import Envelope

logger = structlog.get_logger(__name__)

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.UNEXPECTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

INTERNAL_ERROR_MESSAGE = "Internal server error"


def to_jsonable(value: Any) -> Any:
    """Convert service data (dataclasses with to_dict, lists, dicts) to JSON values."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def envelope(data: Any = None) -> Envelope:
    """Successful envelope around data."""
    return Envelope(success=True, data=to_jsonable(data), timestamp=now_iso())


def error_envelope(error: str) -> dict[str, Any]:
    return Envelope(success=False, error=error, timestamp=now_iso()).model_dump()


def respond(result: ServiceResult) -> Envelope:
    """Envelope for a successful result.

    Raises:
        HTTPException: With the status code matching the result's error kind
    """
    if result.success:
        return envelope(result.data)

    kind = result.error_kind or ErrorKind.UNEXPECTED
    raise HTTPException(
        status_code=STATUS_BY_KIND[kind],
        detail=result.error if kind is not ErrorKind.UNEXPECTED else INTERNAL_ERROR_MESSAGE,
    )


def bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Missing or malformed request fields are reported as 400."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))

    logger.info("request_validation_failed", path=request.url.path, errors=problems)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_envelope("Invalid request: " + "; ".join(problems)),
    )


async def file_store_exception_handler(request: Request, exc: FileStoreError) -> JSONResponse:
    logger.error("file_store_error", path=request.url.path, document=str(exc.path), error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_envelope(INTERNAL_ERROR_MESSAGE),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_error", path=request.url.path, error=str(exc), exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_envelope(INTERNAL_ERROR_MESSAGE),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Turn every error into an envelope."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(FileStoreError, file_store_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
