"""Service result type.

Service operations never raise for expected failures; they return a
ServiceResult carrying either data or an error message plus its kind.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from unitize.db.file_store import FileStoreError

logger = structlog.get_logger(__name__)


class ErrorKind(str, Enum):
    """Failure categories, mapped to HTTP status codes by the web layer."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    UNEXPECTED = "unexpected"


@dataclass
class ServiceResult:
    """Outcome of a service operation."""

    success: bool
    data: Any = None
    error: str | None = None
    error_kind: ErrorKind | None = None

    @classmethod
    def ok(cls, data: Any = None) -> ServiceResult:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, kind: ErrorKind = ErrorKind.UNEXPECTED) -> ServiceResult:
        return cls(success=False, error=error, error_kind=kind)

    @classmethod
    def invalid(cls, error: str) -> ServiceResult:
        return cls.fail(error, ErrorKind.VALIDATION)

    @classmethod
    def not_found(cls, error: str) -> ServiceResult:
        return cls.fail(error, ErrorKind.NOT_FOUND)


def storage_failure(operation: str, error: FileStoreError) -> ServiceResult:
    """Log a storage error and turn it into an unexpected-failure result."""
    logger.error(
        "storage_failure",
        operation=operation,
        path=str(error.path),
        error=str(error),
    )
    return ServiceResult.fail(f"Failed to {operation}", ErrorKind.UNEXPECTED)
