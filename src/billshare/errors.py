from __future__ import annotations

from typing import Any, Optional


class BillShareError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    error = "Internal server error"

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(BillShareError, ValueError):
    status_code = 400
    error = "Validation failed"


class NotFound(BillShareError, LookupError):
    status_code = 404
    error = "Not found"

    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"The requested {kind.lower()} does not exist.")
        self.kind = kind
        self.key = key
        self.error = f"{kind} not found"


class InvalidState(BillShareError):
    status_code = 409
    error = "Invalid state"


class OcrFailed(BillShareError):
    status_code = 502
    error = "OCR failed"
