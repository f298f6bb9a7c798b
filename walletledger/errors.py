"""Error taxonomy shared by the ledger core and the HTTP layer."""
from __future__ import annotations

from decimal import Decimal
from typing import Optional


class LedgerError(Exception):
    """Base class for failures that map onto a structured error response."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[dict[str, object]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, object]:
        error: dict[str, object] = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"success": False, "error": error}


class ValidationError(LedgerError):
    """Malformed or out-of-range input."""

    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidOperation(ValidationError):
    """Well-formed input asking for something the ledger does not allow."""


class NotFound(LedgerError):
    """Entity absent, or not owned by the caller."""

    code = "NOT_FOUND"
    status_code = 404


class InsufficientBalance(LedgerError):
    code = "INSUFFICIENT_BALANCE"
    status_code = 400

    def __init__(self, current: Decimal, required: Decimal) -> None:
        super().__init__(
            f"Insufficient balance. Current: {current}, Required: {required}",
            {"current": str(current), "required": str(required)},
        )
        self.current = current
        self.required = required


class DuplicateEntry(LedgerError):
    code = "DUPLICATE_ENTRY"
    status_code = 400


class Unauthorized(LedgerError):
    code = "UNAUTHORIZED"
    status_code = 401


class InternalError(LedgerError):
    code = "INTERNAL_ERROR"
    status_code = 500


__all__ = [
    "LedgerError",
    "ValidationError",
    "InvalidOperation",
    "NotFound",
    "InsufficientBalance",
    "DuplicateEntry",
    "Unauthorized",
    "InternalError",
]
