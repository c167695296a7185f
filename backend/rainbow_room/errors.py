# Overview: Domain error taxonomy shared by services and routes.

"""
Error taxonomy

- ValidationError: malformed input, detected before any write (400)
- NotFoundError: a referenced id/code does not exist (404)
- InsufficientStockError: a decrement would drive a stock row negative (409)
- ConflictError / DuplicateKeyError: unique-constraint or in-use conflicts (409)
- ImportRowError: a single import row failed; never aborts the batch
- IntegrationError: persistence failure; the enclosing transaction was rolled back (500)
"""

from __future__ import annotations


class ValidationError(ValueError):
    """400-level input problem."""


class NotFoundError(ValueError):
    """Referenced entity does not exist."""


class InsufficientStockError(ValueError):
    """A decrement would make current_quantity negative."""

    def __init__(self, message: str, *, size_row_id: int | None = None, available: int | None = None, requested: int | None = None):
        super().__init__(message)
        self.size_row_id = size_row_id
        self.available = available
        self.requested = requested


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., category still in use)."""


class DuplicateKeyError(ConflictError):
    """Unique constraint violation (codes, names, stock row keys)."""


class ImportRowError(ValueError):
    """Row-scoped import failure."""

    def __init__(self, row_number: int, message: str):
        super().__init__(f"[Row {row_number}] {message}")
        self.row_number = row_number
        self.detail = message


class IntegrationError(RuntimeError):
    """Underlying persistence failure; the transaction did not commit."""


def http_status_for(exc: Exception) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, (InsufficientStockError, ConflictError)):
        return 409
    if isinstance(exc, ValueError):
        return 400
    return 500


def error_body(exc: Exception) -> dict:
    """JSON body for a domain error: {"error": message} plus any structured fields."""
    body = {"error": str(exc)}
    if isinstance(exc, InsufficientStockError):
        body["size_row_id"] = exc.size_row_id
        body["available"] = exc.available
        body["requested"] = exc.requested
    elif isinstance(exc, ImportRowError):
        body["row_number"] = exc.row_number
    return body
