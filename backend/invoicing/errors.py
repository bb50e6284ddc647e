# Overview: Typed error taxonomy shared by services, routes and the CLI.

"""
Invoicing error hierarchy.

Every error carries a stable machine-checkable ``kind`` and the HTTP status
the API layer maps it to. Messages are safe to show to callers; store
exception text is never put into a message (it is logged instead).

    InvoicingError
    +-- InvalidIdentifierError   400  malformed entity id, raised before any lookup
    +-- ValidationError          400  missing/malformed fields, bad item data
    +-- NotFoundError            404  worker, branch, invoice, catalog item
    +-- ConflictError            409  duplicate reference number
    +-- ForbiddenError           403  role/scope denial (carries reason code)
    +-- PersistenceError         500  store write failure
    +-- DeliveryError            502  notification send failure (non-fatal)
"""

from __future__ import annotations


class InvoicingError(Exception):
    kind = "InvoicingError"
    http_status = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {
            "success": False,
            "error": self.kind,
            "message": self.message,
        }
        if self.details:
            body["details"] = self.details
        return body


class InvalidIdentifierError(InvoicingError):
    kind = "InvalidIdentifier"
    http_status = 400


class ValidationError(InvoicingError, ValueError):
    """400-level input problem."""
    kind = "ValidationError"
    http_status = 400


class NotFoundError(InvoicingError):
    kind = "NotFound"
    http_status = 404


class ConflictError(InvoicingError, ValueError):
    """409-level business rule conflict (e.g., duplicate SR number)."""
    kind = "Conflict"
    http_status = 409


class ForbiddenError(InvoicingError):
    kind = "Forbidden"
    http_status = 403

    def __init__(self, message: str, reason: str, details: dict | None = None):
        super().__init__(message, details={**(details or {}), "reason": reason})
        self.reason = reason


class PersistenceError(InvoicingError):
    kind = "PersistenceError"
    http_status = 500


class DeliveryError(InvoicingError):
    kind = "DeliveryError"
    http_status = 502
