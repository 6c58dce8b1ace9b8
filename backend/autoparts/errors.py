# Overview: Exception hierarchy shared by services and routes.

"""
Retail error taxonomy.

Every service-level failure is a RetailError carrying a short human-readable
message, optional structured details and the HTTP status the API layer
returns for it. Routes catch RetailError and render it as JSON; anything else
is logged and turned into a 500.
"""

from __future__ import annotations


class RetailError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 400
    code = "error"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(RetailError, ValueError):
    """400-level input problem (missing required field, bad value)."""

    code = "validation_error"


class ConflictError(RetailError, ValueError):
    """409-level business rule conflict (e.g., duplicate part number)."""

    status_code = 409
    code = "conflict"


class StateError(RetailError):
    """Operation is not allowed in the record's current state."""

    status_code = 409
    code = "invalid_state"


class NotFound(RetailError):
    status_code = 404
    code = "not_found"


class InsufficientStock(RetailError):
    """Requested quantity exceeds what is available."""

    status_code = 409
    code = "insufficient_stock"


class ExceedsOrdered(RetailError):
    """Receiving more than was ordered on a purchase order line."""

    status_code = 409
    code = "exceeds_ordered"


class DiscountInvalid(RetailError):
    """A discount code cannot be applied; `reason` says why."""

    status_code = 422
    code = "discount_invalid"
    reason = "invalid"

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["reason"] = self.reason
        return payload


class DiscountNotFound(DiscountInvalid, NotFound):
    status_code = 404
    reason = "not_found"


class DiscountExpired(DiscountInvalid):
    reason = "expired"


class DiscountNotStarted(DiscountInvalid):
    reason = "not_started"


class DiscountUsageExceeded(DiscountInvalid):
    reason = "usage_exceeded"


class DiscountMinimumNotMet(DiscountInvalid):
    reason = "minimum_not_met"


class PersistenceError(RetailError):
    """The underlying database call failed."""

    status_code = 503
    code = "persistence_error"


class AuthError(RetailError):
    status_code = 401
    code = "unauthorized"


class PermissionDenied(RetailError):
    status_code = 403
    code = "forbidden"
