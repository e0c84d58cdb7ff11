"""
Error taxonomy for the sale and inventory core.

Every error is scoped to a single request. status_code is the HTTP status the
routes answer with; details is merged into the JSON error body.
"""

from __future__ import annotations


class PosError(Exception):
    """Base class for request-scoped domain errors."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "details": self.details}


class UnauthorizedError(PosError):
    """No identity, role not permitted, or inactive account."""

    def __init__(self, reason: str, message: str | None = None):
        super().__init__(message or _REASON_MESSAGES.get(reason, reason), {"reason": reason})
        self.reason = reason

    @property
    def status_code(self) -> int:
        return 401 if self.reason == "unauthenticated" else 403


class InvalidInputError(PosError):
    """Malformed cart or amounts; the caller must correct the input."""

    status_code = 400


class NotFoundError(PosError):
    status_code = 404


class InsufficientStockError(PosError):
    """Requested quantity exceeds the stock on hand."""

    status_code = 409

    def __init__(self, product_id: int, available: int, requested: int, items: list[dict] | None = None):
        details = {
            "product_id": product_id,
            "available": available,
            "requested": requested,
        }
        if items:
            details["items"] = items
        super().__init__(
            f"Insufficient stock for product {product_id}: available {available}, requested {requested}",
            details,
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class ConsistencyFailureError(PosError):
    """
    A multi-step commit failed after it started writing.

    Raised only after the transaction has been rolled back.
    """

    status_code = 500


_REASON_MESSAGES = {
    "unauthenticated": "Authentication required",
    "forbidden": "Permission denied",
}
