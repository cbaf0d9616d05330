# Overview: Typed failures raised by the inventory and order workflows.

"""
Every workflow failure is an OperationError subclass carrying:
- code: stable machine-readable identifier (returned to API clients)
- status_code: HTTP status the routes map it to
- details: structured context (e.g. the short products of a stock check)

A raised OperationError always means the transaction was rolled back and no
state changed.
"""

from __future__ import annotations


class OperationError(Exception):
    code = "OPERATION_FAILED"
    status_code = 409

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class NotFoundError(OperationError):
    code = "NOT_FOUND"
    status_code = 404


class OutOfStockError(OperationError):
    """details["items"]: [{product_id, requested_quantity, on_hand}, ...]"""
    code = "OUT_OF_STOCK"


class ExceedsRemainingError(OperationError):
    code = "EXCEEDS_REMAINING"


class ConvertedToSaleError(OperationError):
    code = "CONVERTED_TO_SALE"


class NothingOutstandingError(OperationError):
    code = "NOTHING_OUTSTANDING"


class HasReceivedItemsError(OperationError):
    code = "HAS_RECEIVED_ITEMS"


class HasReturnedItemsError(OperationError):
    code = "HAS_RETURNED_ITEMS"


class HasPaidInstallmentsError(OperationError):
    code = "HAS_PAID_INSTALLMENTS"


class AlreadyPaidError(OperationError):
    code = "ALREADY_PAID"


class InUseError(OperationError):
    """A catalog record still referenced by a purchase, loan or sale."""
    code = "IN_USE"
