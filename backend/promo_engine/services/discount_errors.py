# Overview: Error taxonomy and structured results for discount application.

"""
Discount errors and results

Evaluation problems never raise: an ineligible or zero-value discount is
simply left out. Application problems come back as an ApplyResult with
success=False so bulk callers can keep going. Only conditions the caller
cannot branch on (order missing during evaluation, malformed rule data,
storage failures) are raised.
"""

from __future__ import annotations

from dataclasses import dataclass


class DiscountError(Exception):
    """Raised for discount operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class DiscountNotFoundError(DiscountError):
    """Order (or other required aggregate) does not exist."""


class DiscountValidationError(DiscountError):
    """Discount rule or manual discount input is malformed."""


# =============================================================================
# RESULT CODES (CONSTANTS)
# =============================================================================

ERROR_NOT_FOUND = "NOT_FOUND"
ERROR_ALREADY_APPLIED = "ALREADY_APPLIED"
ERROR_APPROVAL_REQUIRED = "APPROVAL_REQUIRED"
ERROR_VALIDATION = "VALIDATION_ERROR"
ERROR_ORDER_PAID = "ORDER_PAID"
ERROR_NOT_APPLICABLE = "NOT_APPLICABLE"


@dataclass(frozen=True)
class ApplyResult:
    success: bool
    amount_cents: int = 0
    new_order_total_cents: int = 0
    order_discount_id: int | None = None
    error_code: str | None = None
    error: str | None = None

    @classmethod
    def ok(cls, amount_cents: int, new_order_total_cents: int, order_discount_id: int | None = None) -> "ApplyResult":
        return cls(
            success=True,
            amount_cents=amount_cents,
            new_order_total_cents=new_order_total_cents,
            order_discount_id=order_discount_id,
        )

    @classmethod
    def failure(cls, error_code: str, error: str, new_order_total_cents: int = 0) -> "ApplyResult":
        return cls(
            success=False,
            new_order_total_cents=new_order_total_cents,
            error_code=error_code,
            error=error,
        )

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "amount_cents": self.amount_cents,
            "new_order_total_cents": self.new_order_total_cents,
            "order_discount_id": self.order_discount_id,
            "error_code": self.error_code,
            "error": self.error,
        }
