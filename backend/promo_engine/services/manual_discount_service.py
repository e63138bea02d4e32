# Overview: Service-layer ad-hoc (staff-entered) discounts and comps.

"""
Manual discounts

Not backed by a catalog record: discount_id is NULL, there is no tax
reduction, and the row is flagged is_manual. The amount is taken from the
order's live subtotal inside the same transaction that writes it.

- PERCENTAGE: value in basis points, 0..10000 inclusive
- FIXED_AMOUNT: value in cents, never more than the subtotal
- COMP: needs an authorizer; comps whatever is not already discounted
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import OrderDiscount
from promo_engine.money import FULL_BPS, apply_bps, format_cents, round_cents
from .concurrency import run_with_retry
from .discount_context import TYPE_COMP, TYPE_FIXED_AMOUNT, TYPE_PERCENTAGE, VALID_DISCOUNT_TYPES
from .discount_errors import (
    ApplyResult,
    ERROR_APPROVAL_REQUIRED,
    ERROR_NOT_FOUND,
    ERROR_ORDER_PAID,
    ERROR_VALIDATION,
)
from .discount_service import PAYMENT_STATUS_PAID, adjust_order_totals, lock_order


def validate_manual_discount(discount_type: str, value: int) -> str | None:
    """Returns an error message, or None if the input is acceptable."""
    if discount_type not in VALID_DISCOUNT_TYPES:
        return f"Invalid discount type: {discount_type}. Must be one of {VALID_DISCOUNT_TYPES}"
    if discount_type == TYPE_PERCENTAGE and not (0 <= value <= FULL_BPS):
        return f"Percentage must be between 0 and {FULL_BPS} basis points"
    if discount_type == TYPE_FIXED_AMOUNT and value < 0:
        return "Fixed amount cannot be negative"
    return None


def apply_manual_discount(
    order_id: int,
    discount_type: str,
    value: int,
    name: str,
    applied_by: int | None,
    authorized_by: int | None = None,
    comp_reason: str | None = None,
) -> ApplyResult:
    """
    Apply a staff-entered discount or comp to an order.

    Args:
        order_id: Order being discounted
        discount_type: PERCENTAGE, FIXED_AMOUNT or COMP
        value: Basis points (PERCENTAGE) or cents (FIXED_AMOUNT); ignored for COMP
        name: Label shown on the receipt
        applied_by: User entering the discount
        authorized_by: Manager authorizing it (required for COMP)
        comp_reason: Free-text reason, kept with comps

    Returns:
        ApplyResult; failures are NOT_FOUND, ORDER_PAID, VALIDATION_ERROR and
        APPROVAL_REQUIRED
    """
    value = value or 0

    def _op() -> ApplyResult:
        order = lock_order(order_id)
        if not order:
            db.session.rollback()
            return ApplyResult.failure(ERROR_NOT_FOUND, f"Order {order_id} not found")

        current_total = order.total_cents
        if order.payment_status == PAYMENT_STATUS_PAID:
            db.session.rollback()
            return ApplyResult.failure(ERROR_ORDER_PAID, "Cannot discount a paid order", current_total)

        error = validate_manual_discount(discount_type, value)
        if error:
            db.session.rollback()
            return ApplyResult.failure(ERROR_VALIDATION, error, current_total)

        if discount_type == TYPE_COMP and not authorized_by:
            db.session.rollback()
            return ApplyResult.failure(ERROR_APPROVAL_REQUIRED, "Comps require manager authorization", current_total)

        if discount_type == TYPE_PERCENTAGE:
            amount = round_cents(apply_bps(order.subtotal_cents, value))
        elif discount_type == TYPE_FIXED_AMOUNT:
            amount = min(value, order.subtotal_cents)
        else:
            amount = max(0, order.subtotal_cents - order.discount_cents)

        order_discount = OrderDiscount(
            order_id=order_id,
            discount_id=None,
            discount_type=discount_type,
            name=name,
            value=value,
            amount_cents=amount,
            tax_reduction_cents=0,
            is_automatic=False,
            is_manual=True,
            is_comp=discount_type == TYPE_COMP,
            comp_reason=comp_reason if discount_type == TYPE_COMP else None,
            applied_by_user_id=applied_by,
            authorized_by_user_id=authorized_by,
        )
        db.session.add(order_discount)
        adjust_order_totals(order, amount, 0)
        db.session.commit()

        current_app.logger.info(
            "Manual %s %r on order %s: %s off, total now %s",
            discount_type, name, order_id, format_cents(amount), format_cents(order.total_cents),
        )
        return ApplyResult.ok(amount, order.total_cents, order_discount.id)

    return run_with_retry(_op)
