# Overview: Service-layer discount evaluation and application; encapsulates business logic and database work.

"""
Discount Application Service

WHY: Turn evaluated discounts into persisted OrderDiscount rows and keep the
order totals consistent while doing it. This is the only module (together
with manual_discount_service) that writes discount effects to an order.

DESIGN PRINCIPLES:
- Evaluation is read-only and may run on every cart change
- Each apply/remove is one transaction scoped to the locked order row
- The "already applied" check happens inside that transaction; the unique
  constraint on (order_id, discount_id) is the backstop
- Usage counters move through atomic UPDATEs only
- Expected failures come back as ApplyResult, never as exceptions
- After every apply/remove:
      total = subtotal - discount + tax + tip
      remaining_balance = max(0, total - paid)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Discount, Order, OrderDiscount
from promo_engine.money import apply_bps, format_cents, round_cents
from .bogo_calculator import calculate_bogo
from .concurrency import lock_for_update, run_with_retry
from .discount_calculator import DEFAULT_TAX_RATE_BPS
from .discount_context import (
    CalculationResult,
    OrderContext,
    TYPE_COMP,
    TYPE_FIXED_AMOUNT,
    TYPE_PERCENTAGE,
    build_order_context,
)
from .discount_errors import (
    ApplyResult,
    DiscountNotFoundError,
    ERROR_ALREADY_APPLIED,
    ERROR_APPROVAL_REQUIRED,
    ERROR_NOT_APPLICABLE,
    ERROR_NOT_FOUND,
    ERROR_ORDER_PAID,
)
from .discount_rules import DiscountRule
from .discount_scopes import QuantityTarget
from .eligibility_service import get_customer_discounts, get_eligible_discounts
from .stacking import conflicts_with_applied, merge_candidates, resolve_stack
from .usage_counters import (
    decrement_assignment_usage,
    decrement_discount_uses,
    increment_assignment_usage,
    increment_discount_uses,
)


# =============================================================================
# PAYMENT STATUS (CONSTANTS)
# =============================================================================

PAYMENT_STATUS_PAID = "PAID"


@dataclass
class AutomaticApplyResult:
    """Outcome of applying every automatic discount an evaluation selects."""
    success: bool
    applied: list[ApplyResult] = field(default_factory=list)
    total_discount_cents: int = 0
    new_order_total_cents: int = 0
    skipped_approval: list[str] = field(default_factory=list)
    error_code: str | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "applied": [r.to_dict() for r in self.applied],
            "total_discount_cents": self.total_discount_cents,
            "new_order_total_cents": self.new_order_total_cents,
            "skipped_approval": list(self.skipped_approval),
            "error_code": self.error_code,
            "error": self.error,
        }


# =============================================================================
# HELPERS
# =============================================================================

def _tax_rate_bps() -> int:
    return current_app.config.get("DISCOUNT_DEFAULT_TAX_RATE_BPS", DEFAULT_TAX_RATE_BPS)


def lock_order(order_id: int) -> Order | None:
    return lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()


def adjust_order_totals(order: Order, discount_delta_cents: int, tax_delta_cents: int) -> None:
    """
    Move the order's discount and tax by the given deltas and re-derive
    total and remaining balance. The discount total never goes below zero.
    """
    order.discount_cents = max(0, order.discount_cents + discount_delta_cents)
    order.tax_cents = order.tax_cents + tax_delta_cents
    order.recompute_totals()


def find_applied_discount(order_id: int, discount_id: int) -> int | None:
    """Id of the OrderDiscount row for this catalog discount, if any."""
    row = db.session.query(OrderDiscount.id).filter_by(order_id=order_id, discount_id=discount_id).first()
    return row[0] if row else None


def _get_order_or_raise(order_id: int, venue_id: int | None = None) -> Order:
    order = db.session.get(Order, order_id)
    if not order or (venue_id is not None and order.venue_id != venue_id):
        raise DiscountNotFoundError(
            f"Order {order_id} not found", details={"order_id": order_id, "venue_id": venue_id}
        )
    return order


def _candidate_rules(order: Order, customer_id: int | None, now: datetime | None,
                     automatic_only: bool) -> list[DiscountRule]:
    catalog = get_eligible_discounts(order.venue_id, customer_id, order.subtotal_cents, now=now)
    if automatic_only:
        catalog = [r for r in catalog if r.is_automatic]
    customer_rules: list[DiscountRule] = []
    if customer_id:
        customer_rules = get_customer_discounts(order.venue_id, customer_id, order.subtotal_cents, now=now)
    return merge_candidates(catalog, customer_rules)


# =============================================================================
# EVALUATION (read-only)
# =============================================================================

def evaluate_automatic_discounts(order_id: int, now: datetime | None = None) -> list[CalculationResult]:
    """
    Work out which automatic discounts should be applied to an order.

    Nothing is written. The result is in the order the discounts should be
    applied.

    Raises:
        DiscountNotFoundError: If the order does not exist
    """
    order = _get_order_or_raise(order_id)
    context = build_order_context(order)
    rules = _candidate_rules(order, order.customer_id, now, automatic_only=True)
    selected = resolve_stack(rules, context, _tax_rate_bps())
    current_app.logger.debug(
        "Order %s: %d automatic candidates, %d selected", order_id, len(rules), len(selected)
    )
    return selected


def estimate_savings_cents(rule: DiscountRule, context: OrderContext) -> int:
    """
    Rough savings for display only. BOGO rules are calculated against the
    order lines; everything else against the whole subtotal.
    """
    if isinstance(rule.target, QuantityTarget):
        return calculate_bogo(rule.target.terms, context, max_discount_cents=rule.max_discount_cents).amount_cents

    subtotal_cents = context.subtotal_cents
    if rule.discount_type == TYPE_PERCENTAGE:
        amount = round_cents(apply_bps(subtotal_cents, rule.value))
    elif rule.discount_type == TYPE_FIXED_AMOUNT:
        amount = min(rule.value, subtotal_cents)
    elif rule.discount_type == TYPE_COMP:
        amount = subtotal_cents
    else:
        amount = 0
    if rule.max_discount_cents is not None:
        amount = min(amount, rule.max_discount_cents)
    return max(0, amount)


def get_available_discounts(venue_id: int, order_id: int, customer_id: int | None = None,
                            now: datetime | None = None) -> list[dict]:
    """
    Discounts a cashier could apply to an order right now.

    Eligible catalog discounts plus the customer's assignments, minus the
    ones already on the order, each with an estimated saving.

    Raises:
        DiscountNotFoundError: If the order does not exist at this venue
    """
    order = _get_order_or_raise(order_id, venue_id)
    customer_id = customer_id or order.customer_id

    context = build_order_context(order)
    already_applied = context.applied_discount_ids
    rules = _candidate_rules(order, customer_id, now, automatic_only=False)

    available = []
    for rule in rules:
        if rule.id in already_applied:
            continue
        available.append({
            "discount_id": rule.id,
            "name": rule.name,
            "discount_type": rule.discount_type,
            "value": rule.value,
            "scope": rule.scope,
            "is_automatic": rule.is_automatic,
            "is_stackable": rule.is_stackable,
            "requires_approval": rule.requires_approval,
            "priority": rule.priority,
            "customer_discount_id": rule.customer_discount_id,
            "estimated_savings_cents": estimate_savings_cents(rule, context),
        })
    return available


# =============================================================================
# APPLICATION
# =============================================================================

def apply_discount_to_order(
    order_id: int,
    calc: CalculationResult,
    applied_by: int | None = None,
    authorized_by: int | None = None,
) -> ApplyResult:
    """
    Apply one calculated discount to an order.

    Args:
        order_id: Order being discounted
        calc: Calculation produced by the evaluation pass
        applied_by: User applying the discount (optional)
        authorized_by: Manager authorizing it (required when
            calc.requires_approval)

    Returns:
        ApplyResult; failures are NOT_FOUND, ORDER_PAID, ALREADY_APPLIED and
        APPROVAL_REQUIRED. Re-applying is safe: it returns ALREADY_APPLIED.
    """
    def _op() -> ApplyResult:
        order = lock_order(order_id)
        if not order:
            db.session.rollback()
            return ApplyResult.failure(ERROR_NOT_FOUND, f"Order {order_id} not found")

        current_total = order.total_cents
        if order.payment_status == PAYMENT_STATUS_PAID:
            db.session.rollback()
            return ApplyResult.failure(ERROR_ORDER_PAID, "Cannot discount a paid order", current_total)

        if calc.discount_id is not None:
            if find_applied_discount(order_id, calc.discount_id):
                db.session.rollback()
                return ApplyResult.failure(
                    ERROR_ALREADY_APPLIED, f"Discount {calc.name} is already applied", current_total
                )

        if calc.requires_approval and not authorized_by:
            db.session.rollback()
            return ApplyResult.failure(
                ERROR_APPROVAL_REQUIRED, f"Discount {calc.name} requires manager approval", current_total
            )

        order_discount = OrderDiscount(
            order_id=order_id,
            discount_id=calc.discount_id,
            customer_discount_id=calc.customer_discount_id,
            discount_type=calc.discount_type,
            name=calc.name,
            value=calc.value,
            amount_cents=calc.amount_cents,
            tax_reduction_cents=calc.tax_reduction_cents,
            is_automatic=calc.is_automatic,
            is_manual=False,
            is_comp=calc.discount_type == TYPE_COMP,
            applied_by_user_id=applied_by,
            authorized_by_user_id=authorized_by,
        )
        db.session.add(order_discount)
        adjust_order_totals(order, calc.amount_cents, -calc.tax_reduction_cents)

        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            return ApplyResult.failure(
                ERROR_ALREADY_APPLIED, f"Discount {calc.name} is already applied", current_total
            )

        if calc.discount_id is not None:
            increment_discount_uses(calc.discount_id)
        if calc.customer_discount_id is not None:
            increment_assignment_usage(calc.customer_discount_id)

        db.session.commit()
        current_app.logger.info(
            "Applied discount %r to order %s: %s off, total now %s",
            calc.name, order_id, format_cents(calc.amount_cents), format_cents(order.total_cents),
        )
        return ApplyResult.ok(calc.amount_cents, order.total_cents, order_discount.id)

    return run_with_retry(_op)


def remove_discount_from_order(order_id: int, order_discount_id: int) -> ApplyResult:
    """
    Remove an applied discount and reverse its effect on the order totals.

    Returns:
        ApplyResult whose amount_cents is the amount given back; failures
        are NOT_FOUND and ORDER_PAID
    """
    def _op() -> ApplyResult:
        order = lock_order(order_id)
        if not order:
            db.session.rollback()
            return ApplyResult.failure(ERROR_NOT_FOUND, f"Order {order_id} not found")

        order_discount = db.session.query(OrderDiscount).filter_by(
            id=order_discount_id, order_id=order_id
        ).first()
        if not order_discount:
            current_total = order.total_cents
            db.session.rollback()
            return ApplyResult.failure(
                ERROR_NOT_FOUND, f"Order discount {order_discount_id} not found on order {order_id}", current_total
            )

        if order.payment_status == PAYMENT_STATUS_PAID:
            current_total = order.total_cents
            db.session.rollback()
            return ApplyResult.failure(ERROR_ORDER_PAID, "Cannot remove a discount from a paid order", current_total)

        amount = order_discount.amount_cents
        name = order_discount.name
        discount_id = order_discount.discount_id
        customer_discount_id = order_discount.customer_discount_id

        db.session.delete(order_discount)
        adjust_order_totals(order, -amount, order_discount.tax_reduction_cents)

        if discount_id is not None:
            decrement_discount_uses(discount_id)
        if customer_discount_id is not None:
            decrement_assignment_usage(customer_discount_id)

        db.session.commit()
        current_app.logger.info(
            "Removed discount %r from order %s: %s restored, total now %s",
            name, order_id, format_cents(amount), format_cents(order.total_cents),
        )
        return ApplyResult.ok(amount, order.total_cents)

    return run_with_retry(_op)


def apply_automatic_discounts(order_id: int, applied_by: int | None = None,
                              now: datetime | None = None) -> AutomaticApplyResult:
    """
    Evaluate and apply every automatic discount for an order.

    Discounts that require approval are skipped here; they have to be
    applied explicitly with an authorizer. Each discount is applied in its
    own transaction, so one failure does not undo the others.
    """
    order = db.session.get(Order, order_id)
    if not order:
        return AutomaticApplyResult(success=False, error_code=ERROR_NOT_FOUND, error=f"Order {order_id} not found")
    if order.payment_status == PAYMENT_STATUS_PAID:
        return AutomaticApplyResult(
            success=False,
            new_order_total_cents=order.total_cents,
            error_code=ERROR_ORDER_PAID,
            error="Cannot discount a paid order",
        )

    result = AutomaticApplyResult(success=True, new_order_total_cents=order.total_cents)
    for calc in evaluate_automatic_discounts(order_id, now=now):
        if calc.requires_approval:
            current_app.logger.warning(
                "Skipping automatic discount %r on order %s: approval required", calc.name, order_id
            )
            result.skipped_approval.append(calc.name)
            continue

        applied = apply_discount_to_order(order_id, calc, applied_by=applied_by)
        if applied.success:
            result.applied.append(applied)
            result.total_discount_cents += applied.amount_cents
            result.new_order_total_cents = applied.new_order_total_cents

    current_app.logger.info(
        "Automatic discounts on order %s: %d applied, %s total",
        order_id, len(result.applied), format_cents(result.total_discount_cents),
    )
    return result


def apply_predefined_discount(
    venue_id: int,
    order_id: int,
    discount_id: int,
    applied_by: int | None,
    authorized_by: int | None = None,
    now: datetime | None = None,
) -> ApplyResult:
    """
    Apply a catalog discount picked by the cashier.

    The discount must be eligible for the order right now and must survive
    the same stacking rules as an automatic evaluation, otherwise the result
    is NOT_APPLICABLE.
    """
    order = db.session.get(Order, order_id)
    if not order or order.venue_id != venue_id:
        return ApplyResult.failure(ERROR_NOT_FOUND, f"Order {order_id} not found")

    discount = db.session.get(Discount, discount_id)
    if not discount or discount.venue_id != venue_id or not discount.active:
        return ApplyResult.failure(ERROR_NOT_FOUND, f"Discount {discount_id} not found", order.total_cents)

    if order.payment_status == PAYMENT_STATUS_PAID:
        return ApplyResult.failure(ERROR_ORDER_PAID, "Cannot discount a paid order", order.total_cents)

    context = build_order_context(order)
    if discount_id in context.applied_discount_ids:
        return ApplyResult.failure(
            ERROR_ALREADY_APPLIED, f"Discount {discount.name} is already applied", order.total_cents
        )

    rules = _candidate_rules(order, order.customer_id, now, automatic_only=False)
    rule = next((r for r in rules if r.id == discount_id), None)
    if rule is None:
        return ApplyResult.failure(
            ERROR_NOT_APPLICABLE, f"Discount {discount.name} is not eligible for this order", order.total_cents
        )
    if conflicts_with_applied(rule, context.applied_discounts):
        return ApplyResult.failure(
            ERROR_NOT_APPLICABLE,
            f"Discount {discount.name} cannot be combined with the discounts on this order",
            order.total_cents,
        )

    selected = resolve_stack([rule], context, _tax_rate_bps())
    if not selected:
        return ApplyResult.failure(
            ERROR_NOT_APPLICABLE, f"Discount {discount.name} does not reduce this order", order.total_cents
        )

    calc = replace(selected[0], is_automatic=False)
    return apply_discount_to_order(order_id, calc, applied_by=applied_by, authorized_by=authorized_by)


# =============================================================================
# REPORTING
# =============================================================================

def get_order_discounts_summary(order_id: int, venue_id: int | None = None) -> dict:
    """
    Discounts applied to an order, with staff names resolved.

    Args:
        order_id: Order to summarize
        venue_id: When given, the order must belong to this venue

    Raises:
        DiscountNotFoundError: If the order does not exist (at this venue)
    """
    order = _get_order_or_raise(order_id, venue_id)
    rows = db.session.query(OrderDiscount).filter_by(order_id=order_id).order_by(
        OrderDiscount.created_at.asc(), OrderDiscount.id.asc()
    ).all()

    discounts = []
    for od in rows:
        entry = od.to_dict()
        entry["applied_by"] = od.applied_by.full_name if od.applied_by else None
        entry["authorized_by"] = od.authorized_by.full_name if od.authorized_by else None
        entry["discount"] = {
            "id": od.discount.id,
            "name": od.discount.name,
            "discount_type": od.discount.discount_type,
            "scope": od.discount.scope,
        } if od.discount else None
        discounts.append(entry)

    return {
        "order_id": order.id,
        "discounts": discounts,
        "total_discount_cents": sum(od.amount_cents for od in rows),
        "total_tax_reduction_cents": sum(od.tax_reduction_cents for od in rows),
        "subtotal_cents": order.subtotal_cents,
        "discount_cents": order.discount_cents,
        "tax_cents": order.tax_cents,
        "total_cents": order.total_cents,
        "remaining_balance_cents": order.remaining_balance_cents,
    }
