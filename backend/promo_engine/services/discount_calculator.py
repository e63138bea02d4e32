# Overview: Discount amount calculation by type and scope.

"""
Discount amount calculator

DESIGN:
- PERCENTAGE: base * value / 10000 (value in basis points)
- FIXED_AMOUNT: min(value, base), never more than the base
- COMP: the whole scoped base (not necessarily the whole order)
- QUANTITY scope is delegated entirely to the BOGO calculator
- max_discount_cents caps the amount
- Before-tax discounts estimate the tax they remove with an average rate
- Amount and tax reduction are rounded to whole cents, half-up
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from promo_engine.money import apply_bps, round_cents
from .bogo_calculator import calculate_bogo
from .discount_context import (
    CalculationResult,
    OrderContext,
    TYPE_COMP,
    TYPE_FIXED_AMOUNT,
    TYPE_PERCENTAGE,
)
from .discount_errors import DiscountValidationError
from .discount_rules import DiscountRule
from .discount_scopes import QuantityTarget, resolve_scope

DEFAULT_TAX_RATE_BPS = 1600


def estimate_average_tax_rate_bps(line_ids: Iterable[int], context: OrderContext,
                                  default_bps: int = DEFAULT_TAX_RATE_BPS) -> int:
    """
    Average tax rate over the touched lines.

    Always the configured default: per-line tax rates are carried on the
    context but are not used for the estimate yet.
    """
    return default_bps


def _result(rule: DiscountRule, amount_cents: int, tax_reduction_cents: int, line_ids) -> CalculationResult:
    return CalculationResult(
        discount_id=rule.id,
        name=rule.name,
        discount_type=rule.discount_type,
        value=rule.value,
        amount_cents=amount_cents,
        tax_reduction_cents=tax_reduction_cents,
        touched_line_ids=tuple(line_ids),
        is_automatic=rule.is_automatic,
        requires_approval=rule.requires_approval,
        customer_discount_id=rule.customer_discount_id,
    )


def calculate_discount_amount(rule: DiscountRule, context: OrderContext,
                              tax_rate_bps: int = DEFAULT_TAX_RATE_BPS) -> CalculationResult:
    """Calculate what `rule` takes off `context`, without touching storage."""
    if isinstance(rule.target, QuantityTarget):
        bogo = calculate_bogo(rule.target.terms, context, max_discount_cents=rule.max_discount_cents)
        tax_reduction = 0
        if rule.apply_before_tax:
            rate = estimate_average_tax_rate_bps(bogo.line_ids, context, tax_rate_bps)
            tax_reduction = round_cents(apply_bps(bogo.amount_cents, rate))
        return _result(rule, bogo.amount_cents, tax_reduction, bogo.line_ids)

    base = resolve_scope(rule.target, context)
    base_amount = Decimal(max(base.amount_cents, 0))

    if rule.discount_type == TYPE_PERCENTAGE:
        amount = min(apply_bps(base_amount, rule.value), base_amount)
    elif rule.discount_type == TYPE_FIXED_AMOUNT:
        amount = min(Decimal(rule.value), base_amount)
    elif rule.discount_type == TYPE_COMP:
        amount = base_amount
    else:
        raise DiscountValidationError(f"Invalid discount type: {rule.discount_type}")

    amount = max(amount, Decimal(0))
    if rule.max_discount_cents is not None:
        amount = min(amount, Decimal(rule.max_discount_cents))

    tax_reduction = Decimal(0)
    if rule.apply_before_tax:
        rate = estimate_average_tax_rate_bps(base.line_ids, context, tax_rate_bps)
        tax_reduction = apply_bps(amount, rate)

    return _result(rule, round_cents(amount), round_cents(tax_reduction), base.line_ids)
