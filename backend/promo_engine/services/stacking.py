# Overview: Priority ordering and stackability resolution for candidate discounts.

"""
Stack resolution

Candidates are processed highest priority first (then highest
stack_priority). Discounts already on the order are treated as taken:
- a discount already on the order is skipped
- a non-stackable discount is only taken if nothing else has been taken,
  and once taken nothing else is, in this pass or a later one
- zero-value discounts are dropped

Every candidate is calculated against the undiscounted order context; the
selected discounts do not compound on each other.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from .discount_calculator import DEFAULT_TAX_RATE_BPS, calculate_discount_amount
from .discount_context import AppliedDiscountInfo, CalculationResult, OrderContext
from .discount_rules import DiscountRule


def sort_by_priority(rules: Iterable[DiscountRule]) -> list[DiscountRule]:
    return sorted(rules, key=lambda r: (-r.priority, -r.stack_priority))


def merge_candidates(catalog_rules: Iterable[DiscountRule],
                     customer_rules: Iterable[DiscountRule]) -> list[DiscountRule]:
    """Merge catalog and customer-assigned rules; the customer variant wins on duplicate ids."""
    merged: dict[int, DiscountRule] = {}
    for rule in catalog_rules:
        merged.setdefault(rule.id, rule)
    for rule in customer_rules:
        merged[rule.id] = rule
    return sort_by_priority(merged.values())


def resolve_stack(rules: Sequence[DiscountRule], context: OrderContext,
                  tax_rate_bps: int = DEFAULT_TAX_RATE_BPS) -> list[CalculationResult]:
    """
    Select the discounts to apply, in the order they should be applied.

    Discounts already on the order count as selected: an applied
    non-stackable discount blocks everything, and any applied discount
    blocks further non-stackable ones.
    """
    if any(not a.is_stackable for a in context.applied_discounts):
        return []

    already_applied = context.applied_discount_ids
    order_has_discounts = bool(context.applied_discounts)
    selected: list[CalculationResult] = []
    non_stackable_selected = False

    for rule in rules:
        if rule.id in already_applied:
            continue
        if not rule.is_stackable and (non_stackable_selected or selected or order_has_discounts):
            continue
        if non_stackable_selected:
            break

        calculation = calculate_discount_amount(rule, context, tax_rate_bps)
        if calculation.amount_cents <= 0:
            continue

        selected.append(calculation)
        if not rule.is_stackable:
            non_stackable_selected = True

    return selected


def conflicts_with_applied(rule: DiscountRule, applied: Iterable[AppliedDiscountInfo]) -> bool:
    """
    Whether adding `rule` to an order would break exclusivity with the
    discounts already on it.
    """
    applied = list(applied)
    if not applied:
        return False
    if not rule.is_stackable:
        return True
    return any(not a.is_stackable for a in applied)
