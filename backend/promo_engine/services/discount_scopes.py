# Overview: Scope targets and the base amount a discount is computed over.

"""
Scope resolution

Each discount scope is its own target type carrying only the ids that
scope cares about. resolve_scope() maps (target, order context) to the
monetary base in cents plus the order lines the discount touches.

An empty id set resolves to a zero base; that is not an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from promo_engine.money import FULL_BPS
from .bogo_calculator import BogoTerms
from .discount_context import OrderContext
from .discount_errors import DiscountValidationError


# =============================================================================
# SCOPES (CONSTANTS)
# =============================================================================

SCOPE_ORDER = "ORDER"
SCOPE_ITEM = "ITEM"
SCOPE_CATEGORY = "CATEGORY"
SCOPE_MODIFIER = "MODIFIER"
SCOPE_MODIFIER_GROUP = "MODIFIER_GROUP"
SCOPE_CUSTOMER_GROUP = "CUSTOMER_GROUP"
SCOPE_QUANTITY = "QUANTITY"

VALID_SCOPES = [
    SCOPE_ORDER,
    SCOPE_ITEM,
    SCOPE_CATEGORY,
    SCOPE_MODIFIER,
    SCOPE_MODIFIER_GROUP,
    SCOPE_CUSTOMER_GROUP,
    SCOPE_QUANTITY,
]


@dataclass(frozen=True)
class OrderTarget:
    scope = SCOPE_ORDER


@dataclass(frozen=True)
class ItemTarget:
    product_ids: frozenset[int] = field(default_factory=frozenset)
    scope = SCOPE_ITEM


@dataclass(frozen=True)
class CategoryTarget:
    category_ids: frozenset[int] = field(default_factory=frozenset)
    scope = SCOPE_CATEGORY


@dataclass(frozen=True)
class ModifierTarget:
    modifier_ids: frozenset[int] = field(default_factory=frozenset)
    scope = SCOPE_MODIFIER


@dataclass(frozen=True)
class ModifierGroupTarget:
    group_ids: frozenset[int] = field(default_factory=frozenset)
    scope = SCOPE_MODIFIER_GROUP


@dataclass(frozen=True)
class CustomerGroupTarget:
    # Audience matching happens at eligibility time; the base is the whole order
    scope = SCOPE_CUSTOMER_GROUP


@dataclass(frozen=True)
class QuantityTarget:
    terms: BogoTerms
    scope = SCOPE_QUANTITY


ScopeTarget = Union[
    OrderTarget,
    ItemTarget,
    CategoryTarget,
    ModifierTarget,
    ModifierGroupTarget,
    CustomerGroupTarget,
    QuantityTarget,
]


@dataclass(frozen=True)
class ScopeBase:
    amount_cents: int
    line_ids: tuple[int, ...] = ()


def _ids(values) -> frozenset[int]:
    return frozenset(int(v) for v in (values or []))


def target_from_discount(discount) -> ScopeTarget:
    """
    Build the scope target for a Discount row.

    Raises:
        DiscountValidationError: unknown scope, or QUANTITY scope without
            buy/get quantities
    """
    scope = discount.scope
    if scope == SCOPE_ORDER:
        return OrderTarget()
    if scope == SCOPE_ITEM:
        return ItemTarget(product_ids=_ids(discount.target_product_ids))
    if scope == SCOPE_CATEGORY:
        return CategoryTarget(category_ids=_ids(discount.target_category_ids))
    if scope == SCOPE_MODIFIER:
        return ModifierTarget(modifier_ids=_ids(discount.target_modifier_ids))
    if scope == SCOPE_MODIFIER_GROUP:
        return ModifierGroupTarget(group_ids=_ids(discount.target_modifier_group_ids))
    if scope == SCOPE_CUSTOMER_GROUP:
        return CustomerGroupTarget()
    if scope == SCOPE_QUANTITY:
        terms = BogoTerms(
            buy_quantity=discount.buy_quantity,
            get_quantity=discount.get_quantity,
            get_discount_bps=discount.get_discount_bps if discount.get_discount_bps is not None else FULL_BPS,
            buy_product_ids=_ids(discount.buy_product_ids),
            get_product_ids=_ids(discount.get_product_ids),
        )
        return QuantityTarget(terms=terms)
    raise DiscountValidationError(f"Invalid discount scope: {scope}. Must be one of {VALID_SCOPES}")


def resolve_scope(target: ScopeTarget, context: OrderContext) -> ScopeBase:
    if isinstance(target, (OrderTarget, CustomerGroupTarget)):
        return ScopeBase(amount_cents=context.subtotal_cents, line_ids=tuple(context.line_ids))

    if isinstance(target, ItemTarget):
        lines = [line for line in context.lines if line.product_id in target.product_ids]
        return ScopeBase(
            amount_cents=sum(line.line_total_cents for line in lines),
            line_ids=tuple(line.id for line in lines),
        )

    if isinstance(target, CategoryTarget):
        lines = [line for line in context.lines if line.category_id in target.category_ids]
        return ScopeBase(
            amount_cents=sum(line.line_total_cents for line in lines),
            line_ids=tuple(line.id for line in lines),
        )

    if isinstance(target, (ModifierTarget, ModifierGroupTarget)):
        total = 0
        line_ids = []
        for line in context.lines:
            if isinstance(target, ModifierTarget):
                matching = [m for m in line.modifiers if m.modifier_id in target.modifier_ids]
            else:
                matching = [m for m in line.modifiers if m.group_id in target.group_ids]
            if matching:
                total += sum(m.price_cents for m in matching)
                line_ids.append(line.id)
        return ScopeBase(amount_cents=total, line_ids=tuple(line_ids))

    if isinstance(target, QuantityTarget):
        # BOGO amounts come from calculate_bogo(), never from a scope base
        return ScopeBase(amount_cents=0)

    raise DiscountValidationError(f"Unsupported scope target: {target!r}")
