# Overview: Storage-free snapshots of an order and of calculated discounts.

"""
Order context for discount evaluation

WHY: Evaluation is a pure function of (order snapshot, discount rules).
The snapshot is rebuilt from the Order aggregate on every evaluation and is
never persisted, so evaluation can run as often as the cart changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field


# =============================================================================
# DISCOUNT TYPES (CONSTANTS)
# =============================================================================

TYPE_PERCENTAGE = "PERCENTAGE"
TYPE_FIXED_AMOUNT = "FIXED_AMOUNT"
TYPE_COMP = "COMP"

VALID_DISCOUNT_TYPES = [
    TYPE_PERCENTAGE,
    TYPE_FIXED_AMOUNT,
    TYPE_COMP,
]


@dataclass(frozen=True)
class LineModifier:
    modifier_id: int
    group_id: int
    price_cents: int


@dataclass(frozen=True)
class OrderLine:
    id: int
    product_id: int
    category_id: int | None
    quantity: int
    unit_price_cents: int
    line_total_cents: int
    modifiers: tuple[LineModifier, ...] = ()
    tax_rate_bps: int | None = None


@dataclass(frozen=True)
class AppliedDiscountInfo:
    discount_id: int | None
    amount_cents: int
    is_automatic: bool
    is_stackable: bool = True


@dataclass(frozen=True)
class OrderContext:
    order_id: int
    venue_id: int
    subtotal_cents: int
    customer_id: int | None = None
    lines: tuple[OrderLine, ...] = ()
    applied_discounts: tuple[AppliedDiscountInfo, ...] = ()

    @property
    def line_ids(self) -> list[int]:
        return [line.id for line in self.lines]

    @property
    def applied_discount_ids(self) -> set[int]:
        return {a.discount_id for a in self.applied_discounts if a.discount_id is not None}


@dataclass(frozen=True)
class CalculationResult:
    """Outcome of calculating one discount against one order context."""
    discount_id: int | None
    name: str
    discount_type: str
    value: int
    amount_cents: int
    tax_reduction_cents: int
    touched_line_ids: tuple[int, ...] = field(default_factory=tuple)
    is_automatic: bool = False
    requires_approval: bool = False
    customer_discount_id: int | None = None

    def to_dict(self) -> dict:
        return {
            "discount_id": self.discount_id,
            "name": self.name,
            "discount_type": self.discount_type,
            "value": self.value,
            "amount_cents": self.amount_cents,
            "tax_reduction_cents": self.tax_reduction_cents,
            "touched_line_ids": list(self.touched_line_ids),
            "is_automatic": self.is_automatic,
            "requires_approval": self.requires_approval,
            "customer_discount_id": self.customer_discount_id,
        }


def build_order_context(order) -> OrderContext:
    """
    Snapshot an Order aggregate for evaluation.

    Lines whose product was deleted from the catalog are skipped, as are
    modifiers whose catalog modifier was deleted.
    """
    lines = []
    for item in order.items:
        if item.product_id is None or item.product is None:
            continue
        modifiers = tuple(
            LineModifier(
                modifier_id=m.modifier.id,
                group_id=m.modifier.group_id,
                price_cents=m.modifier.price_cents,
            )
            for m in item.modifiers
            if m.modifier is not None
        )
        lines.append(OrderLine(
            id=item.id,
            product_id=item.product_id,
            category_id=item.product.category_id,
            quantity=item.quantity,
            unit_price_cents=item.unit_price_cents,
            line_total_cents=item.line_total_cents,
            modifiers=modifiers,
            tax_rate_bps=item.product.tax_rate_bps,
        ))

    applied = tuple(
        AppliedDiscountInfo(
            discount_id=od.discount_id,
            amount_cents=od.amount_cents,
            is_automatic=od.is_automatic,
            is_stackable=od.discount.is_stackable if od.discount is not None else True,
        )
        for od in order.order_discounts
    )

    return OrderContext(
        order_id=order.id,
        venue_id=order.venue_id,
        customer_id=order.customer_id,
        subtotal_cents=order.subtotal_cents,
        lines=tuple(lines),
        applied_discounts=applied,
    )
