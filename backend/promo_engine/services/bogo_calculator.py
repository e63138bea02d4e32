# Overview: Buy-X-Get-Y quantity discount calculation.

"""
BOGO calculator

Every full set of `buy_quantity` units in the buy pool earns
`get_quantity` discounted units from the get pool. Discounted units are
always the cheapest eligible ones.

An empty buy/get product list means "any line on the order". The same
unit may count towards the buy threshold and be discounted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from promo_engine.money import FULL_BPS, apply_bps, round_cents
from .discount_context import OrderContext
from .discount_errors import DiscountValidationError


@dataclass(frozen=True)
class BogoTerms:
    buy_quantity: int
    get_quantity: int
    get_discount_bps: int = FULL_BPS
    buy_product_ids: frozenset[int] = field(default_factory=frozenset)
    get_product_ids: frozenset[int] = field(default_factory=frozenset)

    def __post_init__(self):
        if self.buy_quantity is None or self.buy_quantity <= 0:
            raise DiscountValidationError("BOGO discount requires a positive buy_quantity")
        if self.get_quantity is None or self.get_quantity <= 0:
            raise DiscountValidationError("BOGO discount requires a positive get_quantity")
        if not 0 <= self.get_discount_bps <= FULL_BPS:
            raise DiscountValidationError("BOGO get_discount_bps must be between 0 and 10000")


@dataclass(frozen=True)
class BogoResult:
    amount_cents: int
    line_ids: tuple[int, ...] = ()


def calculate_bogo(terms: BogoTerms, context: OrderContext, max_discount_cents: int | None = None) -> BogoResult:
    buy_lines = [
        line for line in context.lines
        if not terms.buy_product_ids or line.product_id in terms.buy_product_ids
    ]
    get_lines = [
        line for line in context.lines
        if not terms.get_product_ids or line.product_id in terms.get_product_ids
    ]

    total_buy_qty = sum(line.quantity for line in buy_lines)
    qualifying_sets = total_buy_qty // terms.buy_quantity
    if qualifying_sets <= 0:
        return BogoResult(amount_cents=0)

    remaining = qualifying_sets * terms.get_quantity
    discount = Decimal(0)
    touched: list[int] = []

    # Stable sort: equal prices keep order-line order
    for line in sorted(get_lines, key=lambda line: line.unit_price_cents):
        if remaining <= 0:
            break
        units = min(line.quantity, remaining)
        if units <= 0:
            continue
        discount += apply_bps(line.unit_price_cents * units, terms.get_discount_bps)
        remaining -= units
        touched.append(line.id)

    if max_discount_cents is not None:
        discount = min(discount, Decimal(max_discount_cents))

    return BogoResult(amount_cents=round_cents(discount), line_ids=tuple(touched))
