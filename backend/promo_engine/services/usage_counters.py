# Overview: Atomic usage counters for catalog discounts and customer assignments.

"""
Usage counters

WHY: The same catalog discount can be applied concurrently on many orders
across venues. Counters are moved with a single UPDATE ... SET col = col + 1
so concurrent transactions never lose an increment. Read-modify-write on
the ORM attribute is never used for these columns.

Decrements never take a counter below zero.
"""

from __future__ import annotations

from ..extensions import db
from ..models import CustomerDiscount, Discount


def increment_discount_uses(discount_id: int) -> int:
    """Returns the number of rows updated (0 if the discount no longer exists)."""
    return db.session.query(Discount).filter(Discount.id == discount_id).update(
        {Discount.current_uses: Discount.current_uses + 1},
        synchronize_session=False,
    )


def decrement_discount_uses(discount_id: int) -> int:
    return db.session.query(Discount).filter(
        Discount.id == discount_id,
        Discount.current_uses > 0,
    ).update(
        {Discount.current_uses: Discount.current_uses - 1},
        synchronize_session=False,
    )


def increment_assignment_usage(customer_discount_id: int) -> int:
    return db.session.query(CustomerDiscount).filter(CustomerDiscount.id == customer_discount_id).update(
        {CustomerDiscount.usage_count: CustomerDiscount.usage_count + 1},
        synchronize_session=False,
    )


def decrement_assignment_usage(customer_discount_id: int) -> int:
    return db.session.query(CustomerDiscount).filter(
        CustomerDiscount.id == customer_discount_id,
        CustomerDiscount.usage_count > 0,
    ).update(
        {CustomerDiscount.usage_count: CustomerDiscount.usage_count - 1},
        synchronize_session=False,
    )
