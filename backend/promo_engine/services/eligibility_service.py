# Overview: Service-layer eligibility filtering of the discount catalog.

"""
Discount eligibility

WHY: Narrow a venue's catalog to the discounts that could apply right now,
for this customer, at this order size. Read-only; safe to call as often as
the cart changes.

A catalog discount is eligible when all of these hold:
1. active
2. inside valid_from / valid_until
3. today (venue-local, 0 = Sunday) is in days_of_week, when set
4. now (venue-local) is inside time_from / time_until; a window where
   from > until wraps past midnight
5. current_uses < max_total_uses, when set
6. order subtotal >= min_purchase_cents, when both are known
7. the customer's prior uses < max_uses_per_customer, when both are known
8. for group-targeted discounts, the customer belongs to the group

Malformed rules are logged and left out; eligibility never raises for them.
"""

from __future__ import annotations

from datetime import datetime, time

from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..models import Customer, CustomerDiscount, Discount, Order, OrderDiscount, Venue
from promo_engine.time_utils import js_weekday, to_utc_naive, to_venue_local, utcnow
from .discount_errors import DiscountValidationError
from .discount_rules import DiscountRule
from .stacking import sort_by_priority


# =============================================================================
# WINDOW PREDICATES (pure)
# =============================================================================

def _parse_hhmm(value: str) -> time:
    try:
        return time.fromisoformat(value.strip())
    except ValueError:
        raise DiscountValidationError(f"Invalid time of day: {value!r} (expected HH:MM)")


def is_within_validity(valid_from: datetime | None, valid_until: datetime | None, now: datetime) -> bool:
    valid_from = to_utc_naive(valid_from)
    valid_until = to_utc_naive(valid_until)
    if valid_from is not None and valid_from > now:
        return False
    if valid_until is not None and valid_until < now:
        return False
    return True


def is_on_allowed_day(days_of_week, local_now: datetime) -> bool:
    if not days_of_week:
        return True
    return js_weekday(local_now) in {int(d) for d in days_of_week}


def is_within_time_window(time_from: str | None, time_until: str | None, local_now: datetime) -> bool:
    """
    Minute-precision, inclusive at both ends.

    22:00-02:00 means "from 22:00 until 02:00 the next morning".
    With only one bound set the window is open on the other side.
    """
    current = local_now.time().replace(second=0, microsecond=0)
    start = _parse_hhmm(time_from) if time_from else None
    end = _parse_hhmm(time_until) if time_until else None

    if start is not None and end is not None:
        if start > end:
            return current >= start or current <= end
        return start <= current <= end
    if start is not None:
        return current >= start
    if end is not None:
        return current <= end
    return True


def is_discount_live(discount, now: datetime, local_now: datetime) -> bool:
    """Checks 1-5: status, dates, day, time and the global usage cap."""
    if not discount.active:
        return False
    if not is_within_validity(discount.valid_from, discount.valid_until, now):
        return False
    if not is_on_allowed_day(discount.days_of_week, local_now):
        return False
    if not is_within_time_window(discount.time_from, discount.time_until, local_now):
        return False
    if discount.max_total_uses is not None and discount.current_uses >= discount.max_total_uses:
        return False
    return True


# =============================================================================
# QUERIES
# =============================================================================

def _venue_local_now(venue_id: int, now: datetime) -> datetime:
    venue = db.session.get(Venue, venue_id)
    return to_venue_local(now, venue.timezone if venue else None)


def count_customer_uses(discount_id: int, customer_id: int) -> int:
    """Prior applications of a discount on any of the customer's orders."""
    return db.session.query(func.count(OrderDiscount.id)).join(
        Order, Order.id == OrderDiscount.order_id
    ).filter(
        OrderDiscount.discount_id == discount_id,
        Order.customer_id == customer_id,
    ).scalar() or 0


def _passes_order_filters(discount, customer_id: int | None, order_subtotal_cents: int | None) -> bool:
    """Checks 6 and 7."""
    if discount.min_purchase_cents is not None and order_subtotal_cents is not None:
        if order_subtotal_cents < discount.min_purchase_cents:
            return False
    if discount.max_uses_per_customer is not None and customer_id:
        if count_customer_uses(discount.id, customer_id) >= discount.max_uses_per_customer:
            return False
    return True


def _snapshot(discount) -> DiscountRule | None:
    try:
        return DiscountRule.from_model(discount)
    except DiscountValidationError as exc:
        current_app.logger.warning("Skipping malformed discount %s (%s): %s", discount.id, discount.name, exc)
        return None


def get_eligible_discounts(
    venue_id: int,
    customer_id: int | None = None,
    order_subtotal_cents: int | None = None,
    now: datetime | None = None,
) -> list[DiscountRule]:
    """
    Catalog discounts currently eligible at a venue.

    Args:
        venue_id: Venue whose catalog is searched
        customer_id: Customer on the order (optional; enables per-customer
            caps and customer-group targeting)
        order_subtotal_cents: Current order subtotal (optional; enables the
            minimum purchase check)
        now: Evaluation time; aware values are converted to UTC-naive
            (defaults to the current time)

    Returns:
        Rules ordered by priority desc, then stack_priority desc
    """
    now = to_utc_naive(now) if now else utcnow()
    local_now = _venue_local_now(venue_id, now)

    discounts = db.session.query(Discount).filter(
        Discount.venue_id == venue_id,
        Discount.active.is_(True),
        or_(Discount.valid_from.is_(None), Discount.valid_from <= now),
        or_(Discount.valid_until.is_(None), Discount.valid_until >= now),
    ).order_by(
        Discount.priority.desc(),
        Discount.stack_priority.desc(),
        Discount.id.asc(),
    ).all()

    customer = None
    if customer_id:
        customer = db.session.get(Customer, customer_id)

    eligible: list[DiscountRule] = []
    for discount in discounts:
        try:
            if not is_discount_live(discount, now, local_now):
                continue
        except DiscountValidationError as exc:
            current_app.logger.warning("Skipping malformed discount %s (%s): %s", discount.id, discount.name, exc)
            continue

        if not _passes_order_filters(discount, customer_id, order_subtotal_cents):
            continue

        if discount.customer_group_id is not None:
            if customer is None or customer.customer_group_id != discount.customer_group_id:
                continue

        rule = _snapshot(discount)
        if rule is not None:
            eligible.append(rule)

    current_app.logger.debug(
        "Venue %s: %d of %d catalog discounts eligible", venue_id, len(eligible), len(discounts)
    )
    return eligible


def get_customer_discounts(
    venue_id: int,
    customer_id: int,
    order_subtotal_cents: int | None = None,
    now: datetime | None = None,
) -> list[DiscountRule]:
    """
    Discounts assigned directly to a customer.

    The assignment must be active, inside its own validity window and under
    its own max_uses. The underlying catalog discount must also pass checks
    1-7; audience targeting (check 8) is satisfied by the explicit
    assignment. Returned rules are automatic and priority-boosted.
    """
    now = to_utc_naive(now) if now else utcnow()
    local_now = _venue_local_now(venue_id, now)
    boost = current_app.config.get("DISCOUNT_CUSTOMER_PRIORITY_BOOST", 100)

    assignments = db.session.query(CustomerDiscount).join(
        Discount, Discount.id == CustomerDiscount.discount_id
    ).filter(
        CustomerDiscount.customer_id == customer_id,
        CustomerDiscount.active.is_(True),
        Discount.venue_id == venue_id,
        Discount.active.is_(True),
        or_(CustomerDiscount.valid_from.is_(None), CustomerDiscount.valid_from <= now),
        or_(CustomerDiscount.valid_until.is_(None), CustomerDiscount.valid_until >= now),
    ).all()

    rules: list[DiscountRule] = []
    for assignment in assignments:
        if assignment.max_uses is not None and assignment.usage_count >= assignment.max_uses:
            continue

        discount = assignment.discount
        try:
            if not is_discount_live(discount, now, local_now):
                continue
        except DiscountValidationError as exc:
            current_app.logger.warning("Skipping malformed discount %s (%s): %s", discount.id, discount.name, exc)
            continue

        if not _passes_order_filters(discount, customer_id, order_subtotal_cents):
            continue

        rule = _snapshot(discount)
        if rule is not None:
            rules.append(rule.for_customer_assignment(assignment.id, boost))

    return sort_by_priority(rules)
