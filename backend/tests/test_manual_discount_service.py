# Overview: Pytest coverage for staff-entered discounts and comps.

import pytest

from promo_engine.models import Order, OrderDiscount
from promo_engine.services.discount_service import apply_automatic_discounts, remove_discount_from_order
from promo_engine.services.manual_discount_service import apply_manual_discount


@pytest.fixture
def order(make_order, catalog):
    """subtotal 2300, tax 368, total 2668"""
    products = catalog["products"]
    return make_order([(products["burger"], 2), (products["coffee"], 1)], tax_cents=368)


class TestApplyManualDiscount:
    """Validation, amounts and the comp authorization gate."""

    def test_percentage(self, db_session, order, cashier):
        result = apply_manual_discount(order.id, "PERCENTAGE", 1000, "Staff 10%", cashier.id)

        assert result.success is True
        assert result.amount_cents == 230
        updated = db_session.get(Order, order.id)
        assert updated.tax_cents == 368
        assert updated.total_cents == 2300 - 230 + 368

        row = db_session.get(OrderDiscount, result.order_discount_id)
        assert row.discount_id is None
        assert row.is_manual is True
        assert row.tax_reduction_cents == 0

    @pytest.mark.parametrize("value", [-1, 10001])
    def test_percentage_out_of_range(self, db_session, order, cashier, value):
        result = apply_manual_discount(order.id, "PERCENTAGE", value, "Bad", cashier.id)

        assert result.error_code == "VALIDATION_ERROR"
        assert db_session.query(OrderDiscount).count() == 0

    def test_percentage_bounds_inclusive(self, db_session, order, cashier):
        assert apply_manual_discount(order.id, "PERCENTAGE", 0, "Zero", cashier.id).amount_cents == 0
        assert apply_manual_discount(order.id, "PERCENTAGE", 10000, "All", cashier.id).amount_cents == 2300

    def test_fixed_amount_capped_at_subtotal(self, db_session, order, cashier):
        result = apply_manual_discount(order.id, "FIXED_AMOUNT", 5000, "Voucher", cashier.id)

        assert result.amount_cents == 2300
        assert db_session.get(Order, order.id).total_cents == 368

    def test_negative_fixed_amount_rejected(self, db_session, order, cashier):
        assert apply_manual_discount(order.id, "FIXED_AMOUNT", -100, "Bad", cashier.id).error_code == "VALIDATION_ERROR"

    def test_unknown_type_rejected(self, db_session, order, cashier):
        assert apply_manual_discount(order.id, "POINTS", 100, "Bad", cashier.id).error_code == "VALIDATION_ERROR"

    def test_comp_without_authorizer_leaves_order_untouched(self, db_session, order, cashier):
        before = db_session.get(Order, order.id).to_dict()

        result = apply_manual_discount(order.id, "COMP", 0, "Comp", cashier.id, comp_reason="Cold food")

        assert result.success is False
        assert result.error_code == "APPROVAL_REQUIRED"
        assert db_session.query(OrderDiscount).count() == 0
        assert db_session.get(Order, order.id).to_dict() == before

    def test_comp_covers_remaining_undiscounted_amount(self, db_session, order, make_discount, cashier, manager):
        make_discount(name="Auto 10%")
        apply_automatic_discounts(order.id)

        result = apply_manual_discount(
            order.id, "COMP", 0, "Service recovery", cashier.id,
            authorized_by=manager.id, comp_reason="Long wait",
        )

        assert result.amount_cents == 2300 - 230
        updated = db_session.get(Order, order.id)
        assert updated.discount_cents == 2300
        assert updated.total_cents == updated.tax_cents

        row = db_session.get(OrderDiscount, result.order_discount_id)
        assert row.is_comp is True
        assert row.comp_reason == "Long wait"
        assert row.authorized_by_user_id == manager.id

    def test_paid_and_missing_orders(self, db_session, make_order, catalog, cashier):
        paid = make_order([(catalog["products"]["beer"], 1)], payment_status="PAID")

        assert apply_manual_discount(paid.id, "PERCENTAGE", 1000, "Late", cashier.id).error_code == "ORDER_PAID"
        assert apply_manual_discount(99999, "PERCENTAGE", 1000, "Ghost", cashier.id).error_code == "NOT_FOUND"

    def test_remove_manual_discount_restores_totals(self, db_session, order, cashier):
        result = apply_manual_discount(order.id, "FIXED_AMOUNT", 450, "Sorry", cashier.id)

        removed = remove_discount_from_order(order.id, result.order_discount_id)

        assert removed.success is True
        updated = db_session.get(Order, order.id)
        assert (updated.discount_cents, updated.tax_cents, updated.total_cents) == (0, 368, 2668)

    def test_multiple_manual_discounts_allowed(self, db_session, order, cashier):
        apply_manual_discount(order.id, "FIXED_AMOUNT", 100, "First", cashier.id)
        apply_manual_discount(order.id, "FIXED_AMOUNT", 200, "Second", cashier.id)

        assert db_session.query(OrderDiscount).filter_by(order_id=order.id).count() == 2
        assert db_session.get(Order, order.id).discount_cents == 300
