# Overview: Pytest coverage for the discounts CLI group.

import pytest

from promo_engine.models import Order, OrderDiscount


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def order(make_order, catalog):
    return make_order([(catalog["products"]["burger"], 2)], tax_cents=320)


class TestDiscountsCli:
    def test_evaluate_lists_selected_discounts(self, db_session, runner, order, make_discount):
        make_discount(name="Auto 10%")

        result = runner.invoke(args=["discounts", "evaluate", str(order.id)])

        assert result.exit_code == 0
        assert "Auto 10%" in result.output
        assert "$2.00" in result.output

    def test_evaluate_missing_order(self, db_session, runner):
        result = runner.invoke(args=["discounts", "evaluate", "99999"])

        assert result.exit_code != 0
        assert "not found" in result.output

    def test_apply_auto_and_summary(self, db_session, runner, order, make_discount):
        make_discount(name="Auto 10%")

        applied = runner.invoke(args=["discounts", "apply-auto", str(order.id)])
        summary = runner.invoke(args=["discounts", "summary", str(order.id)])

        assert applied.exit_code == 0
        assert "Applied 1 discount(s)" in applied.output
        assert "Auto 10%" in summary.output
        assert db_session.query(OrderDiscount).count() == 1

    def test_manual_comp_requires_authorizer(self, db_session, runner, order, cashier):
        result = runner.invoke(args=[
            "discounts", "manual", str(order.id),
            "--type", "COMP", "--name", "Comp", "--applied-by", str(cashier.id),
        ])

        assert "APPROVAL_REQUIRED" in result.output
        assert db_session.query(OrderDiscount).count() == 0

    def test_manual_then_remove(self, db_session, runner, order, cashier):
        runner.invoke(args=[
            "discounts", "manual", str(order.id),
            "--type", "FIXED_AMOUNT", "--value", "500", "--name", "Sorry", "--applied-by", str(cashier.id),
        ])
        row = db_session.query(OrderDiscount).one()

        result = runner.invoke(args=["discounts", "remove", str(order.id), str(row.id)])

        assert result.exit_code == 0
        assert "PASS" in result.output
        assert db_session.get(Order, order.id).discount_cents == 0

    def test_evaluate_at_given_time(self, db_session, runner, order, make_discount):
        make_discount(name="Late night", time_from="22:00", time_until="02:00")

        late = runner.invoke(args=["discounts", "evaluate", str(order.id), "--at", "2026-10-16T23:30Z"])
        noon = runner.invoke(args=["discounts", "evaluate", str(order.id), "--at", "2026-10-16T12:00"])
        bad = runner.invoke(args=["discounts", "evaluate", str(order.id), "--at", "tonight"])

        assert "Late night" in late.output
        assert "No automatic discounts apply." in noon.output
        assert bad.exit_code != 0

    def test_summary_scoped_to_venue(self, db_session, runner, order, venue, other_venue):
        own = runner.invoke(args=["discounts", "summary", str(order.id), "--venue-id", str(venue.id)])
        foreign = runner.invoke(args=["discounts", "summary", str(order.id), "--venue-id", str(other_venue.id)])

        assert own.exit_code == 0
        assert foreign.exit_code != 0
        assert "not found" in foreign.output
