# Overview: Pytest coverage for Buy-X-Get-Y calculation.

import pytest

from promo_engine.services.bogo_calculator import BogoTerms, calculate_bogo
from promo_engine.services.discount_context import OrderContext, OrderLine
from promo_engine.services.discount_errors import DiscountValidationError


def _line(line_id, product_id, quantity, unit_price_cents):
    return OrderLine(
        id=line_id,
        product_id=product_id,
        category_id=None,
        quantity=quantity,
        unit_price_cents=unit_price_cents,
        line_total_cents=quantity * unit_price_cents,
    )


def _context(*lines):
    return OrderContext(
        order_id=1,
        venue_id=1,
        subtotal_cents=sum(line.line_total_cents for line in lines),
        lines=tuple(lines),
    )


class TestBogoTerms:
    """Required quantities are validated up front."""

    def test_missing_buy_quantity_rejected(self):
        with pytest.raises(DiscountValidationError):
            BogoTerms(buy_quantity=None, get_quantity=1)

    def test_zero_get_quantity_rejected(self):
        with pytest.raises(DiscountValidationError):
            BogoTerms(buy_quantity=2, get_quantity=0)

    def test_discount_above_full_rejected(self):
        with pytest.raises(DiscountValidationError):
            BogoTerms(buy_quantity=2, get_quantity=1, get_discount_bps=12000)

    def test_defaults_to_fully_free(self):
        assert BogoTerms(buy_quantity=1, get_quantity=1).get_discount_bps == 10000


class TestCalculateBogo:
    """Cheapest-first consumption of earned units."""

    def test_buy_two_get_one_mixed_prices(self):
        """3 x $10 + 2 x $5, buy 2 get 1: two sets earn two $5 units."""
        context = _context(_line(1, 10, 3, 1000), _line(2, 20, 2, 500))
        result = calculate_bogo(BogoTerms(buy_quantity=2, get_quantity=1), context)

        assert result.amount_cents == 1000
        assert result.line_ids == (2,)

    def test_no_qualifying_set(self):
        context = _context(_line(1, 10, 1, 1000))
        result = calculate_bogo(BogoTerms(buy_quantity=2, get_quantity=1), context)

        assert result.amount_cents == 0
        assert result.line_ids == ()

    def test_free_units_spill_over_to_next_cheapest_line(self):
        context = _context(_line(1, 10, 1, 400), _line(2, 20, 4, 900))
        result = calculate_bogo(BogoTerms(buy_quantity=1, get_quantity=1), context)

        # 5 sets earn 5 units: 1 x $4 + 4 x $9
        assert result.amount_cents == 400 + 4 * 900
        assert result.line_ids == (1, 2)

    def test_partial_discount_is_rounded_half_up(self):
        context = _context(_line(1, 10, 2, 333))
        terms = BogoTerms(buy_quantity=1, get_quantity=1, get_discount_bps=5000)
        result = calculate_bogo(terms, context)

        # 2 units * 333 * 50% = 333.0
        assert result.amount_cents == 333

        context = _context(_line(1, 10, 1, 333), _line(2, 10, 1, 333))
        terms = BogoTerms(buy_quantity=2, get_quantity=1, get_discount_bps=5000)
        # 1 unit * 333 * 50% = 166.5 -> 167
        assert calculate_bogo(terms, context).amount_cents == 167

    def test_buy_and_get_pools_are_separate(self):
        """Buy two burgers, get fries free; coffee is in neither pool."""
        context = _context(
            _line(1, 10, 2, 1000),  # burger
            _line(2, 20, 1, 400),   # fries
            _line(3, 30, 1, 300),   # coffee
        )
        terms = BogoTerms(
            buy_quantity=2,
            get_quantity=1,
            buy_product_ids=frozenset({10}),
            get_product_ids=frozenset({20}),
        )
        result = calculate_bogo(terms, context)

        assert result.amount_cents == 400
        assert result.line_ids == (2,)

    def test_cap_limits_amount(self):
        context = _context(_line(1, 10, 4, 1000))
        result = calculate_bogo(BogoTerms(buy_quantity=1, get_quantity=1), context, max_discount_cents=1500)

        assert result.amount_cents == 1500

    def test_equal_prices_keep_line_order(self):
        context = _context(_line(7, 10, 1, 500), _line(3, 20, 1, 500))
        result = calculate_bogo(BogoTerms(buy_quantity=2, get_quantity=1), context)

        assert result.line_ids == (7,)
