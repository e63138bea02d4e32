"""
Pytest fixtures for discount engine tests.

Provides test database setup, venue/staff/customer/catalog fixtures, and
order and discount factories.
"""

import pytest
from promo_engine import create_app
from promo_engine.extensions import db
from promo_engine.models import (
    Venue, User, CustomerGroup, Customer, Category, Product, ModifierGroup, Modifier,
    Order, OrderItem, OrderItemModifier, Discount, CustomerDiscount,
)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DISCOUNT_DEFAULT_TAX_RATE_BPS': 1600,
        'DISCOUNT_CUSTOMER_PRIORITY_BOOST': 100,
        'DISCOUNT_TX_RETRY_ATTEMPTS': 3,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def venue(db_session):
    """Create the venue most tests run against."""
    venue = Venue(name="Cafe Central", code="CENTRAL", timezone="UTC", tax_rate_bps=1600)
    db_session.add(venue)
    db_session.commit()
    return venue


@pytest.fixture(scope='function')
def other_venue(db_session):
    """Create a second venue (other tenant)."""
    venue = Venue(name="Harbour Bar", code="HARBOUR", timezone="UTC", tax_rate_bps=1600)
    db_session.add(venue)
    db_session.commit()
    return venue


@pytest.fixture(scope='function')
def cashier(db_session, venue):
    user = User(venue_id=venue.id, username="cashier", first_name="Carla", last_name="Diaz")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def manager(db_session, venue):
    user = User(venue_id=venue.id, username="manager", first_name="Marco", last_name="Ruiz")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def vip_group(db_session, venue):
    group = CustomerGroup(venue_id=venue.id, name="VIP")
    db_session.add(group)
    db_session.commit()
    return group


@pytest.fixture(scope='function')
def customer(db_session, venue):
    """Customer without a group."""
    customer = Customer(venue_id=venue.id, first_name="Ana", last_name="Lopez", email="ana@example.com")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def vip_customer(db_session, venue, vip_group):
    customer = Customer(
        venue_id=venue.id,
        customer_group_id=vip_group.id,
        first_name="Victor",
        last_name="Perez",
        email="victor@example.com",
    )
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def catalog(db_session, venue):
    """
    Small menu:
    - Drinks: coffee $3.00, beer $5.00
    - Food: burger $10.00, fries $4.00
    - Extras group: extra shot $0.50, bacon $1.50
    """
    drinks = Category(venue_id=venue.id, name="Drinks")
    food = Category(venue_id=venue.id, name="Food")
    extras = ModifierGroup(venue_id=venue.id, name="Extras")
    db_session.add_all([drinks, food, extras])
    db_session.flush()

    products = {
        "coffee": Product(venue_id=venue.id, category_id=drinks.id, name="Coffee", price_cents=300),
        "beer": Product(venue_id=venue.id, category_id=drinks.id, name="Beer", price_cents=500),
        "burger": Product(venue_id=venue.id, category_id=food.id, name="Burger", price_cents=1000),
        "fries": Product(venue_id=venue.id, category_id=food.id, name="Fries", price_cents=400),
    }
    modifiers = {
        "extra_shot": Modifier(group_id=extras.id, name="Extra shot", price_cents=50),
        "bacon": Modifier(group_id=extras.id, name="Bacon", price_cents=150),
    }
    db_session.add_all(list(products.values()) + list(modifiers.values()))
    db_session.commit()

    return {
        "categories": {"drinks": drinks, "food": food},
        "modifier_groups": {"extras": extras},
        "products": products,
        "modifiers": modifiers,
    }


@pytest.fixture(scope='function')
def make_order(db_session, venue):
    """
    Factory: make_order([(product, qty), (product, qty, [modifier, ...])], ...).

    Line totals are quantity * product price plus the attached modifier
    prices once per line. The subtotal is the sum of line totals and totals
    are derived with Order.recompute_totals().
    """
    def _make(lines, customer=None, tax_cents=0, tip_cents=0, paid_cents=0,
              payment_status="UNPAID", venue_id=None):
        order = Order(
            venue_id=venue_id or venue.id,
            customer_id=customer.id if customer else None,
            status="OPEN",
            payment_status=payment_status,
            tax_cents=tax_cents,
            tip_cents=tip_cents,
            paid_cents=paid_cents,
        )
        db_session.add(order)
        db_session.flush()

        subtotal = 0
        for line in lines:
            product, quantity = line[0], line[1]
            modifiers = line[2] if len(line) > 2 else []
            line_total = product.price_cents * quantity + sum(m.price_cents for m in modifiers)
            item = OrderItem(
                order_id=order.id,
                product_id=product.id,
                quantity=quantity,
                unit_price_cents=product.price_cents,
                line_total_cents=line_total,
            )
            db_session.add(item)
            db_session.flush()
            for modifier in modifiers:
                db_session.add(OrderItemModifier(order_item_id=item.id, modifier_id=modifier.id))
            subtotal += line_total

        order.subtotal_cents = subtotal
        order.recompute_totals()
        db_session.commit()
        return order

    return _make


@pytest.fixture(scope='function')
def make_discount(db_session, venue):
    """Factory: make_discount(name=..., **columns) with ORDER-scope 10% defaults."""
    def _make(**overrides):
        fields = {
            "venue_id": venue.id,
            "name": "Ten percent off",
            "discount_type": "PERCENTAGE",
            "discount_value": 1000,
            "scope": "ORDER",
            "is_automatic": True,
            "is_stackable": True,
            "active": True,
        }
        fields.update(overrides)
        discount = Discount(**fields)
        db_session.add(discount)
        db_session.commit()
        return discount

    return _make


@pytest.fixture(scope='function')
def assign_discount(db_session):
    """Factory: assign_discount(customer, discount, **columns)."""
    def _assign(customer, discount, **overrides):
        assignment = CustomerDiscount(customer_id=customer.id, discount_id=discount.id, **overrides)
        db_session.add(assignment)
        db_session.commit()
        return assignment

    return _assign
