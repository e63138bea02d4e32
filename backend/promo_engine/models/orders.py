from __future__ import annotations

from ..extensions import db
from promo_engine.time_utils import to_utc_z


class Order(db.Model):
    """
    Order aggregate, owned by order management.

    The discount engine is the only writer of the discount effects on
    discount_cents, tax_cents, total_cents and remaining_balance_cents, and
    always keeps:

        total = subtotal - discount + tax + tip
        remaining_balance = max(0, total - paid)

    subtotal_cents and paid_cents are never written by the engine.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_venue_status", "venue_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    venue_id = db.Column(db.Integer, db.ForeignKey("venues.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    status = db.Column(db.String(16), nullable=False, default="OPEN", index=True)  # OPEN, CLOSED, VOIDED
    payment_status = db.Column(db.String(16), nullable=False, default="UNPAID", index=True)  # UNPAID, PARTIAL, PAID

    # All amounts in cents
    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    tip_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    paid_cents = db.Column(db.Integer, nullable=False, default=0)
    remaining_balance_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    venue = db.relationship("Venue", backref=db.backref("orders", lazy=True))
    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def recompute_totals(self) -> None:
        """Re-derive total and remaining balance from the component amounts."""
        self.total_cents = self.subtotal_cents - self.discount_cents + self.tax_cents + self.tip_cents
        self.remaining_balance_cents = max(0, self.total_cents - self.paid_cents)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "venue_id": self.venue_id,
            "customer_id": self.customer_id,
            "status": self.status,
            "payment_status": self.payment_status,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "tax_cents": self.tax_cents,
            "tip_cents": self.tip_cents,
            "total_cents": self.total_cents,
            "paid_cents": self.paid_cents,
            "remaining_balance_cents": self.remaining_balance_cents,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class OrderItem(db.Model):
    """
    Individual line on an order.

    product_id is nullable: the product may have been deleted from the
    catalog after it was ordered. Such lines are invisible to discounting.
    """
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("items", lazy=True, order_by="OrderItem.id"))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "created_at": to_utc_z(self.created_at),
        }


class OrderItemModifier(db.Model):
    """Modifier attached to an order line (modifier_id nullable once deleted)."""
    __tablename__ = "order_item_modifiers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_item_id = db.Column(db.Integer, db.ForeignKey("order_items.id"), nullable=False, index=True)
    modifier_id = db.Column(db.Integer, db.ForeignKey("modifiers.id"), nullable=True)

    order_item = db.relationship("OrderItem", backref=db.backref("modifiers", lazy=True))
    modifier = db.relationship("Modifier")
