from __future__ import annotations

from sqlalchemy.orm import validates

from ..extensions import db
from promo_engine.time_utils import to_utc_naive, to_utc_z


class Discount(db.Model):
    """
    Catalog discount rule.

    Created and edited by catalog management. The engine only reads it,
    except for current_uses, which is moved exclusively through atomic
    UPDATE ... SET current_uses = current_uses +/- 1 statements.

    VALUES:
    - PERCENTAGE: discount_value is basis points (1000 = 10%)
    - FIXED_AMOUNT: discount_value is cents
    - COMP: discount_value is ignored (100% of the scoped base)

    SCOPES: ORDER, ITEM, CATEGORY, MODIFIER, MODIFIER_GROUP, CUSTOMER_GROUP, QUANTITY
    Only the target list matching the scope is consulted.
    """
    __tablename__ = "discounts"
    __table_args__ = (
        db.Index("ix_discounts_venue_active", "venue_id", "active"),
        db.Index("ix_discounts_validity", "valid_from", "valid_until"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    venue_id = db.Column(db.Integer, db.ForeignKey("venues.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    discount_type = db.Column(db.String(16), nullable=False)  # PERCENTAGE, FIXED_AMOUNT, COMP
    discount_value = db.Column(db.Integer, nullable=False, default=0)
    scope = db.Column(db.String(16), nullable=False, default="ORDER")

    # JSON arrays of ids, one per scope
    target_product_ids = db.Column(db.JSON, nullable=True)
    target_category_ids = db.Column(db.JSON, nullable=True)
    target_modifier_ids = db.Column(db.JSON, nullable=True)
    target_modifier_group_ids = db.Column(db.JSON, nullable=True)

    customer_group_id = db.Column(db.Integer, db.ForeignKey("customer_groups.id"), nullable=True, index=True)

    is_automatic = db.Column(db.Boolean, nullable=False, default=False, index=True)
    priority = db.Column(db.Integer, nullable=False, default=0)
    stack_priority = db.Column(db.Integer, nullable=False, default=0)
    is_stackable = db.Column(db.Boolean, nullable=False, default=False)
    requires_approval = db.Column(db.Boolean, nullable=False, default=False)
    apply_before_tax = db.Column(db.Boolean, nullable=False, default=True)

    min_purchase_cents = db.Column(db.Integer, nullable=True)
    max_discount_cents = db.Column(db.Integer, nullable=True)

    # BOGO (scope=QUANTITY)
    buy_quantity = db.Column(db.Integer, nullable=True)
    get_quantity = db.Column(db.Integer, nullable=True)
    get_discount_bps = db.Column(db.Integer, nullable=True)  # NULL = 10000 (free)
    buy_product_ids = db.Column(db.JSON, nullable=True)
    get_product_ids = db.Column(db.JSON, nullable=True)

    # Validity windows
    valid_from = db.Column(db.DateTime(timezone=True), nullable=True)
    valid_until = db.Column(db.DateTime(timezone=True), nullable=True)
    days_of_week = db.Column(db.JSON, nullable=True)  # [0..6], 0 = Sunday
    time_from = db.Column(db.String(5), nullable=True)  # "HH:MM" venue-local
    time_until = db.Column(db.String(5), nullable=True)

    # Usage caps
    max_total_uses = db.Column(db.Integer, nullable=True)
    max_uses_per_customer = db.Column(db.Integer, nullable=True)
    current_uses = db.Column(db.Integer, nullable=False, default=0)

    active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    venue = db.relationship("Venue", backref=db.backref("discounts", lazy=True))
    customer_group = db.relationship("CustomerGroup")

    def __repr__(self) -> str:
        return f"<Discount id={self.id} name={self.name!r} type={self.discount_type} scope={self.scope}>"

    @validates("valid_from", "valid_until")
    def _normalize_validity(self, key, value):
        # Stored UTC-naive; SQLite would otherwise keep an aware value's wall time
        return to_utc_naive(value)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "venue_id": self.venue_id,
            "name": self.name,
            "description": self.description,
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "scope": self.scope,
            "target_product_ids": self.target_product_ids or [],
            "target_category_ids": self.target_category_ids or [],
            "target_modifier_ids": self.target_modifier_ids or [],
            "target_modifier_group_ids": self.target_modifier_group_ids or [],
            "customer_group_id": self.customer_group_id,
            "is_automatic": self.is_automatic,
            "priority": self.priority,
            "stack_priority": self.stack_priority,
            "is_stackable": self.is_stackable,
            "requires_approval": self.requires_approval,
            "apply_before_tax": self.apply_before_tax,
            "min_purchase_cents": self.min_purchase_cents,
            "max_discount_cents": self.max_discount_cents,
            "buy_quantity": self.buy_quantity,
            "get_quantity": self.get_quantity,
            "get_discount_bps": self.get_discount_bps,
            "buy_product_ids": self.buy_product_ids or [],
            "get_product_ids": self.get_product_ids or [],
            "valid_from": to_utc_z(self.valid_from),
            "valid_until": to_utc_z(self.valid_until),
            "days_of_week": self.days_of_week or [],
            "time_from": self.time_from,
            "time_until": self.time_until,
            "max_total_uses": self.max_total_uses,
            "max_uses_per_customer": self.max_uses_per_customer,
            "current_uses": self.current_uses,
            "active": self.active,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class CustomerDiscount(db.Model):
    """
    Assignment of a catalog discount to one customer.

    Always auto-applied for that customer, outranks the plain catalog
    discount, and carries its own usage cap and optional validity window.
    """
    __tablename__ = "customer_discounts"
    __table_args__ = (
        db.UniqueConstraint("customer_id", "discount_id", name="uq_customer_discounts_customer_discount"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    discount_id = db.Column(db.Integer, db.ForeignKey("discounts.id"), nullable=False, index=True)

    active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    valid_from = db.Column(db.DateTime(timezone=True), nullable=True)
    valid_until = db.Column(db.DateTime(timezone=True), nullable=True)

    usage_count = db.Column(db.Integer, nullable=False, default=0)
    max_uses = db.Column(db.Integer, nullable=True)

    assigned_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    assigned_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("discount_assignments", lazy=True))
    discount = db.relationship("Discount", backref=db.backref("customer_assignments", lazy=True))

    @validates("valid_from", "valid_until")
    def _normalize_validity(self, key, value):
        return to_utc_naive(value)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "discount_id": self.discount_id,
            "active": self.active,
            "valid_from": to_utc_z(self.valid_from),
            "valid_until": to_utc_z(self.valid_until),
            "usage_count": self.usage_count,
            "max_uses": self.max_uses,
            "assigned_by_user_id": self.assigned_by_user_id,
            "assigned_at": to_utc_z(self.assigned_at),
        }


class OrderDiscount(db.Model):
    """
    A discount applied to an order.

    WHY: Immutable record of what was taken off, by whom, and why.
    Created on apply, deleted on remove (removal reverses the order totals).

    UNIQUENESS: (order_id, discount_id) is unique, so a catalog discount can
    only be applied once per order. Manual discounts have discount_id NULL
    and are not constrained.
    """
    __tablename__ = "order_discounts"
    __table_args__ = (
        db.UniqueConstraint("order_id", "discount_id", name="uq_order_discounts_order_discount"),
        db.Index("ix_order_discounts_order_created", "order_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    discount_id = db.Column(db.Integer, db.ForeignKey("discounts.id"), nullable=True, index=True)
    customer_discount_id = db.Column(db.Integer, db.ForeignKey("customer_discounts.id"), nullable=True)

    discount_type = db.Column(db.String(16), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    value = db.Column(db.Integer, nullable=False, default=0)

    amount_cents = db.Column(db.Integer, nullable=False)
    tax_reduction_cents = db.Column(db.Integer, nullable=False, default=0)

    is_automatic = db.Column(db.Boolean, nullable=False, default=False)
    is_manual = db.Column(db.Boolean, nullable=False, default=False)
    is_comp = db.Column(db.Boolean, nullable=False, default=False)
    comp_reason = db.Column(db.String(255), nullable=True)

    applied_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    authorized_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("order_discounts", lazy=True))
    discount = db.relationship("Discount")
    applied_by = db.relationship("User", foreign_keys=[applied_by_user_id])
    authorized_by = db.relationship("User", foreign_keys=[authorized_by_user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "discount_id": self.discount_id,
            "customer_discount_id": self.customer_discount_id,
            "discount_type": self.discount_type,
            "name": self.name,
            "value": self.value,
            "amount_cents": self.amount_cents,
            "tax_reduction_cents": self.tax_reduction_cents,
            "is_automatic": self.is_automatic,
            "is_manual": self.is_manual,
            "is_comp": self.is_comp,
            "comp_reason": self.comp_reason,
            "applied_by_user_id": self.applied_by_user_id,
            "authorized_by_user_id": self.authorized_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
