from __future__ import annotations

from ..extensions import db
from promo_engine.time_utils import to_utc_z


class CustomerGroup(db.Model):
    """Audience segment (VIP, staff, students) that group-targeted discounts key on."""
    __tablename__ = "customer_groups"
    __table_args__ = (
        db.UniqueConstraint("venue_id", "name", name="uq_customer_groups_venue_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    venue_id = db.Column(db.Integer, db.ForeignKey("venues.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "venue_id": self.venue_id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }


class Customer(db.Model):
    """
    Customer master data.

    MULTI-TENANT: Customers are scoped to venues via venue_id.
    customer_group_id drives CUSTOMER_GROUP discount eligibility.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("venue_id", "email", name="uq_customers_venue_email"),
        db.Index("ix_customers_venue_active", "venue_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    venue_id = db.Column(db.Integer, db.ForeignKey("venues.id"), nullable=False, index=True)
    customer_group_id = db.Column(db.Integer, db.ForeignKey("customer_groups.id"), nullable=True, index=True)

    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    venue = db.relationship("Venue", backref=db.backref("customers", lazy=True))
    customer_group = db.relationship("CustomerGroup", backref=db.backref("customers", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "venue_id": self.venue_id,
            "customer_group_id": self.customer_group_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
