from __future__ import annotations

from ..extensions import db


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    venue_id = db.Column(db.Integer, db.ForeignKey("venues.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)

    def to_dict(self) -> dict:
        return {"id": self.id, "venue_id": self.venue_id, "name": self.name}


class Product(db.Model):
    """Menu product. Owned by catalog management; read-only to the discount engine."""
    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    venue_id = db.Column(db.Integer, db.ForeignKey("venues.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_rate_bps = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    category = db.relationship("Category", backref=db.backref("products", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "venue_id": self.venue_id,
            "category_id": self.category_id,
            "name": self.name,
            "price_cents": self.price_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "is_active": self.is_active,
        }


class ModifierGroup(db.Model):
    __tablename__ = "modifier_groups"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    venue_id = db.Column(db.Integer, db.ForeignKey("venues.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)


class Modifier(db.Model):
    """Add-on option (extra shot, large size) priced on top of its product."""
    __tablename__ = "modifiers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey("modifier_groups.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    group = db.relationship("ModifierGroup", backref=db.backref("modifiers", lazy=True))
