from __future__ import annotations

from ..extensions import db
from promo_engine.time_utils import to_utc_z


class User(db.Model):
    """
    Staff accounts used for discount attribution.

    WHY: Every applied discount must be attributable to the staff member who
    applied it and, for comps and approval-gated discounts, the manager who
    authorized it.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("venue_id", "username", name="uq_users_venue_username"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    venue_id = db.Column(db.Integer, db.ForeignKey("venues.id"), nullable=False, index=True)

    username = db.Column(db.String(64), nullable=False, index=True)
    first_name = db.Column(db.String(128), nullable=True)
    last_name = db.Column(db.String(128), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    venue = db.relationship("Venue", backref=db.backref("users", lazy=True))

    @property
    def full_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else self.username

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "venue_id": self.venue_id,
            "username": self.username,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
