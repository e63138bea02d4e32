from __future__ import annotations

from ..extensions import db
from promo_engine.time_utils import to_utc_z


class Venue(db.Model):
    """
    A venue (restaurant, bar, shop) that owns its own discount catalog.

    MULTI-TENANT: Discounts, customers, staff and orders are scoped by venue_id.
    No discount may be evaluated against another venue's orders.

    timezone defines local wall-clock time for day-of-week and
    time-of-day promotion windows.
    """
    __tablename__ = "venues"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)

    timezone = db.Column(db.String(64), nullable=False, default="UTC")
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)  # Basis points (e.g., 1600 = 16%)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Venue id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "timezone": self.timezone,
            "tax_rate_bps": self.tax_rate_bps,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }
