# backend/promo_engine/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/promo_engine.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///promo_engine.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Average tax rate used to estimate the tax reduction of before-tax discounts.
    # Basis points (1600 = 16%).
    DISCOUNT_DEFAULT_TAX_RATE_BPS = int(os.environ.get("DISCOUNT_DEFAULT_TAX_RATE_BPS", "1600"))

    # Customer-assigned discounts outrank catalog discounts by this much
    DISCOUNT_CUSTOMER_PRIORITY_BOOST = int(os.environ.get("DISCOUNT_CUSTOMER_PRIORITY_BOOST", "100"))

    DISCOUNT_TX_RETRY_ATTEMPTS = int(os.environ.get("DISCOUNT_TX_RETRY_ATTEMPTS", "3"))
