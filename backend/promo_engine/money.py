# Overview: Cents/basis-point arithmetic shared by the discount engine.

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

BPS_SCALE = Decimal(10_000)
FULL_BPS = 10_000


def round_cents(value: Decimal | int) -> int:
    """Round a (possibly fractional) cents value to whole cents, half-up."""
    return int(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def apply_bps(amount_cents: Decimal | int, bps: Decimal | int) -> Decimal:
    """Exact (unrounded) `amount * bps / 10000`."""
    return Decimal(amount_cents) * Decimal(bps) / BPS_SCALE


def format_cents(cents: int | None) -> str:
    if cents is None:
        return "-"
    sign = "-" if cents < 0 else ""
    return f"{sign}${abs(cents) // 100}.{abs(cents) % 100:02d}"
