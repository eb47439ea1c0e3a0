"""Even allocation of an amount across co-owners, and the one rounding rule used at finalization."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


def split_share(amount: float, owners: int) -> float:
    """Per-owner share of `amount`. Co-owned tasks never multiply the total."""
    if owners < 1:
        raise ValueError(f"owners must be >= 1, got {owners}")
    return amount / owners


def round_half_up(value: float, places: int = 1) -> float:
    quant = Decimal(1).scaleb(-places)
    return float(Decimal(repr(float(value))).quantize(quant, rounding=ROUND_HALF_UP))


def round_count(value: float) -> int:
    return int(Decimal(repr(float(value))).quantize(Decimal(1), rounding=ROUND_HALF_UP))
