# utils/money.py
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional


def utcnow() -> datetime:
    # Timestamps are stored as naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def round_half_up(numerator: int, denominator: int) -> int:
    """Divide two integer amounts and round to a whole minor unit."""
    return int((Decimal(numerator) / Decimal(denominator)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(amount: int, basis_points: int) -> int:
    # 10000 bps == 100%
    return round_half_up(amount * basis_points, 10000)


def average_amount(total: int, count: int) -> Optional[int]:
    if count <= 0:
        return None
    return round_half_up(total, count)


def ratio(numerator: int, denominator: int, places: int = 2) -> Optional[float]:
    if denominator <= 0:
        return None
    quantum = Decimal(1).scaleb(-places)
    return float((Decimal(numerator) / Decimal(denominator)).quantize(quantum, rounding=ROUND_HALF_UP))
