"""Named stock strategies.

Retailers expose availability differently, so each adapter declares which
strategy applies instead of deciding inline.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

IN_STOCK_STATUSES = frozenset({"in_stock", "instock", "available"})


class StockPolicy(str, enum.Enum):
    ASSUMED = "assumed"
    AVAILABILITY = "availability"
    QUANTITY = "quantity"


@dataclass(slots=True)
class StockSignal:
    available: bool | None = None
    quantity: float | None = None
    status: str | None = None


def resolve_stock(policy: StockPolicy, signal: StockSignal | None = None) -> bool:
    if policy is StockPolicy.ASSUMED:
        return True
    signal = signal or StockSignal()
    # Status text such as "Ship It" shows up on zero-quantity backorders.
    if policy is StockPolicy.QUANTITY and signal.quantity is not None:
        return signal.quantity > 0
    if signal.available is not None:
        return bool(signal.available)
    if signal.status:
        return signal.status.strip().lower().replace(" ", "_") in IN_STOCK_STATUSES
    return False
