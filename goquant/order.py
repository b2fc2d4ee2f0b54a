"""Orders, sides and order types."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum, IntEnum


class Side(Enum):
    """Side of an order."""

    BUY = "BUY"
    SELL = "SELL"


class OrderType(IntEnum):
    """Supported order types."""

    MARKET = 0
    LIMIT = 1
    IOC = 2  # Immediate-Or-Cancel
    FOK = 3  # Fill-Or-Kill


def now_ms() -> int:
    """Return the current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


@dataclass(eq=False)
class Order:
    """A single order; identity, not field values, distinguishes orders."""

    order_id: str
    symbol: str
    side: Side
    order_type: OrderType
    price: float = 0.0
    quantity: float = 0.0
    stop_price: float = 0.0
    filled_qty: float = 0.0
    timestamp: int = field(default_factory=now_ms)

    def remaining(self) -> float:
        """Quantity still to be filled."""
        return self.quantity - self.filled_qty

    def is_filled(self) -> bool:
        """True once nothing remains to be filled."""
        return self.remaining() <= 0.0

    def is_marketable(self, best_bid: float, best_ask: float) -> bool:
        """True if the order could execute immediately against the given BBO."""
        if self.order_type is OrderType.MARKET:
            return True
        if self.side is Side.BUY and best_ask > 0 and self.price >= best_ask:
            return True
        if self.side is Side.SELL and best_bid > 0 and self.price <= best_bid:
            return True
        return False