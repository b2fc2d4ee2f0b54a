"""Trade execution reports."""

from __future__ import annotations

from dataclasses import dataclass


def _fixed(value: float) -> str:
    return f"{value:f}"


@dataclass
class TradeReport:
    """One execution between a resting maker order and an incoming taker order."""

    symbol: str
    trade_id: str
    price: float
    quantity: float
    maker_fee: float
    taker_fee: float
    aggressor: str  # side of the taker order: "BUY" or "SELL"
    maker_order_id: str
    taker_order_id: str
    timestamp: int

    def to_json(self) -> dict[str, str]:
        """Return the report as a JSON-ready mapping with numbers as strings."""
        return {
            "timestamp": str(self.timestamp),
            "symbol": self.symbol,
            "trade_id": self.trade_id,
            "price": _fixed(self.price),
            "quantity": _fixed(self.quantity),
            "aggressor_side": self.aggressor,
            "maker_order_id": self.maker_order_id,
            "taker_order_id": self.taker_order_id,
            "maker_fee": _fixed(self.maker_fee),
            "taker_fee": _fixed(self.taker_fee),
        }