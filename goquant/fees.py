"""Maker/taker fee computation."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FeeResult:
    """Fees charged to both sides of a trade."""

    maker_fee: float
    taker_fee: float

    @property
    def total_fee(self) -> float:
        return self.maker_fee + self.taker_fee


class FeeModel:
    """Flat-rate fee model applied to a trade's notional value."""

    def __init__(self, maker_rate: float = 0.001, taker_rate: float = 0.002) -> None:
        self.maker_rate = maker_rate  # liquidity providers
        self.taker_rate = taker_rate  # liquidity removers

    def compute_fees(self, price: float, quantity: float, is_taker: bool = True) -> FeeResult:
        """Return maker and taker fees for a trade of ``quantity`` at ``price``."""
        notional = price * quantity
        return FeeResult(notional * self.maker_rate, notional * self.taker_rate)

    def set_rates(self, maker_rate: float, taker_rate: float) -> None:
        """Replace both fee rates."""
        self.maker_rate = maker_rate
        self.taker_rate = taker_rate