"""Per-symbol limit order book with price-time priority."""

from __future__ import annotations

import operator
import threading
from collections import deque
from dataclasses import dataclass, field
from itertools import islice

from sortedcontainers import SortedDict

from .order import Order, OrderType, Side, now_ms


def _fixed(value: float) -> str:
    return f"{value:f}"


@dataclass
class L2Update:
    """Aggregated price levels of one side-pair of a book at a moment in time."""

    symbol: str
    timestamp: int
    bids: list[tuple[float, float]] = field(default_factory=list)
    asks: list[tuple[float, float]] = field(default_factory=list)

    def to_json(self) -> dict:
        """Return the update as a JSON-ready mapping with numbers as strings."""
        return {
            "timestamp": str(self.timestamp),
            "symbol": self.symbol,
            "bids": [[_fixed(p), _fixed(q)] for p, q in self.bids],
            "asks": [[_fixed(p), _fixed(q)] for p, q in self.asks],
        }


class OrderBook:
    """Bids sorted best (highest) first, asks best (lowest) first; FIFO within a level.

    ``lock`` guards the book; hold it while mutating the levels directly.
    """

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self._bids: SortedDict = SortedDict(operator.neg)
        self._asks: SortedDict = SortedDict()

    def add_order(self, order: Order) -> None:
        with self.lock:
            self.levels(order.side).setdefault(order.price, deque()).append(order)

    def remove_order(self, order: Order) -> None:
        with self.lock:
            levels = self.levels(order.side)
            queue = levels.get(order.price)
            if queue is None:
                return
            kept = deque(o for o in queue if o is not order)
            if kept:
                levels[order.price] = kept
            else:
                del levels[order.price]

    def levels(self, side: Side) -> SortedDict:
        """The price-to-queue mapping for ``side``, best price first."""
        return self._bids if side is Side.BUY else self._asks

    def best_bid_offer(self) -> tuple[float, float]:
        """Best bid and best ask; 0.0 for an empty side."""
        with self.lock:
            bid = self._bids.peekitem(0)[0] if self._bids else 0.0
            ask = self._asks.peekitem(0)[0] if self._asks else 0.0
            return bid, ask

    def _top(self, levels: SortedDict, n: int) -> list[tuple[float, float]]:
        with self.lock:
            result = []
            for price, queue in islice(levels.items(), max(n, 0)):
                qty = sum(o.remaining() for o in queue)
                if qty > 0:
                    result.append((price, qty))
            return result

    def top_bids(self, n: int = 10) -> list[tuple[float, float]]:
        """Up to the first ``n`` bid levels, skipping levels with nothing remaining."""
        return self._top(self._bids, n)

    def top_asks(self, n: int = 10) -> list[tuple[float, float]]:
        """Up to the first ``n`` ask levels, skipping levels with nothing remaining."""
        return self._top(self._asks, n)

    def generate_l2_update(self, symbol: str, depth: int = 10) -> L2Update:
        return L2Update(
            symbol=symbol,
            timestamp=now_ms(),
            bids=self.top_bids(depth),
            asks=self.top_asks(depth),
        )

    def would_trade_through(self, order: Order) -> bool:
        """True if a limit order is priced beyond the opposite best price."""
        with self.lock:
            best_bid, best_ask = self.best_bid_offer()
        if order.order_type is not OrderType.LIMIT:
            return False
        if order.side is Side.BUY:
            return best_ask > 0 and order.price > best_ask
        return best_bid > 0 and order.price < best_bid