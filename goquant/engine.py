"""Matching engine: validates orders, matches them against per-symbol books."""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

from .events import EventFeed
from .fees import FeeModel
from .order import Order, OrderType, Side, now_ms
from .orderbook import L2Update, OrderBook
from .persistence import Persistence
from .trades import TradeReport

logger = logging.getLogger(__name__)

_trade_counter = itertools.count(1)
_trade_counter_lock = threading.Lock()


def _next_trade_id() -> str:
    with _trade_counter_lock:
        return f"T{next(_trade_counter)}"


class OrderResult(Enum):
    """Outcome of an order submission; the value is its API status name."""

    ACCEPTED = "accepted"
    REJECTED_INVALID_PARAMS = "rejected_invalid"
    REJECTED_TRADE_THROUGH = "rejected_trade_through"
    REJECTED_FOK_UNFILLABLE = "rejected_fok"
    PARTIALLY_FILLED = "partially_filled"
    COMPLETELY_FILLED = "filled"

    @property
    def succeeded(self) -> bool:
        return self in (
            OrderResult.ACCEPTED,
            OrderResult.PARTIALLY_FILLED,
            OrderResult.COMPLETELY_FILLED,
        )


@dataclass
class OrderResponse:
    """What happened to a submitted order."""

    result: OrderResult
    message: str
    filled_quantity: float = 0.0
    trades: list[TradeReport] = field(default_factory=list)


class _InvalidOrder(Exception):
    pass


class MatchingEngine:
    """Price-time priority matching of market, limit, IOC and FOK orders."""

    def __init__(
        self,
        journal_file: str | Path = "journal.log",
        snapshot_file: str | Path = "snapshot.json",
        fees: FeeModel | None = None,
    ) -> None:
        self._orders_lock = threading.RLock()
        self._orders: dict[str, Order] = {}
        self._books_lock = threading.RLock()
        self._books: dict[str, OrderBook] = {}
        self.trade_feed: EventFeed[TradeReport] = EventFeed()
        self.l2_feed: EventFeed[L2Update] = EventFeed()
        self.fees = fees if fees is not None else FeeModel(0.001, 0.002)
        self._persistence = Persistence(journal_file, snapshot_file)
        logger.info("matching engine initialized")

    def __enter__(self) -> "MatchingEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the order journal."""
        self._persistence.close()

    def submit_order(self, order: Order) -> OrderResponse:
        """Validate, store and process a copy of ``order``."""
        logger.debug(
            "submit %s %s %s %s@%s",
            order.order_id,
            order.symbol,
            order.side.value,
            order.quantity,
            order.price,
        )
        with self._orders_lock:
            try:
                self._validate(order)
            except _InvalidOrder as exc:
                return OrderResponse(OrderResult.REJECTED_INVALID_PARAMS, str(exc))

            stored = replace(order)
            self._orders[stored.order_id] = stored
            self._log(stored, "NEW")

            handlers = {
                OrderType.MARKET: self._process_market,
                OrderType.LIMIT: self._process_limit,
                OrderType.IOC: self._process_ioc,
                OrderType.FOK: self._process_fok,
            }
            return handlers[stored.order_type](stored)

    def get_bbo(self, symbol: str) -> tuple[float, float]:
        """Best bid and ask for ``symbol``; 0.0 where there is none."""
        with self._books_lock:
            book = self._books.get(symbol)
        if book is None:
            return 0.0, 0.0
        return book.best_bid_offer()

    def get_l2_update(self, symbol: str, depth: int = 10) -> L2Update:
        """Aggregated book levels for ``symbol`` up to ``depth`` per side."""
        with self._books_lock:
            book = self._books.get(symbol)
        if book is None:
            return L2Update(symbol=symbol, timestamp=now_ms())
        return book.generate_l2_update(symbol, depth)

    # -- order handling ---------------------------------------------------

    def _validate(self, order: Order) -> None:
        if not order.order_id:
            raise _InvalidOrder("Order ID cannot be empty")
        if not order.symbol:
            raise _InvalidOrder("Symbol cannot be empty")
        if order.quantity <= 0:
            raise _InvalidOrder("Quantity must be positive")
        if order.order_type is not OrderType.MARKET and order.price <= 0:
            raise _InvalidOrder("Price must be positive for limit orders")
        if order.order_id in self._orders:
            raise _InvalidOrder("Duplicate order ID")

    def _filled_response(self, order: Order, trades: list[TradeReport], label: str,
                         remainder_canceled: bool) -> OrderResponse:
        if order.is_filled():
            self._log(order, "FILLED")
            return OrderResponse(
                OrderResult.COMPLETELY_FILLED,
                f"{label} order completely filled",
                order.filled_qty,
                trades,
            )
        if remainder_canceled:
            self._log(order, "CANCELED")
            return OrderResponse(
                OrderResult.PARTIALLY_FILLED,
                f"{label} order partially filled, remainder canceled",
                order.filled_qty,
                trades,
            )
        raise AssertionError("unreachable")

    def _process_market(self, order: Order) -> OrderResponse:
        trades = self._match(order)
        return self._filled_response(order, trades, "Market", remainder_canceled=True)

    def _process_ioc(self, order: Order) -> OrderResponse:
        trades = self._match(order)
        return self._filled_response(order, trades, "IOC", remainder_canceled=True)

    def _process_limit(self, order: Order) -> OrderResponse:
        book = self._book(order.symbol)
        if book.would_trade_through(order):
            return OrderResponse(
                OrderResult.REJECTED_TRADE_THROUGH, "Order would trade through BBO"
            )
        trades = self._match(order)
        if order.is_filled():
            return self._filled_response(order, trades, "Limit", remainder_canceled=False)
        book.add_order(order)
        self._log(order, "RESTED")
        self._publish_l2(order.symbol)
        return OrderResponse(
            OrderResult.ACCEPTED, "Limit order rested on book", order.filled_qty, trades
        )

    def _process_fok(self, order: Order) -> OrderResponse:
        if self._fill_price(order) is None:
            return OrderResponse(
                OrderResult.REJECTED_FOK_UNFILLABLE, "FOK order cannot be completely filled"
            )
        trades = self._match(order)
        self._log(order, "FILLED")
        return OrderResponse(
            OrderResult.COMPLETELY_FILLED,
            "FOK order completely filled",
            order.filled_qty,
            trades,
        )

    # -- matching ---------------------------------------------------------

    @staticmethod
    def _beyond_limit(taker: Order, level: float) -> bool:
        if taker.order_type is not OrderType.LIMIT:
            return False
        if taker.side is Side.BUY:
            return level > taker.price
        return level < taker.price

    def _match(self, taker: Order) -> list[TradeReport]:
        book = self._book(taker.symbol)
        opposite = Side.SELL if taker.side is Side.BUY else Side.BUY
        trades: list[TradeReport] = []
        with book.lock:
            levels = book.levels(opposite)
            for level in list(levels.keys()):
                if taker.remaining() <= 0:
                    break
                if self._beyond_limit(taker, level):
                    break
                queue = levels[level]
                for maker in list(queue):
                    if taker.remaining() <= 0:
                        break
                    trades.append(self._execute(maker, taker))
                    if maker.is_filled():
                        queue.remove(maker)
                if not queue:
                    del levels[level]
            if trades:
                self._publish_l2(taker.symbol)
        return trades

    def _execute(self, maker: Order, taker: Order) -> TradeReport:
        quantity = min(maker.remaining(), taker.remaining())
        price = maker.price
        fee = self.fees.compute_fees(price, quantity, True)
        trade = TradeReport(
            symbol=taker.symbol,
            trade_id=_next_trade_id(),
            price=price,
            quantity=quantity,
            maker_fee=fee.maker_fee,
            taker_fee=fee.taker_fee,
            aggressor=taker.side.value,
            maker_order_id=maker.order_id,
            taker_order_id=taker.order_id,
            timestamp=now_ms(),
        )
        maker.filled_qty += quantity
        taker.filled_qty += quantity
        self.trade_feed.publish(trade)
        self._log(maker, "FILLED" if maker.is_filled() else "PARTIAL_FILL")
        self._log(taker, "FILLED" if taker.is_filled() else "PARTIAL_FILL")
        return trade

    def _fill_price(self, order: Order) -> float | None:
        """Average price at which ``order`` would fill completely, or None."""
        book = self._book(order.symbol)
        opposite = Side.SELL if order.side is Side.BUY else Side.BUY
        remaining = order.quantity
        cost = 0.0
        with book.lock:
            for level, queue in book.levels(opposite).items():
                if self._beyond_limit(order, level):
                    break
                for maker in queue:
                    quantity = min(maker.remaining(), remaining)
                    cost += quantity * level
                    remaining -= quantity
                    if remaining <= 0:
                        return cost / order.quantity
        return None

    # -- helpers ----------------------------------------------------------

    def _book(self, symbol: str) -> OrderBook:
        with self._books_lock:
            return self._books.setdefault(symbol, OrderBook())

    def _publish_l2(self, symbol: str) -> None:
        self.l2_feed.publish(self._book(symbol).generate_l2_update(symbol))

    def _log(self, order: Order, event: str) -> None:
        self._persistence.log_order_event(order, event)