from goquant.order import Order, OrderType, Side, now_ms
from goquant.orderbook import L2Update, OrderBook


def make(order_id, side, price, quantity=1.0, order_type=OrderType.LIMIT):
    return Order(order_id, "BTC-USDT", side, order_type, price=price, quantity=quantity)


def test_empty_book_bbo_is_zero():
    assert OrderBook().best_bid_offer() == (0.0, 0.0)


def test_best_bid_is_highest_and_best_ask_lowest():
    book = OrderBook()
    book.add_order(make("b1", Side.BUY, 100.0))
    book.add_order(make("b2", Side.BUY, 101.0))
    book.add_order(make("a1", Side.SELL, 105.0))
    book.add_order(make("a2", Side.SELL, 104.0))
    assert book.best_bid_offer() == (101.0, 104.0)


def test_top_levels_sorted_best_first():
    book = OrderBook()
    for i, price in enumerate([100.0, 102.0, 101.0]):
        book.add_order(make(f"b{i}", Side.BUY, price))
        book.add_order(make(f"a{i}", Side.SELL, price + 10))
    bid_prices = [p for p, _ in book.top_bids()]
    ask_prices = [p for p, _ in book.top_asks()]
    assert bid_prices == sorted(bid_prices, reverse=True)
    assert ask_prices == sorted(ask_prices)
    assert len(bid_prices) == len(ask_prices) == 3


def test_level_quantity_aggregates_remaining():
    book = OrderBook()
    first = make("b1", Side.BUY, 100.0, quantity=1.0)
    second = make("b2", Side.BUY, 100.0, quantity=2.0)
    book.add_order(first)
    book.add_order(second)
    assert book.top_bids() == [(100.0, 3.0)]
    second.filled_qty = 2.0
    assert book.top_bids() == [(100.0, first.quantity)]


def test_depth_limits_levels():
    book = OrderBook()
    for i in range(5):
        book.add_order(make(f"a{i}", Side.SELL, 100.0 + i))
    assert [p for p, _ in book.top_asks(2)] == [100.0, 101.0]
    assert book.top_asks(0) == []


def test_exhausted_level_counts_toward_depth_but_is_hidden():
    book = OrderBook()
    exhausted = make("a0", Side.SELL, 100.0)
    exhausted.filled_qty = exhausted.quantity
    book.add_order(exhausted)
    book.add_order(make("a1", Side.SELL, 101.0))
    book.add_order(make("a2", Side.SELL, 102.0))
    assert [p for p, _ in book.top_asks(2)] == [101.0]


def test_fifo_within_level():
    book = OrderBook()
    first = make("b1", Side.BUY, 100.0)
    second = make("b2", Side.BUY, 100.0)
    book.add_order(first)
    book.add_order(second)
    assert list(book.levels(Side.BUY)[100.0]) == [first, second]


def test_remove_order_drops_empty_level():
    book = OrderBook()
    order = make("a1", Side.SELL, 100.0)
    book.add_order(order)
    book.remove_order(order)
    assert 100.0 not in book.levels(Side.SELL)
    assert book.best_bid_offer() == (0.0, 0.0)


def test_remove_order_keeps_others_at_level():
    book = OrderBook()
    first = make("b1", Side.BUY, 100.0)
    second = make("b2", Side.BUY, 100.0)
    book.add_order(first)
    book.add_order(second)
    book.remove_order(first)
    assert list(book.levels(Side.BUY)[100.0]) == [second]


def test_remove_unknown_order_leaves_book_unchanged():
    book = OrderBook()
    book.add_order(make("b1", Side.BUY, 100.0))
    book.remove_order(make("x", Side.BUY, 99.0))
    assert book.best_bid_offer() == (100.0, 0.0)


def test_would_trade_through_buy_limit():
    book = OrderBook()
    book.add_order(make("a1", Side.SELL, 100.0))
    assert book.would_trade_through(make("b", Side.BUY, 100.5)) is True
    assert book.would_trade_through(make("b", Side.BUY, 100.0)) is False


def test_would_trade_through_sell_limit():
    book = OrderBook()
    book.add_order(make("b1", Side.BUY, 100.0))
    assert book.would_trade_through(make("s", Side.SELL, 99.5)) is True
    assert book.would_trade_through(make("s", Side.SELL, 100.0)) is False


def test_would_trade_through_ignores_non_limit_and_empty_side():
    book = OrderBook()
    assert book.would_trade_through(make("b", Side.BUY, 1e9)) is False
    book.add_order(make("a1", Side.SELL, 100.0))
    ioc = make("b", Side.BUY, 200.0, order_type=OrderType.IOC)
    assert book.would_trade_through(ioc) is False


def test_generate_l2_update_matches_top_levels():
    book = OrderBook()
    book.add_order(make("b1", Side.BUY, 99.0))
    book.add_order(make("a1", Side.SELL, 101.0))
    before = now_ms()
    update = book.generate_l2_update("BTC-USDT", 5)
    assert update.symbol == "BTC-USDT"
    assert before <= update.timestamp <= now_ms()
    assert update.bids == book.top_bids(5)
    assert update.asks == book.top_asks(5)


def test_l2_update_to_json():
    update = L2Update("BTC-USDT", 1700000000123, [(10000.0, 1.0)], [])
    assert update.to_json() == {
        "timestamp": "1700000000123",
        "symbol": "BTC-USDT",
        "bids": [["10000.000000", "1.000000"]],
        "asks": [],
    }