# goquant

An order matching engine with price-time priority, maker/taker fees, an
append-only order event journal, and a market data server that speaks HTTP
and WebSocket.

## Features

- Market, limit, immediate-or-cancel (IOC) and fill-or-kill (FOK) orders
- One order book per symbol. Bids are sorted highest first and asks lowest
  first. Orders at the same price are first in, first out.
- Trades execute at the resting (maker) order's price.
- A limit buy priced above the best ask is rejected, and so is a limit sell
  priced below the best bid.
- Market and IOC orders fill what they can. The rest is canceled.
- A limit order that is not completely filled rests on the book.
- An FOK order is rejected unless the book can fill all of it.
- Maker and taker fees are worked out on each trade's notional value. The
  default rates are 0.001 for the maker and 0.002 for the taker.
- Every order event is appended to a pipe-separated journal file.
- Trades and level-2 book updates are published to subscribers.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Running the server

```
goquant
```

| Option       | Default         | Meaning                 |
|--------------|-----------------|-------------------------|
| `--port`     | `18080`         | Listening port          |
| `--journal`  | `journal.log`   | Order journal file      |
| `--snapshot` | `snapshot.json` | Snapshot file name      |

The server listens on all interfaces. It prints every trade and L2 update to
the console. SIGINT or SIGTERM shuts it down cleanly.

| Method | Path                          | Purpose                          |
|--------|-------------------------------|----------------------------------|
| POST   | `/orders`                     | Submit an order                  |
| GET    | `/bbo/<symbol>`               | Best bid and offer               |
| GET    | `/orderbook/<symbol>?depth=N` | L2 book, depth 1 to 100, default 10 |
| GET    | `/health`                     | Health check                     |
| WS     | `/ws/trades`                  | Live trade feed                  |
| WS     | `/ws/orderbook`               | Live L2 book feed                |

An order body looks like this:

```json
{
  "order_id": "b1",
  "symbol": "BTC-USDT",
  "side": "buy",
  "order_type": "limit",
  "quantity": 1.0,
  "price": 10000.0
}
```

- `side`: the value `"buy"` means a buy. Any other value means a sell.
- `order_type`: one of `market`, `limit`, `ioc` or `fok`.
- `price`: optional. It defaults to 0.

The reply carries these fields:

- `order_id`
- `status`: one of `accepted`, `filled`, `partially_filled`,
  `rejected_invalid`, `rejected_trade_through` or `rejected_fok`
- `message`
- `filled_quantity`
- the list of `trades`

Accepted, filled and partially filled orders get status 201. Rejected orders
get status 400. A malformed body also gets status 400, with a body of the form
`{"error": "..."}`.

In all responses and feed messages, prices and quantities are strings with six
decimals. In `/bbo`, a side with no orders is shown as an empty string.

Messages that WebSocket clients send to the server are only logged.

## Using the engine from Python

```python
from goquant.engine import MatchingEngine, OrderResult
from goquant.fees import FeeModel
from goquant.order import Order, OrderType, Side

with MatchingEngine(journal_file="journal.log", fees=FeeModel(0.001, 0.002)) as engine:
    @engine.trade_feed.subscribe
    def on_trade(trade):
        print(trade.to_json())

    engine.submit_order(Order("s1", "BTC-USDT", Side.SELL, OrderType.LIMIT,
                              price=10000.0, quantity=1.0))
    response = engine.submit_order(Order("b1", "BTC-USDT", Side.BUY, OrderType.LIMIT,
                                         price=10000.0, quantity=1.0))
    assert response.result is OrderResult.COMPLETELY_FILLED
    print(engine.get_bbo("BTC-USDT"))            # (0.0, 0.0) once the book is empty
    print(engine.get_l2_update("BTC-USDT", depth=5).to_json())
```

`engine.l2_feed` publishes an `L2Update` after every change to a book.

The engine takes its own copy of each submitted order, so the order you pass
in is not modified.

### Journal format

Each journal line has these fields, separated by `|`:

```
time_ms|event|order_id|symbol|BUY or SELL|type|price|quantity|filled_qty|order_timestamp
```

`event` is one of `NEW`, `RESTED`, `PARTIAL_FILL`, `FILLED` or `CANCELED`.
`type` is 0 for market, 1 for limit, 2 for IOC and 3 for FOK.

## What it does not do

- Resting orders cannot be canceled or amended.
- Engine state is held in memory only. The snapshot file name is accepted but
  never written or read.
- Nothing is restored from the journal when the engine restarts.
- There are no stop orders. `Order.stop_price` is carried but never used.