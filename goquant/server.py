"""HTTP and WebSocket front end for the matching engine."""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import re
import threading
from typing import Any

from aiohttp import WSCloseCode, WSMsgType, web

from .engine import MatchingEngine
from .order import Order, OrderType, Side, now_ms
from .orderbook import L2Update
from .trades import TradeReport

logger = logging.getLogger(__name__)

_dumps = functools.partial(json.dumps, separators=(",", ":"))

_ORDER_TYPES = {
    "market": OrderType.MARKET,
    "limit": OrderType.LIMIT,
    "ioc": OrderType.IOC,
    "fok": OrderType.FOK,
}

_DEFAULT_DEPTH = 10
_MIN_DEPTH = 1
_MAX_DEPTH = 100
_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


def _field(body: dict, key: str) -> Any:
    if key not in body:
        raise ValueError(f"missing field: {key}")
    return body[key]


def _string(body: dict, key: str) -> str:
    value = _field(body, key)
    if not isinstance(value, str):
        raise ValueError(f"field {key} must be a string")
    return value


def _number(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"field {key} must be a number")
    return float(value)


def order_from_json(body: Any) -> Order:
    """Build an order from a decoded JSON request body; raises ValueError if malformed."""
    if not isinstance(body, dict):
        raise ValueError("order must be a JSON object")
    order_id = _string(body, "order_id")
    symbol = _string(body, "symbol")
    side = Side.BUY if _string(body, "side") == "buy" else Side.SELL
    type_name = _string(body, "order_type")
    try:
        order_type = _ORDER_TYPES[type_name]
    except KeyError:
        raise ValueError(f"Invalid order_type: {type_name}") from None
    quantity = _number(_field(body, "quantity"), "quantity")
    price = _number(body["price"], "price") if "price" in body else 0.0
    return Order(
        order_id=order_id,
        symbol=symbol,
        side=side,
        order_type=order_type,
        price=price,
        quantity=quantity,
        timestamp=now_ms(),
    )


def _parse_depth(raw: str | None) -> int:
    """Leading integer of ``raw`` clamped to 1..100; 10 when absent or unparsable."""
    if raw is None:
        return _DEFAULT_DEPTH
    match = re.match(r"\s*([+-]?\d+)", raw)
    if match is None:
        return _DEFAULT_DEPTH
    value = int(match.group(1))
    if not _INT32_MIN <= value <= _INT32_MAX:
        return _DEFAULT_DEPTH
    return max(_MIN_DEPTH, min(value, _MAX_DEPTH))


class MarketDataServer:
    """Serves order entry, market data snapshots and live trade/L2 feeds."""

    def __init__(self, engine: MatchingEngine, port: int = 8080) -> None:
        self.engine = engine
        self.port = port
        self.host = "0.0.0.0"
        self._clients_lock = threading.Lock()
        self._trade_clients: list[web.WebSocketResponse] = []
        self._l2_clients: list[web.WebSocketResponse] = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self._state_lock = threading.Lock()
        self._serve_loop: asyncio.AbstractEventLoop | None = None
        self._stop_event: asyncio.Event | None = None
        self._stop_requested = False
        engine.trade_feed.subscribe(self._broadcast_trade)
        engine.l2_feed.subscribe(self._broadcast_l2)

    # -- application ------------------------------------------------------

    def build_app(self) -> web.Application:
        """Create the web application with all routes registered."""
        app = web.Application()
        app.router.add_post("/orders", self._post_order)
        app.router.add_get("/bbo/{symbol}", self._get_bbo)
        app.router.add_get("/orderbook/{symbol}", self._get_orderbook)
        app.router.add_get("/health", self._health)
        app.router.add_get("/ws/trades", self._ws_trades)
        app.router.add_get("/ws/orderbook", self._ws_orderbook)
        app.on_startup.append(self._on_startup)
        app.on_shutdown.append(self._on_shutdown)
        app.on_cleanup.append(self._on_cleanup)
        return app

    def run(self) -> None:
        """Serve until :meth:`stop` is called."""
        print("=== STARTING ENHANCED MARKET DATA SERVER ===")
        print("Endpoints available:")
        print("  POST /orders - Submit orders")
        print("  GET /bbo/<symbol> - Best bid/offer")
        print("  GET /orderbook/<symbol>?depth=N - L2 order book")
        print("  GET /health - Health check")
        print("  WS /ws/trades - Trade feed")
        print("  WS /ws/orderbook - L2 order book feed")
        asyncio.run(self._serve())

    def stop(self) -> None:
        """Ask a running (or about to run) server to shut down; safe from any thread."""
        with self._state_lock:
            self._stop_requested = True
            loop, event = self._serve_loop, self._stop_event
        if loop is not None and event is not None:
            try:
                loop.call_soon_threadsafe(event.set)
            except RuntimeError:
                logger.debug("server loop already closed")

    async def _serve(self) -> None:
        stop_event = asyncio.Event()
        with self._state_lock:
            self._serve_loop = asyncio.get_running_loop()
            self._stop_event = stop_event
            if self._stop_requested:
                stop_event.set()
        runner = web.AppRunner(self.build_app())
        await runner.setup()
        try:
            site = web.TCPSite(runner, self.host, self.port)
            await site.start()
            await stop_event.wait()
        finally:
            await runner.cleanup()
            with self._state_lock:
                self._serve_loop = None
                self._stop_event = None
                self._stop_requested = False

    async def _on_startup(self, app: web.Application) -> None:
        self._loop = asyncio.get_running_loop()

    async def _on_shutdown(self, app: web.Application) -> None:
        with self._clients_lock:
            clients = self._trade_clients + self._l2_clients
        for ws in clients:
            await ws.close(code=WSCloseCode.GOING_AWAY, message=b"server shutdown")

    async def _on_cleanup(self, app: web.Application) -> None:
        self._loop = None

    # -- REST -------------------------------------------------------------

    async def _post_order(self, request: web.Request) -> web.Response:
        text = await request.text()
        logger.info("POST /orders - Body: %s", text)
        try:
            order = order_from_json(json.loads(text))
        except ValueError as exc:
            logger.warning("Order submission error: %s", exc)
            return web.json_response({"error": str(exc)}, status=400, dumps=_dumps)

        response = self.engine.submit_order(order)
        payload = {
            "order_id": order.order_id,
            "status": response.result.value,
            "message": response.message,
            "filled_quantity": f"{response.filled_quantity:f}",
            "trades": [trade.to_json() for trade in response.trades],
        }
        status = 201 if response.result.succeeded else 400
        return web.json_response(payload, status=status, dumps=_dumps)

    async def _get_bbo(self, request: web.Request) -> web.Response:
        symbol = request.match_info["symbol"]
        bid, ask = self.engine.get_bbo(symbol)
        payload = {
            "symbol": symbol,
            "timestamp": str(now_ms()),
            "best_bid": f"{bid:f}" if bid > 0 else "",
            "best_ask": f"{ask:f}" if ask > 0 else "",
        }
        return web.json_response(payload, dumps=_dumps)

    async def _get_orderbook(self, request: web.Request) -> web.Response:
        symbol = request.match_info["symbol"]
        depth = _parse_depth(request.query.get("depth"))
        update = self.engine.get_l2_update(symbol, depth)
        return web.json_response(update.to_json(), dumps=_dumps)

    async def _health(self, request: web.Request) -> web.Response:
        payload = {"status": "healthy", "timestamp": str(now_ms())}
        return web.json_response(payload, dumps=_dumps)

    # -- WebSockets -------------------------------------------------------

    async def _ws_trades(self, request: web.Request) -> web.WebSocketResponse:
        return await self._ws_session(request, self._trade_clients, "Trade")

    async def _ws_orderbook(self, request: web.Request) -> web.WebSocketResponse:
        return await self._ws_session(request, self._l2_clients, "L2")

    async def _ws_session(
        self, request: web.Request, clients: list[web.WebSocketResponse], name: str
    ) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        with self._clients_lock:
            clients.append(ws)
            total = len(clients)
        logger.info("[WS] %s client connected, total=%d", name, total)
        try:
            await ws.prepare(request)
            async for message in ws:
                if message.type == WSMsgType.TEXT:
                    logger.info("[WS] %s client message: %s", name, message.data)
                elif message.type == WSMsgType.ERROR:
                    logger.warning("[WS] %s client error: %s", name, ws.exception())
        finally:
            with self._clients_lock:
                if ws in clients:
                    clients.remove(ws)
                remaining = len(clients)
            logger.info("[WS] %s client disconnected, remaining=%d", name, remaining)
        return ws

    def _broadcast_trade(self, trade: TradeReport) -> None:
        self._broadcast(self._trade_clients, trade.to_json(), "trade")

    def _broadcast_l2(self, update: L2Update) -> None:
        self._broadcast(self._l2_clients, update.to_json(), "L2 update")

    def _broadcast(self, clients: list[web.WebSocketResponse], payload: dict, what: str) -> None:
        with self._clients_lock:
            targets = list(clients)
        loop = self._loop
        if not targets or loop is None or loop.is_closed():
            return
        coro = self._send_all(targets, _dumps(payload), what)
        try:
            asyncio.run_coroutine_threadsafe(coro, loop)
        except RuntimeError:
            coro.close()
            logger.warning("could not schedule %s broadcast", what)

    @staticmethod
    async def _send_all(targets: list[web.WebSocketResponse], message: str, what: str) -> None:
        for ws in targets:
            if ws.closed:
                continue
            try:
                await ws.send_str(message)
            except Exception as exc:  # one bad client must not stop the rest
                logger.warning("Failed to send %s to client: %s", what, exc)