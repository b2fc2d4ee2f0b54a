"""Command-line entry point that runs the matching engine behind the market data server."""

from __future__ import annotations

import argparse
import logging
import signal
import threading

from .engine import MatchingEngine
from .orderbook import L2Update
from .persistence import format_number
from .server import MarketDataServer
from .trades import TradeReport


def _print_trade(report: TradeReport) -> None:
    print(
        f"[TRADE] {report.trade_id} {format_number(report.quantity)}"
        f"@{format_number(report.price)}"
        f" (makerFee={format_number(report.maker_fee)},"
        f" takerFee={format_number(report.taker_fee)})"
    )


def _print_l2(update: L2Update) -> None:
    print(
        f"[L2] {update.symbol} bids={len(update.bids)} asks={len(update.asks)}"
        f" ts={update.timestamp}"
    )


def _install_signal_handlers(server: MarketDataServer) -> dict:
    """Route SIGINT/SIGTERM to a graceful stop; returns the handlers replaced."""
    if threading.current_thread() is not threading.main_thread():
        return {}

    def handler(signum, frame):
        print(f"Interrupt signal ({signum}) received. Stopping server...")
        server.stop()

    previous = {}
    for sig in (signal.SIGINT, signal.SIGTERM):
        previous[sig] = signal.signal(sig, handler)
    return previous


def _restore_signal_handlers(previous: dict) -> None:
    for sig, handler in previous.items():
        signal.signal(sig, handler)


def main(argv=None) -> int:
    """Start the engine and serve it until interrupted."""
    parser = argparse.ArgumentParser(
        prog="goquant", description="Run the matching engine and market data server."
    )
    parser.add_argument("--port", type=int, default=18080, help="listening port")
    parser.add_argument("--journal", default="journal.log", help="order journal file")
    parser.add_argument("--snapshot", default="snapshot.json", help="snapshot file")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    print("=== MAIN FUNCTION STARTED ===")

    with MatchingEngine(args.journal, args.snapshot) as engine:
        print("=== MatchingEngine initialized ===")
        engine.trade_feed.subscribe(_print_trade)
        engine.l2_feed.subscribe(_print_l2)

        print("Creating MarketDataServer...")
        server = MarketDataServer(engine, args.port)
        previous = _install_signal_handlers(server)
        try:
            print(f"Server listening on http://0.0.0.0:{args.port}")
            server.run()
        finally:
            _restore_signal_handlers(previous)

    print("Server has shut down.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())