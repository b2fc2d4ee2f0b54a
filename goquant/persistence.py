"""Append-only journal of order events."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import IO

from .order import Order, now_ms

logger = logging.getLogger(__name__)


def format_number(value: float | int) -> str:
    """Format a number the way a default-configured text stream does."""
    if isinstance(value, int):
        return str(value)
    return f"{value:g}"


class Persistence:
    """Writes one pipe-separated line per order event to a journal file."""

    def __init__(self, journal_file: str | Path, snapshot_file: str | Path) -> None:
        self.journal_file = Path(journal_file)
        self.snapshot_file = Path(snapshot_file)
        self._lock = threading.Lock()
        self._journal: IO[str] | None
        try:
            self._journal = open(self.journal_file, "a", encoding="utf-8")
        except OSError as exc:
            logger.warning("journal %s could not be opened: %s", self.journal_file, exc)
            self._journal = None

    def log_order_event(self, order: Order, event: str) -> None:
        """Append a line describing ``order`` at ``event``; a closed journal ignores it."""
        with self._lock:
            if self._journal is None:
                return
            fields = [
                str(now_ms()),
                event,
                order.order_id,
                order.symbol,
                order.side.value,
                str(int(order.order_type)),
                format_number(order.price),
                format_number(order.quantity),
                format_number(order.filled_qty),
                format_number(order.timestamp),
            ]
            self._journal.write("|".join(fields) + "\n")
            self._journal.flush()

    def close(self) -> None:
        with self._lock:
            if self._journal is not None:
                self._journal.close()
                self._journal = None

    def __enter__(self) -> "Persistence":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()