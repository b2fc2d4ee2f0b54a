"""Order matching engine with fees, an order journal and an HTTP/WebSocket market data server."""

__version__ = "0.1.0"
__all__ = ["__version__"]