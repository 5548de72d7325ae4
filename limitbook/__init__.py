"""Limit order book with price-time matching, stop, all-or-none and immediate-or-cancel orders."""

__version__ = "0.1.0"

__all__ = [
    "callback",
    "comparable_price",
    "depth_level",
    "example_order",
    "matching",
    "order_book",
]