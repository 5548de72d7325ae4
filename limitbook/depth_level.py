"""One price level of an aggregated order book, and related constants."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

QUANTITY_MAX = (1 << 64) - 1
INVALID_LEVEL_PRICE = 0
MARKET_ORDER_BID_SORT_PRICE = QUANTITY_MAX
MARKET_ORDER_ASK_SORT_PRICE = 0


class DepthLevelError(RuntimeError):
    """A level was asked to close more than it holds."""


class BboListener(Protocol):
    """Receives top-of-book changes."""

    def on_bbo_change(self, book: Any, depth: Any) -> None:
        """Called when the best bid or offer changes."""


@dataclass
class DepthLevel:
    """Orders at a single price, aggregated into a count and a quantity."""

    price: int = INVALID_LEVEL_PRICE
    order_count: int = 0
    aggregate_qty: int = 0
    is_excess: bool = False
    last_change: int = 0

    def init(self, price: int, is_excess: bool) -> None:
        """Reset the level to an empty one at ``price``."""
        self.price = price
        self.order_count = 0
        self.aggregate_qty = 0
        self.is_excess = is_excess

    def add_order(self, qty: int) -> None:
        """Add an order with open quantity ``qty``."""
        self.order_count += 1
        self.aggregate_qty += qty

    def increase_qty(self, qty: int) -> None:
        """Increase the quantity of existing orders."""
        self.aggregate_qty += qty

    def decrease_qty(self, qty: int) -> None:
        """Decrease the quantity of existing orders."""
        self.aggregate_qty -= qty

    def set(self, price: int, qty: int, order_count: int, last_change: int = 0) -> None:
        """Overwrite every value of the level except ``is_excess``."""
        self.price = price
        self.aggregate_qty = qty
        self.order_count = order_count
        self.last_change = last_change

    def close_order(self, qty: int) -> bool:
        """Remove a cancelled or filled order; return True if now empty."""
        if self.order_count == 0:
            raise DepthLevelError("DepthLevel::close_order order count too low")
        if self.order_count == 1:
            self.order_count = 0
            self.aggregate_qty = 0
            return True
        self.order_count -= 1
        if self.aggregate_qty < qty:
            raise DepthLevelError("DepthLevel::close_order level quantity too low")
        self.aggregate_qty -= qty
        return False

    def changed_since(self, last_published_change: int) -> bool:
        """Whether the level changed after the given stamp."""
        return self.last_change > last_published_change

    def copy_from(self, other: "DepthLevel") -> None:
        """Take another level's values, keeping this level's ``is_excess``.

        The change stamp is copied only when the other level is valid.
        """
        self.price = other.price
        self.order_count = other.order_count
        self.aggregate_qty = other.aggregate_qty
        if other.price != INVALID_LEVEL_PRICE:
            self.last_change = other.last_change