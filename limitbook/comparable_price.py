"""Prices that know which side of the market they are on."""

from __future__ import annotations

from typing import Union

MARKET_ORDER_PRICE = 0
"""Price used for market orders: it matches any price on the other side."""

_PriceLike = Union[int, "ComparablePrice"]


class ComparablePrice:
    """A price ordered by how easily it finds a match on its own side.

    Sorting prices of one side with ``<`` puts them in order from most
    liquid to least liquid: market prices first, then the highest bids or
    the lowest asks. Prices on opposite sides are compared with
    :meth:`matches`. Equality ignores the side.
    """

    __slots__ = ("_price", "_buy_side")

    def __init__(self, buy_side: bool, price: int) -> None:
        self._price = price
        self._buy_side = bool(buy_side)

    @property
    def price(self) -> int:
        """The plain price, or ``MARKET_ORDER_PRICE`` for market."""
        return self._price

    @property
    def is_buy(self) -> bool:
        """True for the buy side."""
        return self._buy_side

    def is_market(self) -> bool:
        """True if this is a market price."""
        return self._price == MARKET_ORDER_PRICE

    def matches(self, rhs: int) -> bool:
        """Whether a price on the opposite side could trade with this one."""
        if self._price == rhs:
            return True
        if self._buy_side:
            return rhs < self._price or self._price == MARKET_ORDER_PRICE
        return self._price < rhs or rhs == MARKET_ORDER_PRICE

    @staticmethod
    def _plain(rhs: object) -> int | None:
        if isinstance(rhs, ComparablePrice):
            return rhs._price
        if isinstance(rhs, int) and not isinstance(rhs, bool):
            return rhs
        return None

    def _less(self, rhs: int) -> bool:
        if self._price == MARKET_ORDER_PRICE:
            return rhs != MARKET_ORDER_PRICE
        if rhs == MARKET_ORDER_PRICE:
            return False
        if self._buy_side:
            return rhs < self._price
        return self._price < rhs

    def _greater(self, rhs: int) -> bool:
        if self._price == MARKET_ORDER_PRICE:
            return False
        if rhs == MARKET_ORDER_PRICE:
            return True
        if self._buy_side:
            return rhs > self._price
        return self._price > rhs

    def __lt__(self, rhs: object) -> bool:
        value = self._plain(rhs)
        if value is None:
            return NotImplemented
        return self._less(value)

    def __gt__(self, rhs: object) -> bool:
        value = self._plain(rhs)
        if value is None:
            return NotImplemented
        return self._greater(value)

    def __le__(self, rhs: object) -> bool:
        value = self._plain(rhs)
        if value is None:
            return NotImplemented
        return self._less(value) or self._price == value

    def __ge__(self, rhs: object) -> bool:
        value = self._plain(rhs)
        if value is None:
            return NotImplemented
        return self._greater(value) or self._price == value

    def __eq__(self, rhs: object) -> bool:
        value = self._plain(rhs)
        if value is None:
            return NotImplemented
        return self._price == value

    def __ne__(self, rhs: object) -> bool:
        value = self._plain(rhs)
        if value is None:
            return NotImplemented
        return self._price != value

    def __hash__(self) -> int:
        return hash(self._price)

    def __str__(self) -> str:
        side = "Buy at " if self._buy_side else "Sell at "
        return side + ("Market" if self.is_market() else str(self._price))

    def __repr__(self) -> str:
        return f"ComparablePrice(buy_side={self._buy_side!r}, price={self._price!r})"