"""A simple order that quotes its price in currency units."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar


@dataclass(eq=False)
class ExampleOrder:
    """An order whose price is given as a decimal and stored in hundredths."""

    PRECISION: ClassVar[int] = 100

    is_buy: bool
    quoted_price: float
    order_qty: int
    stop_price: int = 0

    @property
    def price(self) -> int:
        """The price in hundredths, truncated."""
        return int(self.quoted_price * self.PRECISION)