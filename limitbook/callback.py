"""Events produced by an order book and delivered to listeners."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional


class CallbackType(enum.IntEnum):
    """Kind of order book event."""

    UNKNOWN = 0
    ORDER_ACCEPT = 1
    ORDER_ACCEPT_STOP = 2
    ORDER_TRIGGER_STOP = 3
    ORDER_REJECT = 4
    ORDER_FILL = 5
    ORDER_CANCEL = 6
    ORDER_CANCEL_STOP = 7
    ORDER_CANCEL_REJECT = 8
    ORDER_REPLACE = 9
    ORDER_REPLACE_REJECT = 10
    BOOK_UPDATE = 11


class FillFlags(enum.IntFlag):
    """Which side of a fill was completed by it."""

    NEITHER_FILLED = 0
    INBOUND_FILLED = 1
    MATCHED_FILLED = 2
    BOTH_FILLED = 4


@dataclass
class Callback:
    """A single notification from an order book."""

    type: CallbackType = CallbackType.UNKNOWN
    order: Any = None
    matched_order: Any = None
    quantity: int = 0
    price: int = 0
    flags: FillFlags = FillFlags.NEITHER_FILLED
    delta: int = 0
    reject_reason: Optional[str] = None

    @classmethod
    def accept(cls, order: Any) -> "Callback":
        """An order was accepted."""
        return cls(type=CallbackType.ORDER_ACCEPT, order=order)

    @classmethod
    def accept_stop(cls, order: Any) -> "Callback":
        """A stop order was accepted and is waiting for its trigger."""
        return cls(type=CallbackType.ORDER_ACCEPT_STOP, order=order)

    @classmethod
    def trigger_stop(cls, order: Any) -> "Callback":
        """A stop order was triggered and sent to the market."""
        return cls(type=CallbackType.ORDER_TRIGGER_STOP, order=order)

    @classmethod
    def reject(cls, order: Any, reason: str) -> "Callback":
        """An order was rejected."""
        return cls(type=CallbackType.ORDER_REJECT, order=order, reject_reason=reason)

    @classmethod
    def fill(
        cls,
        inbound_order: Any,
        matched_order: Any,
        fill_qty: int,
        fill_price: int,
        fill_flags: FillFlags,
    ) -> "Callback":
        """Two orders traded."""
        return cls(
            type=CallbackType.ORDER_FILL,
            order=inbound_order,
            matched_order=matched_order,
            quantity=fill_qty,
            price=fill_price,
            flags=FillFlags(fill_flags),
        )

    @classmethod
    def cancel(cls, order: Any, open_qty: int) -> "Callback":
        """An order was cancelled with the given open quantity."""
        return cls(type=CallbackType.ORDER_CANCEL, order=order, quantity=open_qty)

    @classmethod
    def cancel_stop(cls, order: Any) -> "Callback":
        """A waiting stop order was cancelled."""
        return cls(type=CallbackType.ORDER_CANCEL_STOP, order=order)

    @classmethod
    def cancel_reject(cls, order: Any, reason: str) -> "Callback":
        """A cancel request was rejected."""
        return cls(
            type=CallbackType.ORDER_CANCEL_REJECT, order=order, reject_reason=reason
        )

    @classmethod
    def replace(
        cls, order: Any, curr_open_qty: int, size_delta: int, new_price: int
    ) -> "Callback":
        """An order was replaced."""
        return cls(
            type=CallbackType.ORDER_REPLACE,
            order=order,
            quantity=curr_open_qty,
            delta=size_delta,
            price=new_price,
        )

    @classmethod
    def replace_reject(cls, order: Any, reason: str) -> "Callback":
        """A replace request was rejected."""
        return cls(
            type=CallbackType.ORDER_REPLACE_REJECT, order=order, reject_reason=reason
        )

    @classmethod
    def book_update(cls, book: Any = None) -> "Callback":
        """The book changed somewhere."""
        return cls(type=CallbackType.BOOK_UPDATE)