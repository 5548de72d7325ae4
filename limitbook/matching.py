"""Order tracking, price-ordered order containers and the matching engine."""

from __future__ import annotations

import enum
import itertools
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Protocol

from sortedcontainers import SortedKeyList

from .callback import Callback, FillFlags
from .comparable_price import MARKET_ORDER_PRICE, ComparablePrice
from .depth_level import QUANTITY_MAX


class Order(Protocol):
    """What the book needs to know about an order."""

    is_buy: bool
    order_qty: int
    price: int


class OrderConditions(enum.IntFlag):
    """Special conditions attached to an order."""

    NONE = 0
    ALL_OR_NONE = 1
    IMMEDIATE_OR_CANCEL = 2
    FILL_OR_KILL = ALL_OR_NONE | IMMEDIATE_OR_CANCEL


class OrderTracker:
    """Keeps the open quantity and conditions of an order in the book."""

    __slots__ = ("order", "conditions", "_open_qty")

    def __init__(self, order: Any, conditions: int = OrderConditions.NONE) -> None:
        self.order = order
        self.conditions = OrderConditions(conditions)
        self._open_qty = order.order_qty

    @property
    def open_qty(self) -> int:
        """Quantity still waiting to trade."""
        return self._open_qty

    @property
    def filled_qty(self) -> int:
        """Quantity already traded."""
        return self.order.order_qty - self._open_qty

    @property
    def filled(self) -> bool:
        """True when nothing is left open."""
        return self._open_qty == 0

    @property
    def all_or_none(self) -> bool:
        return bool(self.conditions & OrderConditions.ALL_OR_NONE)

    @property
    def immediate_or_cancel(self) -> bool:
        return bool(self.conditions & OrderConditions.IMMEDIATE_OR_CANCEL)

    def fill(self, qty: int) -> None:
        """Record a fill of ``qty``."""
        if qty > self._open_qty:
            raise ValueError("Fill size larger than open quantity")
        self._open_qty -= qty

    def change_qty(self, delta: int) -> None:
        """Change the open quantity by ``delta`` (positive or negative)."""
        if delta < 0 and self._open_qty < -delta:
            raise ValueError("Replace size reduction larger than open quantity")
        self._open_qty += delta

    def __repr__(self) -> str:
        return (
            f"OrderTracker(order={self.order!r}, open_qty={self._open_qty}, "
            f"conditions={self.conditions!r})"
        )


@dataclass(eq=False)
class TrackerEntry:
    """A tracker held in a :class:`TrackerMap` under a price key."""

    key: ComparablePrice
    tracker: OrderTracker
    seq: int
    active: bool = field(default=True)


def _rank(key: ComparablePrice) -> tuple:
    if key.is_market():
        return (0, 0)
    return (1, -key.price if key.is_buy else key.price)


class TrackerMap:
    """Trackers ordered by price priority, then by arrival."""

    def __init__(self) -> None:
        self._entries = SortedKeyList(key=lambda e: (_rank(e.key), e.seq))
        self._seq = itertools.count()

    def insert(self, key: ComparablePrice, tracker: OrderTracker) -> TrackerEntry:
        """Add ``tracker`` behind every entry of equal priority."""
        entry = TrackerEntry(key, tracker, next(self._seq))
        self._entries.add(entry)
        return entry

    def remove(self, entry: TrackerEntry) -> None:
        """Take an entry out of the map."""
        if not entry.active:
            raise ValueError("entry is not in the map")
        self._entries.remove(entry)
        entry.active = False

    def entries(self) -> List[TrackerEntry]:
        """A snapshot of the entries in priority order."""
        return list(self._entries)

    def at(self, key: ComparablePrice) -> Iterator[TrackerEntry]:
        """Entries whose price equals ``key``, in arrival order."""
        rank = _rank(key)
        return iter(
            list(self._entries.irange_key((rank,), (rank, float("inf"))))
        )

    def __iter__(self) -> Iterator[TrackerEntry]:
        return iter(self.entries())

    def __reversed__(self) -> Iterator[TrackerEntry]:
        return iter(list(reversed(self._entries)))

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __contains__(self, entry: object) -> bool:
        return isinstance(entry, TrackerEntry) and entry.active and entry in self._entries


class Matcher:
    """Matches inbound orders against resting orders and records fills."""

    def __init__(self, market_price: int = MARKET_ORDER_PRICE) -> None:
        self.market_price = market_price
        self.callbacks: List[Callback] = []

    def _on_trade_price(self, price: int) -> None:
        """Called with the price of every trade."""
        self.market_price = price

    def match_order(
        self,
        inbound: OrderTracker,
        inbound_price: int,
        current_orders: TrackerMap,
        deferred_aons: List[TrackerEntry],
    ) -> bool:
        """Match ``inbound`` against ``current_orders``; True if anything traded."""
        if inbound.all_or_none:
            return self.match_aon_order(
                inbound, inbound_price, current_orders, deferred_aons
            )
        return self.match_regular_order(
            inbound, inbound_price, current_orders, deferred_aons
        )

    def match_regular_order(
        self,
        inbound: OrderTracker,
        inbound_price: int,
        current_orders: TrackerMap,
        deferred_aons: List[TrackerEntry],
    ) -> bool:
        """Match an inbound order that has no all-or-none condition."""
        matched = False
        inbound_qty = inbound.open_qty
        for entry in current_orders.entries():
            if inbound.filled:
                break
            if not entry.active:
                continue
            if not entry.key.matches(inbound_price):
                break
            current = entry.tracker
            current_qty = current.open_qty
            if current.all_or_none:
                if current_qty <= inbound_qty:
                    traded = self.create_trade(inbound, current)
                    if traded > 0:
                        matched = True
                        current_orders.remove(entry)
                        inbound_qty -= traded
                else:
                    deferred_aons.append(entry)
            else:
                traded = self.create_trade(inbound, current)
                if traded > 0:
                    matched = True
                    if current.filled:
                        current_orders.remove(entry)
                    inbound_qty -= traded
        return matched

    def match_aon_order(
        self,
        inbound: OrderTracker,
        inbound_price: int,
        current_orders: TrackerMap,
        deferred_aons: List[TrackerEntry],
    ) -> bool:
        """Match an all-or-none inbound order: all of it trades or none does."""
        matched = False
        inbound_qty = inbound.open_qty
        deferred_qty = 0
        deferred_matches: List[TrackerEntry] = []

        for entry in current_orders.entries():
            if inbound.filled:
                break
            if not entry.active:
                continue
            if not entry.key.matches(inbound_price):
                break
            current = entry.tracker
            current_qty = current.open_qty

            if current.all_or_none:
                if current_qty <= inbound_qty:
                    if inbound_qty <= current_qty + deferred_qty:
                        max_qty = inbound_qty - current_qty
                        if max_qty == self.try_create_deferred_trades(
                            inbound, deferred_matches, max_qty, max_qty, current_orders
                        ):
                            inbound_qty -= max_qty
                            traded = self.create_trade(inbound, current)
                            if traded > 0:
                                inbound_qty -= traded
                                matched = True
                                current_orders.remove(entry)
                    else:
                        deferred_qty += current_qty
                        deferred_matches.append(entry)
                else:
                    deferred_aons.append(entry)
            else:
                if inbound_qty <= current_qty + deferred_qty:
                    needed = inbound_qty - current_qty if inbound_qty > current_qty else 0
                    traded = self.try_create_deferred_trades(
                        inbound, deferred_matches, inbound_qty, needed, current_orders
                    )
                    if inbound_qty <= current_qty + traded:
                        traded += self.create_trade(inbound, current)
                        if traded > 0:
                            inbound_qty -= traded
                            matched = True
                        if current.filled:
                            current_orders.remove(entry)
                else:
                    deferred_qty += current_qty
                    deferred_matches.append(entry)
        return matched

    def try_create_deferred_trades(
        self,
        inbound: OrderTracker,
        deferred_matches: List[TrackerEntry],
        max_qty: int,
        min_qty: int,
        current_orders: TrackerMap,
    ) -> int:
        """Trade against deferred orders if between ``min_qty`` and ``max_qty`` is available.

        Returns the quantity traded, zero if the bounds could not be met.
        """
        fills: List[int] = []
        found_qty = 0
        for entry in deferred_matches:
            if found_qty >= max_qty:
                break
            tracker = entry.tracker
            qty = tracker.open_qty
            if found_qty + qty > max_qty:
                qty = 0 if tracker.all_or_none else max_qty - found_qty
            found_qty += qty
            fills.append(qty)

        traded = 0
        if min_qty <= found_qty <= max_qty:
            for entry, qty in itertools.zip_longest(deferred_matches, fills, fillvalue=0):
                if traded >= found_qty:
                    break
                tracker = entry.tracker
                traded += self.create_trade(inbound, tracker, qty)
                if tracker.filled and entry.active:
                    current_orders.remove(entry)
        return traded

    def create_trade(
        self,
        inbound_tracker: OrderTracker,
        current_tracker: OrderTracker,
        max_quantity: int = QUANTITY_MAX,
    ) -> int:
        """Fill two orders against each other; return the quantity traded."""
        cross_price = current_tracker.order.price
        if cross_price == MARKET_ORDER_PRICE:
            cross_price = inbound_tracker.order.price
        if cross_price == MARKET_ORDER_PRICE:
            cross_price = self.market_price
        if cross_price == MARKET_ORDER_PRICE:
            return 0

        fill_qty = min(max_quantity, inbound_tracker.open_qty, current_tracker.open_qty)
        if fill_qty > 0:
            inbound_tracker.fill(fill_qty)
            current_tracker.fill(fill_qty)
            self._on_trade_price(cross_price)

            flags = FillFlags.NEITHER_FILLED
            if not inbound_tracker.open_qty:
                flags |= FillFlags.INBOUND_FILLED
            if not current_tracker.open_qty:
                flags |= FillFlags.MATCHED_FILLED
            self.callbacks.append(
                Callback.fill(
                    inbound_tracker.order,
                    current_tracker.order,
                    fill_qty,
                    cross_price,
                    flags,
                )
            )
        return fill_qty