"""The limit order book of one security."""

from __future__ import annotations

import sys
import warnings
from typing import Any, ClassVar, List, Optional, Protocol, Set, TextIO

from .callback import Callback, CallbackType, FillFlags
from .comparable_price import MARKET_ORDER_PRICE, ComparablePrice
from .matching import (
    Matcher,
    OrderConditions,
    OrderTracker,
    TrackerEntry,
    TrackerMap,
)

PRICE_UNCHANGED = 0
"""Passed to :meth:`OrderBook.replace` to keep the order's price."""

SIZE_UNCHANGED = 0
"""Passed to :meth:`OrderBook.replace` to keep the order's size."""


class OrderListener(Protocol):
    """Receives events about individual orders."""

    def on_accept(self, order: Any) -> None: ...
    def on_trigger_stop(self, order: Any) -> None: ...
    def on_reject(self, order: Any, reason: str) -> None: ...
    def on_fill(self, order: Any, matched_order: Any, fill_qty: int, fill_price: int) -> None: ...
    def on_cancel(self, order: Any) -> None: ...
    def on_cancel_reject(self, order: Any, reason: str) -> None: ...
    def on_replace(self, order: Any, size_delta: int, new_price: int) -> None: ...
    def on_replace_reject(self, order: Any, reason: str) -> None: ...


class TradeListener(Protocol):
    """Receives every trade made in a book."""

    def on_trade(self, book: "OrderBook", qty: int, price: int) -> None: ...


class OrderBookListener(Protocol):
    """Receives notice of any change to a book."""

    def on_order_book_change(self, book: "OrderBook") -> None: ...


class Logger(Protocol):
    """Reports problems found while delivering events."""

    def log_exception(self, message: str, exc: BaseException) -> None: ...
    def log_message(self, message: str) -> None: ...


def _stop_price(order: Any) -> int:
    return getattr(order, "stop_price", 0) or 0


class OrderBook(Matcher):
    """Bids, asks and stop orders of one symbol, matched as orders arrive.

    Events are queued while a request is processed and delivered before the
    request returns, first to any of these hooks a subclass defines and then
    to the listeners:

    ``on_accept(order, quantity)``, ``on_accept_stop(order)``,
    ``on_trigger_stop(order)``, ``on_reject(order, reason)``,
    ``on_fill(order, matched_order, fill_qty, fill_price, inbound_order_filled,
    matched_order_filled)``, ``on_cancel(order, quantity)``,
    ``on_cancel_stop(order)``, ``on_cancel_reject(order, reason)``,
    ``on_replace(order, current_qty, new_qty, new_price)``,
    ``on_replace_reject(order, reason)``, ``on_trade(book, qty, price)`` and
    ``on_order_book_change()``.
    """

    _deprecation_warned: ClassVar[Set[str]] = set()

    def __init__(
        self,
        symbol: str = "unknown",
        *,
        order_listener: Optional[OrderListener] = None,
        trade_listener: Optional[TradeListener] = None,
        order_book_listener: Optional[OrderBookListener] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        super().__init__(MARKET_ORDER_PRICE)
        self.symbol = symbol
        self.bids = TrackerMap()
        self.asks = TrackerMap()
        self.stop_bids = TrackerMap()
        self.stop_asks = TrackerMap()
        self.order_listener = order_listener
        self.trade_listener = trade_listener
        self.order_book_listener = order_book_listener
        self.logger = logger
        self._pending: List[OrderTracker] = []
        self._handling_callbacks = False

    # ------------------------------------------------------------------
    # Requests

    def add(self, order: Any, conditions: int = OrderConditions.NONE) -> bool:
        """Add an order; return True if it traded."""
        matched = False
        if order.order_qty == 0:
            self.callbacks.append(Callback.reject(order, "size must be positive"))
        else:
            inbound = OrderTracker(order, conditions)
            if _stop_price(order) != 0 and self._add_stop_order(inbound):
                self.callbacks.append(Callback.accept_stop(order))
            else:
                accept = Callback.accept(order)
                self.callbacks.append(accept)
                matched = self._submit_order(inbound)
                accept.quantity = inbound.filled_qty
                if inbound.immediate_or_cancel and not inbound.filled:
                    self.callbacks.append(Callback.cancel(order, 0))
            self._drain_pending()
            self.callbacks.append(Callback.book_update(self))
        self._callback_now()
        return matched

    def cancel(self, order: Any) -> None:
        """Cancel a resting or stop order."""
        market, stops = (
            (self.bids, self.stop_bids) if order.is_buy else (self.asks, self.stop_asks)
        )
        entry = self._find_on_market(order)
        if entry is not None:
            open_qty = entry.tracker.open_qty
            market.remove(entry)
            self.callbacks.append(Callback.cancel(order, open_qty))
            self.callbacks.append(Callback.book_update(self))
        else:
            stop_entry = self._find_in_stop_orders(order) if _stop_price(order) else None
            if stop_entry is not None:
                stops.remove(stop_entry)
                self.callbacks.append(Callback.cancel_stop(order))
                self.callbacks.append(Callback.book_update(self))
            else:
                self.callbacks.append(Callback.cancel_reject(order, "not found"))
        self._callback_now()

    def replace(
        self,
        order: Any,
        size_delta: int = SIZE_UNCHANGED,
        new_price: int = PRICE_UNCHANGED,
    ) -> bool:
        """Change the size and/or price of a resting order; True if it traded."""
        matched = False
        price = order.price if new_price == PRICE_UNCHANGED else new_price
        market = self.bids if order.is_buy else self.asks
        entry = self._find_on_market(order)
        if entry is None:
            self.callbacks.append(Callback.replace_reject(order, "not found"))
        else:
            tracker = entry.tracker
            if size_delta < 0 and tracker.open_qty < -size_delta:
                size_delta = -tracker.open_qty
                if size_delta == 0:
                    # Queued; delivered with the next request.
                    self.callbacks.append(
                        Callback.replace_reject(tracker.order, "order is already filled")
                    )
                    return False
            self.callbacks.append(
                Callback.replace(order, tracker.open_qty, size_delta, price)
            )
            new_open_qty = tracker.open_qty + size_delta
            tracker.change_qty(size_delta)
            market.remove(entry)
            if not new_open_qty:
                self.callbacks.append(Callback.cancel(order, 0))
            else:
                matched = self._add_order(tracker, price)
            self._drain_pending()
            self.callbacks.append(Callback.book_update(self))
        self._callback_now()
        return matched

    def set_market_price(self, price: int) -> None:
        """Set the current market price and release any stops it triggers."""
        old_price = self.market_price
        self.market_price = price
        if price > old_price or old_price == MARKET_ORDER_PRICE:
            self._check_stop_orders(True, price, self.stop_bids)
        elif price < old_price:
            self._check_stop_orders(False, price, self.stop_asks)

    def move_callbacks(self, target: list) -> None:
        """Deprecated: delivers any queued events here; ``target`` is left alone."""
        self._complain_once("move_callbacks")
        self._callback_now()

    def perform_callbacks(self) -> None:
        """Deprecated: delivers any queued events; the book does so itself."""
        self._complain_once("perform_callbacks")
        self._callback_now()

    def log(self, out: TextIO) -> TextIO:
        """Write the asks (highest first) and then the bids to ``out``."""
        for entry in reversed(self.asks):
            out.write(f"  Ask {entry.tracker.open_qty} @ {entry.key}\n")
        for entry in self.bids:
            out.write(f"  Bid {entry.tracker.open_qty} @ {entry.key}\n")
        return out

    # ------------------------------------------------------------------
    # Internals

    @classmethod
    def _complain_once(cls, method: str) -> None:
        if method in cls._deprecation_warned:
            return
        cls._deprecation_warned.add(method)
        warnings.warn(
            f"Ignoring call to deprecated method: {method}",
            DeprecationWarning,
            stacklevel=3,
        )

    def _hook(self, name: str, *args: Any) -> None:
        hook = getattr(self, name, None)
        if hook is not None:
            hook(*args)

    def _on_trade_price(self, price: int) -> None:
        self.set_market_price(price)

    def _drain_pending(self) -> None:
        while self._pending:
            pending, self._pending = self._pending, []
            for tracker in pending:
                self._submit_order(tracker)
                self.callbacks.append(Callback.trigger_stop(tracker.order))

    def _add_stop_order(self, tracker: OrderTracker) -> bool:
        is_buy = tracker.order.is_buy
        key = ComparablePrice(is_buy, _stop_price(tracker.order))
        is_stopped = key < self.market_price
        if is_stopped:
            (self.stop_bids if is_buy else self.stop_asks).insert(key, tracker)
        return is_stopped

    def _check_stop_orders(self, side: bool, price: int, stops: TrackerMap) -> None:
        until = ComparablePrice(side, price)
        for entry in stops.entries():
            if until > entry.key:
                break
            self._pending.append(entry.tracker)
            stops.remove(entry)

    def _submit_order(self, inbound: OrderTracker) -> bool:
        return self._add_order(inbound, inbound.order.price)

    def _find_on_market(self, order: Any) -> Optional[TrackerEntry]:
        side = self.bids if order.is_buy else self.asks
        key = ComparablePrice(order.is_buy, order.price)
        return next((e for e in side.at(key) if e.tracker.order is order), None)

    def _find_in_stop_orders(self, order: Any) -> Optional[TrackerEntry]:
        side = self.stop_bids if order.is_buy else self.stop_asks
        key = ComparablePrice(order.is_buy, _stop_price(order))
        return next((e for e in side.at(key) if e.tracker.order is order), None)

    def _add_order(self, inbound: OrderTracker, order_price: int) -> bool:
        order = inbound.order
        deferred_aons: List[TrackerEntry] = []
        own, other = (self.bids, self.asks) if order.is_buy else (self.asks, self.bids)
        matched = self.match_order(inbound, order_price, other, deferred_aons)
        if inbound.open_qty and not inbound.immediate_or_cancel:
            own.insert(ComparablePrice(order.is_buy, order_price), inbound)
            if self._check_deferred_aons(deferred_aons, other, own):
                matched = True
        return matched

    def _check_deferred_aons(
        self,
        aons: List[TrackerEntry],
        deferred_trackers: TrackerMap,
        market_trackers: TrackerMap,
    ) -> bool:
        result = False
        ignored: List[TrackerEntry] = []
        for entry in aons:
            if not entry.active:
                continue
            tracker = entry.tracker
            result |= self.match_order(tracker, entry.key.price, market_trackers, ignored)
            if tracker.filled and entry.active:
                deferred_trackers.remove(entry)
        return result

    def _callback_now(self) -> None:
        if self._handling_callbacks:
            return
        self._handling_callbacks = True
        try:
            while self.callbacks:
                working, self.callbacks = self.callbacks, []
                for cb in working:
                    try:
                        self._perform_callback(cb)
                    except Exception as exc:  # listeners must not break the book
                        if self.logger is not None:
                            self.logger.log_exception(
                                "Caught exception during callback: ", exc
                            )
                        else:
                            print(
                                f"Caught exception during callback: {exc}",
                                file=sys.stderr,
                            )
        finally:
            self._handling_callbacks = False

    def _perform_callback(self, cb: Callback) -> None:
        listener = self.order_listener
        match cb.type:
            case CallbackType.ORDER_FILL:
                inbound_filled = bool(
                    cb.flags & (FillFlags.INBOUND_FILLED | FillFlags.BOTH_FILLED)
                )
                matched_filled = bool(
                    cb.flags & (FillFlags.MATCHED_FILLED | FillFlags.BOTH_FILLED)
                )
                self._hook(
                    "on_fill",
                    cb.order, cb.matched_order, cb.quantity, cb.price,
                    inbound_filled, matched_filled,
                )
                if listener is not None:
                    listener.on_fill(cb.order, cb.matched_order, cb.quantity, cb.price)
                self._hook("on_trade", self, cb.quantity, cb.price)
                if self.trade_listener is not None:
                    self.trade_listener.on_trade(self, cb.quantity, cb.price)
            case CallbackType.ORDER_ACCEPT:
                self._hook("on_accept", cb.order, cb.quantity)
                if listener is not None:
                    listener.on_accept(cb.order)
            case CallbackType.ORDER_ACCEPT_STOP:
                self._hook("on_accept_stop", cb.order)
                if listener is not None:
                    listener.on_accept(cb.order)
            case CallbackType.ORDER_TRIGGER_STOP:
                self._hook("on_trigger_stop", cb.order)
                if listener is not None:
                    listener.on_trigger_stop(cb.order)
            case CallbackType.ORDER_REJECT:
                self._hook("on_reject", cb.order, cb.reject_reason)
                if listener is not None:
                    listener.on_reject(cb.order, cb.reject_reason)
            case CallbackType.ORDER_CANCEL:
                self._hook("on_cancel", cb.order, cb.quantity)
                if listener is not None:
                    listener.on_cancel(cb.order)
            case CallbackType.ORDER_CANCEL_STOP:
                self._hook("on_cancel_stop", cb.order)
                if listener is not None:
                    listener.on_cancel(cb.order)
            case CallbackType.ORDER_CANCEL_REJECT:
                self._hook("on_cancel_reject", cb.order, cb.reject_reason)
                if listener is not None:
                    listener.on_cancel_reject(cb.order, cb.reject_reason)
            case CallbackType.ORDER_REPLACE:
                self._hook(
                    "on_replace",
                    cb.order, cb.order.order_qty, cb.order.order_qty + cb.delta, cb.price,
                )
                if listener is not None:
                    listener.on_replace(cb.order, cb.delta, cb.price)
            case CallbackType.ORDER_REPLACE_REJECT:
                self._hook("on_replace_reject", cb.order, cb.reject_reason)
                if listener is not None:
                    listener.on_replace_reject(cb.order, cb.reject_reason)
            case CallbackType.BOOK_UPDATE:
                self._hook("on_order_book_change")
                if self.order_book_listener is not None:
                    self.order_book_listener.on_order_book_change(self)
            case _:
                pass