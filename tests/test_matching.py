from dataclasses import dataclass

import pytest

from limitbook.callback import CallbackType, FillFlags
from limitbook.comparable_price import ComparablePrice
from limitbook.matching import (
    Matcher,
    OrderConditions,
    OrderTracker,
    TrackerMap,
)


@dataclass(eq=False)
class StubOrder:
    is_buy: bool
    price: int
    order_qty: int
    stop_price: int = 0


def _book(side_is_buy, specs):
    tmap = TrackerMap()
    trackers = []
    for price, qty, *cond in specs:
        order = StubOrder(side_is_buy, price, qty)
        tracker = OrderTracker(order, cond[0] if cond else OrderConditions.NONE)
        tmap.insert(ComparablePrice(side_is_buy, price), tracker)
        trackers.append(tracker)
    return tmap, trackers


def test_tracker_fill():
    tracker = OrderTracker(StubOrder(True, 1250, 300))
    tracker.fill(100)
    assert tracker.open_qty == 200
    assert tracker.filled_qty == 100
    assert not tracker.filled
    tracker.fill(200)
    assert tracker.filled


def test_tracker_overfill_raises():
    tracker = OrderTracker(StubOrder(True, 1250, 100))
    with pytest.raises(ValueError):
        tracker.fill(101)


def test_tracker_change_qty():
    tracker = OrderTracker(StubOrder(False, 1250, 100))
    tracker.change_qty(50)
    assert tracker.open_qty == 150
    tracker.change_qty(-150)
    assert tracker.filled
    with pytest.raises(ValueError):
        tracker.change_qty(-1)


def test_conditions():
    fok = OrderTracker(StubOrder(True, 1250, 100), OrderConditions.FILL_OR_KILL)
    assert fok.all_or_none and fok.immediate_or_cancel
    ioc = OrderTracker(StubOrder(True, 1250, 100), OrderConditions.IMMEDIATE_OR_CANCEL)
    assert ioc.immediate_or_cancel and not ioc.all_or_none
    assert OrderConditions.FILL_OR_KILL == (
        OrderConditions.ALL_OR_NONE | OrderConditions.IMMEDIATE_OR_CANCEL
    )


def test_bids_sorted_highest_first_market_first():
    tmap, _ = _book(True, [(1248, 100), (1250, 100), (0, 100), (1249, 100)])
    assert [e.key.price for e in tmap.entries()] == [0, 1250, 1249, 1248]


def test_asks_sorted_lowest_first_fifo():
    tmap, trackers = _book(False, [(1252, 100), (1250, 100), (1250, 200)])
    entries = tmap.entries()
    assert [e.key.price for e in entries] == [1250, 1250, 1252]
    assert entries[0].tracker is trackers[1]
    assert entries[1].tracker is trackers[2]


def test_remove_and_at():
    tmap, trackers = _book(False, [(1250, 100), (1250, 200), (1251, 100)])
    at_1250 = list(tmap.at(ComparablePrice(False, 1250)))
    assert [e.tracker for e in at_1250] == trackers[:2]
    tmap.remove(at_1250[0])
    assert len(tmap) == 2
    assert at_1250[0] not in tmap
    with pytest.raises(ValueError):
        tmap.remove(at_1250[0])


def test_create_trade_at_resting_price():
    matcher = Matcher()
    inbound = OrderTracker(StubOrder(True, 1251, 300))
    current = OrderTracker(StubOrder(False, 1250, 100))
    traded = matcher.create_trade(inbound, current)
    assert traded == 100
    assert matcher.market_price == 1250
    cb = matcher.callbacks[-1]
    assert cb.type == CallbackType.ORDER_FILL
    assert cb.price == 1250 and cb.quantity == 100
    assert cb.flags == FillFlags.MATCHED_FILLED


def test_create_trade_limited_by_max_quantity():
    matcher = Matcher()
    inbound = OrderTracker(StubOrder(True, 1250, 300))
    current = OrderTracker(StubOrder(False, 1250, 300))
    assert matcher.create_trade(inbound, current, 100) == 100
    assert inbound.open_qty == 200 and current.open_qty == 200


def test_create_trade_without_any_price():
    matcher = Matcher()
    inbound = OrderTracker(StubOrder(True, 0, 100))
    current = OrderTracker(StubOrder(False, 0, 100))
    assert matcher.create_trade(inbound, current) == 0
    assert matcher.callbacks == []


def test_market_orders_cross_at_market_price():
    matcher = Matcher(market_price=1234)
    inbound = OrderTracker(StubOrder(True, 0, 100))
    current = OrderTracker(StubOrder(False, 0, 100))
    assert matcher.create_trade(inbound, current) == 100
    assert matcher.callbacks[-1].price == 1234


def test_regular_multi_match():
    asks, trackers = _book(False, [(1250, 400), (1251, 100), (1252, 100)])
    matcher = Matcher()
    inbound = OrderTracker(StubOrder(True, 1251, 500))
    deferred = []
    assert matcher.match_order(inbound, 1251, asks, deferred)
    assert inbound.filled
    assert [e.key.price for e in asks.entries()] == [1252]
    fills = [(cb.price, cb.quantity) for cb in matcher.callbacks]
    assert fills == [(1250, 400), (1251, 100)]
    assert sum(p * q for p, q in fills) == 625100


def test_regular_defers_large_aon():
    asks, _ = _book(False, [(1250, 400, OrderConditions.ALL_OR_NONE)])
    matcher = Matcher()
    inbound = OrderTracker(StubOrder(True, 1250, 100))
    deferred = []
    assert not matcher.match_order(inbound, 1250, asks, deferred)
    assert len(deferred) == 1 and deferred[0].key.price == 1250
    assert inbound.open_qty == 100 and len(asks) == 1


def test_no_match_beyond_price():
    asks, _ = _book(False, [(1251, 100)])
    matcher = Matcher()
    inbound = OrderTracker(StubOrder(True, 1250, 100))
    assert not matcher.match_order(inbound, 1250, asks, [])
    assert len(asks) == 1 and inbound.open_qty == 100


def test_aon_inbound_uses_deferred_matches():
    asks, trackers = _book(False, [(1250, 100), (1250, 100), (1250, 100)])
    matcher = Matcher()
    inbound = OrderTracker(StubOrder(True, 1250, 300), OrderConditions.FILL_OR_KILL)
    assert matcher.match_order(inbound, 1250, asks, [])
    assert inbound.filled
    assert len(asks) == 0
    assert all(t.filled for t in trackers)


def test_aon_inbound_not_satisfied_trades_nothing():
    asks, trackers = _book(False, [(1250, 100), (1251, 100), (1252, 100)])
    matcher = Matcher()
    inbound = OrderTracker(StubOrder(True, 1250, 300), OrderConditions.ALL_OR_NONE)
    assert not matcher.match_order(inbound, 1250, asks, [])
    assert inbound.open_qty == 300
    assert len(asks) == 3
    assert matcher.callbacks == []


def test_deferred_trades_below_minimum_returns_zero():
    asks, _ = _book(False, [(1250, 100)])
    matcher = Matcher()
    inbound = OrderTracker(StubOrder(True, 1250, 300))
    entries = asks.entries()
    assert matcher.try_create_deferred_trades(inbound, entries, 300, 200, asks) == 0
    assert len(asks) == 1 and inbound.open_qty == 300


def test_deferred_trades_within_bounds():
    asks, _ = _book(False, [(1250, 100), (1250, 100)])
    matcher = Matcher()
    inbound = OrderTracker(StubOrder(True, 1250, 300))
    entries = asks.entries()
    assert matcher.try_create_deferred_trades(inbound, entries, 200, 200, asks) == 200
    assert len(asks) == 0
    assert inbound.open_qty == 100