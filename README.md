# limitbook

`limitbook` is a limit order book and matching engine for a single security.
Orders are matched by price first and then by time of arrival. The book
supports:

- limit orders, and market orders (a price of `0` marks a market order);
- stop orders, held aside until the market price reaches the stop price;
- all-or-none (AON) orders, which trade their whole quantity or nothing;
- immediate-or-cancel (IOC) orders, whose unfilled part is cancelled;
- fill-or-kill orders, which are AON and IOC together;
- cancelling an order, and replacing its size or price.

## Installation

```
pip install limitbook
```

The only runtime dependency is `sortedcontainers`.

## Orders

The book accepts any object that has `is_buy`, `order_qty` and `price`
attributes. A `stop_price` attribute is optional; when it is missing or `0`
the order is not a stop order. Prices and quantities are integers.

`limitbook.example_order.ExampleOrder` is a ready-made order. It takes a
price in currency units and reports it in hundredths, truncated:

```python
from limitbook.example_order import ExampleOrder

order = ExampleOrder(True, 12.50, 100)   # buy 100 at 12.50
order.price                               # 1250
```

## Using the book

```python
from limitbook.order_book import OrderBook
from limitbook.matching import OrderConditions
from limitbook.example_order import ExampleOrder

book = OrderBook("ACME")

book.add(ExampleOrder(False, 12.50, 100))    # resting ask at 1250
book.add(ExampleOrder(False, 12.51, 100))    # resting ask at 1251

bid = ExampleOrder(True, 12.50, 300)
matched = book.add(bid, OrderConditions.IMMEDIATE_OR_CANCEL)
# matched is True: 100 traded at 1250, the other 200 were cancelled
```

Conditions are `OrderConditions.NONE`, `ALL_OR_NONE`, `IMMEDIATE_OR_CANCEL`
and `FILL_OR_KILL`. An order with a quantity of `0` is rejected.

- `add(order, conditions)` returns `True` when the order traded.
- `cancel(order)` takes the same order object that was added. It removes a
  resting order or a waiting stop order; otherwise the cancel is rejected
  with the reason `"not found"`.
- `replace(order, size_delta, new_price)` changes the open quantity by
  `size_delta` and, if `new_price` is not `0`, moves the order to the new
  price, where it may match at once. A reduction larger than the open
  quantity is cut down to it; reducing to zero cancels the order. It returns
  `True` when the replace led to a trade.
- `set_market_price(price)` sets the price that market orders trade at when
  neither side has a price of its own, and releases any stop orders it
  triggers. Every trade also sets the market price.

A stop order is held aside only while the market price has not yet reached
its stop price; otherwise it goes to the book straight away.

The resting orders are in `book.bids` and `book.asks`, the waiting stop
orders in `book.stop_bids` and `book.stop_asks`. Each is a
`limitbook.matching.TrackerMap` whose entries, in priority order, hold a
price key and an `OrderTracker` with the order's `open_qty`.

## Events

Each request queues events (accept, accept of a stop, stop trigger, reject,
fill, cancel, cancel of a stop, cancel reject, replace, replace reject and
book update) and delivers them before the request returns. To react to
them, either:

- subclass `OrderBook` and define any of the hooks `on_accept`,
  `on_accept_stop`, `on_trigger_stop`, `on_reject`, `on_fill`, `on_cancel`,
  `on_cancel_stop`, `on_cancel_reject`, `on_replace`, `on_replace_reject`,
  `on_trade` and `on_order_book_change` (their arguments are listed in the
  `OrderBook` docstring); or
- pass `order_listener`, `trade_listener` or `order_book_listener` objects
  to the constructor, or assign them to the attributes of those names.

An exception raised by a hook or listener is reported to the book's
`logger` (any object with `log_exception` and `log_message`), or printed to
standard error when there is none, and the remaining events are still
delivered.

`perform_callbacks()` and `move_callbacks(target)` are kept only for old
code: they deliver any queued events and issue a one-time
`DeprecationWarning`.

`OrderBook.log(out)` writes the asks, highest price first, and then the
bids to a text stream, one line per order, such as
`  Ask 100 @ Sell at 1251`.

## Building blocks

- `limitbook.comparable_price.ComparablePrice`: a price that knows its side.
  Sorting prices of one side by it puts the prices that match most easily
  first; `matches` checks a price on the other side.
- `limitbook.callback.Callback`: a queued book event, with `CallbackType`
  and `FillFlags`.
- `limitbook.depth_level.DepthLevel`: one price level of aggregated depth
  (order count and quantity).
- `limitbook.matching`: `OrderTracker`, `TrackerMap`, `OrderConditions` and
  `Matcher`, which holds the matching rules.

## What it does not do

The order book does not keep aggregated depth or best-bid-and-offer data
itself; `DepthLevel` and the `BboListener` protocol are provided as building
blocks only. There is no command-line program, no network feed and no
storage: the book lives in memory and is driven from Python code.

## Running the tests

```
pip install -e ".[test]"
pytest
```