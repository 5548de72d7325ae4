from limitbook.example_order import ExampleOrder
from limitbook.order_book import OrderBook


def test_precision_constant():
    assert ExampleOrder.PRECISION == 100
    assert ExampleOrder(True, 1.0, 100).price == ExampleOrder.PRECISION


def test_fields_pass_through():
    order = ExampleOrder(True, 12.5, 300)
    assert order.is_buy is True
    assert order.order_qty == 300
    assert order.stop_price == 0


def test_price_is_scaled_to_hundredths():
    order = ExampleOrder(False, 12.5, 100)
    assert order.price == 1250


def test_price_is_integer_and_truncated():
    order = ExampleOrder(True, 12.0, 100)
    assert isinstance(order.price, int)
    assert order.price == int(order.quoted_price) * ExampleOrder.PRECISION


def test_orders_trade_in_book_at_scaled_price():
    trades = []

    class Trades:
        def on_trade(self, book, qty, price):
            trades.append((qty, price))

    book = OrderBook("AAPL", trade_listener=Trades())
    sell = ExampleOrder(False, 45.5, 200)
    buy = ExampleOrder(True, 45.5, 200)
    book.add(sell)
    assert book.add(buy) is True
    assert trades == [(200, sell.price)]
    assert len(book.bids) == 0 and len(book.asks) == 0


def test_orders_are_distinct_by_identity():
    a = ExampleOrder(True, 10.0, 100)
    b = ExampleOrder(True, 10.0, 100)
    assert a != b
    assert a == a