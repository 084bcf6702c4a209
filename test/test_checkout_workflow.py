import threading
from decimal import Decimal

import pytest

from bookshelf.checkout.checkout_registry import CheckoutRegistry
from bookshelf.checkout.notifier import ERROR, INFO, MessageCollector
from bookshelf.checkout.shopping_cart_controller import CheckoutState
from bookshelf.core.exceptions import CheckoutStateError
from bookshelf.db.book.models.book_schemas import BookUpdate
from bookshelf.db.book.services.book_service import BookService
from bookshelf.db.cart.services.cart_service import CartService
from bookshelf.db.order.services.order_service import OrderService


@pytest.fixture
def registry(session_factory):
    return CheckoutRegistry(session_factory)


@pytest.fixture
def controller(registry, user_id, books):
    """Cart with Book 1 ($20) x2 and Book 2 ($15) x1."""
    controller = registry.cart_controller(user_id)
    notifier = MessageCollector()
    assert controller.add_book(1, 2, notifier)
    assert controller.add_book(2, 1, notifier)
    return controller


def texts(notifier, level=None):
    return [message.text for message in notifier.messages if level is None or message.level == level]


def cart_rows(session_factory, cart_id):
    with session_factory() as db:
        return {item.book_id: item.quantity for item in CartService.get_cart_items(db, cart_id)}


# Cart table

def test_total_price_counts_selected_items_only(controller):
    assert controller.total_price == Decimal("0.00")

    controller.set_selected(1, True, MessageCollector())

    assert controller.total_price == Decimal("40.00")
    assert controller.total_price_label == "Total Price: $40.00"


def test_add_book_merges_in_memory_and_in_database(controller, session_factory, books):
    assert controller.add_book(1, 3, MessageCollector())

    assert controller.shopping_cart.get_quantity(books[0]) == 5
    assert controller.find_item(1).quantity == 5
    assert cart_rows(session_factory, controller.shopping_cart.cart_id) == {1: 5, 2: 1}


def test_add_book_beyond_stock_is_rejected(controller, books):
    notifier = MessageCollector()

    assert not controller.add_book(2, 5, notifier)
    assert not controller.add_book(3, 1, notifier)
    assert not controller.add_book(404, 1, notifier)

    assert [m.title for m in notifier.errors] == ["Insufficient Stock", "Insufficient Stock", "Book Not Found"]
    assert controller.shopping_cart.get_quantity(books[1]) == 1


def test_adjust_quantity_to_zero_removes_item(controller, session_factory, books):
    controller.set_selected(2, True, MessageCollector())

    assert controller.adjust_quantity(2, +2, MessageCollector())
    assert controller.total_price == Decimal("45.00")

    assert controller.adjust_quantity(2, -3, MessageCollector())

    assert controller.find_item(2) is None
    assert books[1] not in controller.shopping_cart
    assert controller.total_price == Decimal("0.00")
    assert cart_rows(session_factory, controller.shopping_cart.cart_id) == {1: 2}


def test_cart_is_reloaded_from_database(controller, session_factory, user_id, books):
    reloaded = CheckoutRegistry(session_factory).cart_controller(user_id)

    assert dict(reloaded.shopping_cart.get_books()) == {books[0]: 2, books[1]: 1}
    assert [item.book.id for item in reloaded.items] == [1, 2]


# Reservation

def test_checkout_without_selection_shows_error(controller):
    notifier = MessageCollector()

    assert controller.handle_checkout(notifier) is None

    assert texts(notifier, ERROR) == ["No items selected for checkout."]
    assert controller.state == CheckoutState.IDLE
    assert controller.reserved_stock == {}


def test_declined_confirmation_keeps_cart_idle(controller):
    controller.set_selected(1, True, MessageCollector())

    assert controller.handle_checkout(MessageCollector(confirmed=False)) is None

    assert controller.state == CheckoutState.IDLE
    assert controller.reserved_stock == {}


def test_checkout_reserves_in_memory_only(controller, books, stock_of):
    controller.set_selected(1, True, MessageCollector())

    total = controller.handle_checkout(MessageCollector())

    assert total == Decimal("40.00")
    assert controller.state == CheckoutState.RESERVED
    assert controller.reserved_stock == {books[0]: 2}
    assert stock_of(1) == (10, 0)


def test_checkout_with_insufficient_stock_is_rejected(controller, db_session, stock_of):
    controller.set_selected(1, True, MessageCollector())
    BookService.update_book(db_session, 1, BookUpdate(physical_copies=1))
    notifier = MessageCollector()

    assert controller.handle_checkout(notifier) is None

    assert [m.title for m in notifier.errors] == ["Insufficient Stock"]
    assert controller.state == CheckoutState.IDLE
    assert controller.reserved_stock == {}


def test_finalize_applies_reservation_exactly_once(controller, session_factory, books, stock_of):
    controller.set_selected(1, True, MessageCollector())
    controller.handle_checkout(MessageCollector())

    assert controller.finalize_stock_after_payment()

    assert stock_of(1) == (8, 2)
    assert controller.reserved_stock == {}
    assert controller.state == CheckoutState.FINALIZED
    assert books[0] not in controller.shopping_cart
    assert [item.book.id for item in controller.items] == [2]
    assert cart_rows(session_factory, controller.shopping_cart.cart_id) == {2: 1}

    # A second finalize has nothing to apply
    assert not controller.finalize_stock_after_payment()
    assert stock_of(1) == (8, 2)


def test_revert_clears_reservation_and_leaves_stock(controller, books, stock_of):
    controller.set_selected(1, True, MessageCollector())
    controller.handle_checkout(MessageCollector())

    controller.revert_reserved_stock()

    assert controller.reserved_stock == {}
    assert controller.state == CheckoutState.REVERTED
    assert stock_of(1) == (10, 0)
    assert controller.shopping_cart.get_quantity(books[0]) == 2


def test_cart_changes_are_blocked_while_reserved(controller):
    controller.set_selected(1, True, MessageCollector())
    controller.handle_checkout(MessageCollector())
    notifier = MessageCollector()

    assert not controller.add_book(2, 1, notifier)
    assert not controller.adjust_quantity(1, 1, notifier)
    assert not controller.set_selected(2, True, notifier)
    assert not controller.remove_item(1, notifier)
    assert controller.handle_checkout(notifier) is None
    assert {m.title for m in notifier.errors} == {"Checkout In Progress"}

    controller.revert_reserved_stock()
    assert controller.add_book(2, 1, MessageCollector())


def test_concurrent_adds_are_serialized(registry, user_id, books, session_factory):
    controller = registry.cart_controller(user_id)
    threads = [
        threading.Thread(target=controller.add_book, args=(1, 1, MessageCollector()))
        for _ in range(8)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert controller.shopping_cart.get_quantity(books[0]) == 8
    assert cart_rows(session_factory, controller.shopping_cart.cart_id) == {1: 8}


# Payment

@pytest.fixture
def reserved(registry, controller, user_id):
    controller.set_selected(1, True, MessageCollector())
    payment = registry.begin_checkout(user_id, MessageCollector())
    assert payment is not None
    return payment


def test_successful_payment_saves_order_and_finalizes(registry, reserved, controller, user_id,
                                                      db_session, stock_of, valid_card):
    notifier = MessageCollector()

    order = registry.submit_payment(user_id, notifier=notifier, **valid_card)

    assert order is not None and order.order_id is not None
    assert order.total_price == Decimal("40.00")
    assert [(item.book_id, item.quantity, item.price) for item in order.order_items] == [(1, 2, Decimal("20.00"))]
    assert texts(notifier, INFO) == [f"Your payment was successful! Order Reference: {order.order_number}"]

    assert stock_of(1) == (8, 2)
    assert stock_of(2) == (5, 3)
    assert controller.state == CheckoutState.FINALIZED
    assert registry.payment_controller(user_id) is None
    assert [o.order_number for o in OrderService.get_all_orders_by_user(db_session, user_id)] == [order.order_number]


def test_invalid_card_fields_keep_reservation(registry, reserved, controller, user_id, valid_card, stock_of):
    notifier = MessageCollector()

    assert registry.submit_payment(user_id, notifier=notifier, **{**valid_card, "cvv": "12"}) is None

    assert texts(notifier, ERROR) == ["CVV must be 3 digits."]
    assert controller.state == CheckoutState.RESERVED
    assert registry.payment_controller(user_id) is reserved

    assert registry.submit_payment(user_id, notifier=MessageCollector(), **valid_card) is not None
    assert stock_of(1) == (8, 2)


def test_declined_payment_reverts_and_closes_session(registry, reserved, controller, user_id, valid_card, stock_of):
    notifier = MessageCollector()

    assert registry.submit_payment(user_id, notifier=notifier, **{**valid_card, "card_holder_name": " "}) is None

    assert texts(notifier, ERROR) == ["An error occurred during payment. Please try again."]
    assert controller.state == CheckoutState.REVERTED
    assert controller.reserved_stock == {}
    assert reserved.closed
    assert stock_of(1) == (10, 0)
    with pytest.raises(CheckoutStateError):
        registry.submit_payment(user_id, notifier=MessageCollector(), **valid_card)


def test_order_save_failure_reverts_reservation(registry, reserved, controller, user_id, db_session,
                                                valid_card, stock_of, monkeypatch):
    monkeypatch.setattr(OrderService, "place_order", staticmethod(lambda db, order: False))
    notifier = MessageCollector()

    assert registry.submit_payment(user_id, notifier=notifier, **valid_card) is None

    assert texts(notifier, ERROR) == ["An error occurred during payment. Please try again."]
    assert controller.reserved_stock == {}
    assert controller.state == CheckoutState.REVERTED
    assert stock_of(1) == (10, 0)
    assert OrderService.get_all_orders(db_session) == []


def test_cancel_payment_reverts(registry, reserved, controller, user_id, stock_of):
    assert registry.cancel_payment(user_id)

    assert controller.state == CheckoutState.REVERTED
    assert controller.reserved_stock == {}
    assert stock_of(1) == (10, 0)
    assert not registry.cancel_payment(user_id)


def test_close_after_payment_does_not_revert(registry, reserved, controller, user_id, valid_card):
    registry.submit_payment(user_id, notifier=MessageCollector(), **valid_card)

    reserved.close()

    assert controller.state == CheckoutState.FINALIZED


def test_finalize_fails_when_stock_ran_out(controller, db_session, stock_of):
    controller.set_selected(2, True, MessageCollector())
    assert controller.handle_checkout(MessageCollector()) == Decimal("15.00")
    BookService.update_book(db_session, 2, BookUpdate(physical_copies=0))
    notifier = MessageCollector()

    assert not controller.finalize_stock_after_payment(notifier)

    assert texts(notifier, ERROR) == ["Not enough copies are left to complete this order."]
    assert controller.state == CheckoutState.REVERTED
    assert controller.reserved_stock == {}
    assert stock_of(2) == (0, 3)
    assert controller.find_item(2) is not None


def test_payment_for_copies_sold_elsewhere_fails(registry, reserved, controller, user_id, db_session,
                                                 valid_card, stock_of):
    BookService.update_book(db_session, 1, BookUpdate(physical_copies=1))
    notifier = MessageCollector()

    assert registry.submit_payment(user_id, notifier=notifier, **valid_card) is None

    assert texts(notifier) == ["An error occurred during payment. Please try again."]
    assert controller.state == CheckoutState.REVERTED
    assert stock_of(1) == (1, 0)
    assert OrderService.get_all_orders(db_session) == []


def test_checkout_uses_current_prices(controller, db_session):
    controller.set_selected(1, True, MessageCollector())
    BookService.update_book(db_session, 1, BookUpdate(price=Decimal("99.00")))

    assert controller.handle_checkout(MessageCollector()) == Decimal("198.00")
    assert controller.find_item(1).book.price == Decimal("99.00")
    assert controller.find_item(1).selected
    assert [book.price for book in controller.shopping_cart.get_books()] == [Decimal("99.00"), Decimal("15.00")]


def test_refresh_is_skipped_while_reserved(controller, db_session):
    controller.set_selected(1, True, MessageCollector())
    controller.handle_checkout(MessageCollector())
    BookService.update_book(db_session, 1, BookUpdate(price=Decimal("99.00")))

    controller.refresh_books()

    assert controller.find_item(1).book.price == Decimal("20.00")
    assert controller.total_price == Decimal("40.00")


def test_emptied_cart_is_dropped_after_payment(registry, user_id, books, valid_card):
    controller = registry.cart_controller(user_id)
    controller.add_book(1, 1, MessageCollector())
    controller.set_selected(1, True, MessageCollector())
    registry.begin_checkout(user_id, MessageCollector())

    assert registry.submit_payment(user_id, notifier=MessageCollector(), **valid_card) is not None

    fresh = registry.cart_controller(user_id)
    assert fresh is not controller
    assert fresh.items == []
    assert fresh.state == CheckoutState.IDLE
