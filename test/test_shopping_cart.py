import pytest
from decimal import Decimal

from bookshelf.checkout.shopping_cart import ShoppingCart
from bookshelf.db.book.models.book_schemas import Book


def make_book(book_id, price="20.00", title=None):
    return Book(id=book_id, title=title or f"Book {book_id}", author="Author",
                physical_copies=10, price=Decimal(price))


def test_add_same_book_twice_sums_quantities():
    cart = ShoppingCart(user_id=1, cart_id=7)
    book = make_book(1)

    cart.add_book(book, 2)
    cart.add_book(book, 3)

    assert cart.get_quantity(book) == 5
    assert len(cart) == 1


def test_books_with_same_id_are_the_same_entry():
    cart = ShoppingCart(1, 7)
    cart.add_book(make_book(1, title="Old title"), 1)
    cart.add_book(make_book(1, title="New title"), 1)

    assert cart.get_quantity(make_book(1)) == 2


@pytest.mark.parametrize("quantity", [0, -3])
def test_update_quantity_to_zero_or_less_removes_book(quantity):
    cart = ShoppingCart(1, 7)
    book = make_book(1)
    cart.add_book(book, 4)

    cart.update_book_quantity(book, quantity)

    assert book not in cart
    assert cart.is_empty()


def test_update_quantity_overwrites():
    cart = ShoppingCart(1, 7)
    book = make_book(1)
    cart.add_book(book, 4)

    cart.update_book_quantity(book, 9)

    assert cart.get_quantity(book) == 9


@pytest.mark.parametrize("book, quantity", [(None, 1), (make_book(1), 0), (make_book(1), -1)])
def test_add_book_rejects_invalid_input(book, quantity):
    cart = ShoppingCart(1, 7)
    with pytest.raises(ValueError):
        cart.add_book(book, quantity)
    assert cart.is_empty()


def test_none_book_rejected_on_update_and_remove():
    cart = ShoppingCart(1, 7)
    with pytest.raises(ValueError):
        cart.update_book_quantity(None, 1)
    with pytest.raises(ValueError):
        cart.remove_book(None)


def test_get_books_is_read_only_snapshot():
    cart = ShoppingCart(1, 7)
    book = make_book(1)
    cart.add_book(book, 1)

    snapshot = cart.get_books()
    with pytest.raises(TypeError):
        snapshot[book] = 99

    cart.add_book(make_book(2), 1)
    assert len(snapshot) == 1


def test_remove_books_and_clear():
    cart = ShoppingCart(1, 7)
    first, second, third = make_book(1), make_book(2), make_book(3)
    for book in (first, second, third):
        cart.add_book(book, 1)

    cart.remove_books([first, third])
    assert list(cart.get_books()) == [second]

    cart.clear_cart()
    assert cart.is_empty()
    assert cart.user_id == 1
    assert cart.cart_id == 7


def test_replace_book_keeps_quantity_and_order():
    cart = ShoppingCart(1, 7)
    cart.add_book(make_book(1), 2)
    cart.add_book(make_book(2), 1)

    cart.replace_book(make_book(1, price="99.00"))

    assert [(book.id, book.price, quantity) for book, quantity in cart.get_books().items()] == [
        (1, Decimal("99.00"), 2),
        (2, Decimal("20.00"), 1),
    ]
    with pytest.raises(ValueError):
        cart.replace_book(None)
