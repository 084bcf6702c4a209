import logging
from types import MappingProxyType
from typing import Dict, Iterable, Mapping

from bookshelf.db.book.models.book_schemas import Book

logger = logging.getLogger(__name__)


class ShoppingCart:
    """
    In-memory cart of one user: Book -> quantity.

    Every stored quantity is positive; updating a book to zero or less drops
    it. The cart is not thread-safe, its owner serializes access.
    """

    def __init__(self, user_id: int, cart_id: int):
        self._user_id = user_id
        self._cart_id = cart_id
        self._cart: Dict[Book, int] = {}
        logger.debug(f"ShoppingCart created for user {user_id} with cart ID {cart_id}")

    @property
    def user_id(self) -> int:
        return self._user_id

    @property
    def cart_id(self) -> int:
        return self._cart_id

    def add_book(self, book: Book, quantity: int):
        """
        Add ``quantity`` copies of ``book``, summing with any existing quantity.

        Raises:
            ValueError: if the book is None or the quantity is not positive.
        """
        if book is None or quantity <= 0:
            raise ValueError("Book cannot be None and quantity must be positive.")
        self._cart[book] = self._cart.get(book, 0) + quantity

    def remove_book(self, book: Book):
        if book is None:
            raise ValueError("Book cannot be None.")
        self._cart.pop(book, None)

    def remove_books(self, books: Iterable[Book]):
        for book in books:
            self._cart.pop(book, None)

    def update_book_quantity(self, book: Book, quantity: int):
        """Overwrite the quantity of ``book``; zero or less removes it."""
        if book is None:
            raise ValueError("Book cannot be None.")
        if quantity <= 0:
            self._cart.pop(book, None)
        else:
            self._cart[book] = quantity

    def replace_book(self, book: Book):
        """Swap in a fresher copy of a book already in the cart, keeping its quantity and position."""
        if book is None:
            raise ValueError("Book cannot be None.")
        self._cart = {(book if key == book else key): quantity for key, quantity in self._cart.items()}

    def get_books(self) -> Mapping[Book, int]:
        """Read-only snapshot of the cart contents."""
        return MappingProxyType(dict(self._cart))

    def get_quantity(self, book: Book) -> int:
        return self._cart.get(book, 0)

    def is_empty(self) -> bool:
        return not self._cart

    def clear_cart(self):
        self._cart.clear()

    def __contains__(self, book: Book) -> bool:
        return book in self._cart

    def __len__(self) -> int:
        return len(self._cart)
