from decimal import Decimal
from typing import Callable, List

from bookshelf.db.book.models.book_schemas import Book

ChangeListener = Callable[["CartTableItem"], None]


class CartTableItem:
    """
    One row of the cart table: a book, its quantity, the line total and the
    checkout selection flag. Listeners are called after quantity or selection
    change.
    """

    def __init__(self, book: Book, quantity: int):
        self._book = book
        self._quantity = quantity
        self._total_amount = book.price * quantity
        self._selected = False
        self._listeners: List[ChangeListener] = []

    @property
    def book(self) -> Book:
        return self._book

    @book.setter
    def book(self, book: Book):
        self._book = book
        self._total_amount = book.price * self._quantity
        self._notify()

    @property
    def quantity(self) -> int:
        return self._quantity

    @quantity.setter
    def quantity(self, quantity: int):
        self._quantity = quantity
        self._total_amount = self._book.price * quantity
        self._notify()

    @property
    def total_amount(self) -> Decimal:
        return self._total_amount

    @property
    def selected(self) -> bool:
        return self._selected

    @selected.setter
    def selected(self, selected: bool):
        if selected == self._selected:
            return
        self._selected = selected
        self._notify()

    def add_listener(self, listener: ChangeListener):
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self):
        for listener in list(self._listeners):
            listener(self)
