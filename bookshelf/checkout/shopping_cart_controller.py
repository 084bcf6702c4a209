"""
Cart screen logic: quantity adjustment, item selection, and the checkout
reservation that lives between "Checkout" and the payment outcome.

Checkout state per attempt::

    IDLE --confirm--> RESERVED --payment ok--> FINALIZED
                               --failure/close--> REVERTED

The reservation only ever lives in memory. Persistent stock changes once, in
``finalize_stock_after_payment``.
"""

import logging
import threading
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from bookshelf.checkout.cart_table_item import CartTableItem
from bookshelf.checkout.notifier import Notifier
from bookshelf.checkout.shopping_cart import ShoppingCart
from bookshelf.db.book.models.book_schemas import Book
from bookshelf.db.book.services.book_service import BookService
from bookshelf.db.book.services.inventory_service import InventoryService
from bookshelf.db.cart.services.cart_service import CartService

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class CheckoutState(str, Enum):
    IDLE = "idle"
    RESERVED = "reserved"
    FINALIZED = "finalized"
    REVERTED = "reverted"


def format_total_price(total: Decimal) -> str:
    return f"Total Price: ${total:.2f}"


class ShoppingCartController:
    """
    Owns one user's cart table and checkout reservation.

    All public methods hold ``self.lock``; callers may run on different
    threads.
    """

    def __init__(self, shopping_cart: ShoppingCart, session_factory: sessionmaker,
                 cart_service=CartService, inventory_service=InventoryService,
                 book_service=BookService):
        self.shopping_cart = shopping_cart
        self.session_factory = session_factory
        self.cart_service = cart_service
        self.inventory_service = inventory_service
        self.book_service = book_service

        self.lock = threading.RLock()
        self.items: List[CartTableItem] = []
        self.total_price = Decimal("0.00")
        self.reserved_stock: Dict[Book, int] = {}
        self.state = CheckoutState.IDLE

        self.load_cart_items()

    # Table

    def load_cart_items(self):
        with self.lock:
            for item in self.items:
                item.remove_listener(self._on_item_changed)
            self.items = []
            for book, quantity in self.shopping_cart.get_books().items():
                self._append_item(book, quantity)
            self.update_total_price()

    def _append_item(self, book: Book, quantity: int) -> CartTableItem:
        item = CartTableItem(book, quantity)
        item.add_listener(self._on_item_changed)
        self.items.append(item)
        return item

    def _on_item_changed(self, item: CartTableItem):
        self.update_total_price()

    def update_total_price(self):
        with self.lock:
            total = sum((item.total_amount for item in self.items if item.selected), Decimal("0"))
            self.total_price = Decimal(total).quantize(CENTS)

    @property
    def total_price_label(self) -> str:
        return format_total_price(self.total_price)

    def find_item(self, book_id: int) -> Optional[CartTableItem]:
        return next((item for item in self.items if item.book.id == book_id), None)

    def selected_items(self) -> List[CartTableItem]:
        return [item for item in self.items if item.selected]

    def is_book_selected(self, book: Book) -> bool:
        with self.lock:
            return any(item.selected for item in self.items if item.book == book)

    def refresh_books(self):
        """
        Re-read title and price of every cart book from the database so the
        totals and the order snapshot use current catalog data. Skipped while
        a reservation is open.
        """
        with self.lock:
            if self.state == CheckoutState.RESERVED or not self.items:
                return
            with self.session_factory() as db:
                rows = self.book_service.find_books_by_ids(db, [item.book.id for item in self.items])
                fresh = {row.id: Book.model_validate(row) for row in rows}

            for item in self.items:
                book = fresh.get(item.book.id)
                if book is None or book.model_dump() == item.book.model_dump():
                    continue
                logger.info(f"Cart {self.shopping_cart.cart_id}: book {book.id} changed in catalog")
                self.shopping_cart.replace_book(book)
                item.book = book

    def _ensure_not_reserved(self, notifier: Notifier) -> bool:
        if self.state == CheckoutState.RESERVED:
            notifier.show_error("Checkout In Progress",
                                "Finish or cancel the current payment before changing the cart.")
            return False
        return True

    def _report_persistence_error(self, notifier: Notifier, error: Exception):
        logger.error(f"Cart {self.shopping_cart.cart_id}: database error: {error}")
        notifier.show_error("Database Error", "Your cart could not be saved. Please try again.")

    # Cart mutations

    def add_book(self, book_id: int, quantity: int, notifier: Notifier) -> bool:
        with self.lock:
            if not self._ensure_not_reserved(notifier):
                return False
            if quantity <= 0:
                notifier.show_error("Invalid Quantity", "Quantity must be positive.")
                return False

            with self.session_factory() as db:
                db_book = self.book_service.find_book_by_id(db, book_id)
                if db_book is None:
                    notifier.show_error("Book Not Found", f"No book with ID {book_id}.")
                    return False
                book = Book.model_validate(db_book)

                wanted = self.shopping_cart.get_quantity(book) + quantity
                if not self.inventory_service.check_stock_availability(db, book.id, wanted):
                    available = self.inventory_service.get_available_copies(db, book.id)
                    notifier.show_error("Insufficient Stock",
                                        f"Only {available} copies of '{book.title}' are available.")
                    return False

                try:
                    self.cart_service.add_or_update_book_in_cart(db, self.shopping_cart.cart_id, book.id, quantity)
                except SQLAlchemyError as e:
                    db.rollback()
                    self._report_persistence_error(notifier, e)
                    return False

            self.shopping_cart.add_book(book, quantity)
            item = self.find_item(book.id)
            if item is None:
                self._append_item(book, quantity)
                self.update_total_price()
            else:
                item.quantity = self.shopping_cart.get_quantity(book)
            notifier.show_alert("Added to Cart", f"Added {quantity} x '{book.title}' to your cart.")
            return True

    def adjust_quantity(self, book_id: int, adjustment: int, notifier: Notifier) -> bool:
        """Change a row's quantity by ``adjustment``; reaching zero removes the row."""
        with self.lock:
            if not self._ensure_not_reserved(notifier):
                return False
            item = self.find_item(book_id)
            if item is None:
                notifier.show_error("Cart Error", f"Book {book_id} is not in the cart.")
                return False

            new_quantity = item.quantity + adjustment
            if new_quantity <= 0:
                return self.remove_item(book_id, notifier)

            try:
                with self.session_factory() as db:
                    self.cart_service.update_book_quantity(db, self.shopping_cart.cart_id, book_id, new_quantity)
            except SQLAlchemyError as e:
                self._report_persistence_error(notifier, e)
                return False
            self.shopping_cart.update_book_quantity(item.book, new_quantity)
            item.quantity = new_quantity
            return True

    def set_selected(self, book_id: int, selected: bool, notifier: Notifier) -> bool:
        with self.lock:
            if not self._ensure_not_reserved(notifier):
                return False
            item = self.find_item(book_id)
            if item is None:
                notifier.show_error("Cart Error", f"Book {book_id} is not in the cart.")
                return False
            item.selected = selected
            return True

    def remove_item(self, book_id: int, notifier: Notifier) -> bool:
        with self.lock:
            if not self._ensure_not_reserved(notifier):
                return False
            item = self.find_item(book_id)
            if item is None:
                notifier.show_error("Cart Error", f"Book {book_id} is not in the cart.")
                return False

            logger.info(f"Removing book {book_id} from cart {self.shopping_cart.cart_id}")
            try:
                with self.session_factory() as db:
                    self.cart_service.remove_book_from_cart(db, self.shopping_cart.cart_id, book_id)
            except SQLAlchemyError as e:
                self._report_persistence_error(notifier, e)
                return False
            self.shopping_cart.remove_book(item.book)
            item.remove_listener(self._on_item_changed)
            self.items.remove(item)
            self.update_total_price()
            return True

    # Checkout

    def handle_checkout(self, notifier: Notifier) -> Optional[Decimal]:
        """
        Reserve the selected items for the payment step.

        Returns:
            The amount to pay, or None when nothing was reserved (no
            selection, declined confirmation, missing stock, or a checkout
            already in progress).
        """
        with self.lock:
            selected = self.selected_items()
            if not selected:
                notifier.show_error("Checkout Error", "No items selected for checkout.")
                return None
            if not self._ensure_not_reserved(notifier):
                return None
            self.refresh_books()
            if not notifier.show_confirmation("Confirm Checkout", "Are you sure you want to checkout?"):
                return None

            with self.session_factory() as db:
                for item in selected:
                    if not self.inventory_service.check_stock_availability(db, item.book.id, item.quantity):
                        available = self.inventory_service.get_available_copies(db, item.book.id)
                        notifier.show_error(
                            "Insufficient Stock",
                            f"Only {available} copies of '{item.book.title}' are available.",
                        )
                        return None

            self.reserve_stock_in_memory(selected)
            total_amount = sum((item.total_amount for item in selected), Decimal("0")).quantize(CENTS)
            logger.info(
                f"Cart {self.shopping_cart.cart_id}: reserved {len(self.reserved_stock)} book(s), "
                f"total {total_amount}"
            )
            return total_amount

    def reserve_stock_in_memory(self, selected: List[CartTableItem]):
        with self.lock:
            for item in selected:
                self.reserved_stock[item.book] = item.quantity
            self.state = CheckoutState.RESERVED

    def finalize_stock_after_payment(self, notifier: Optional[Notifier] = None) -> bool:
        """
        Apply the reservation to inventory, then drop the purchased rows from the cart.
        If a book no longer has enough copies nothing is written and the
        reservation is reverted.
        """
        with self.lock:
            if self.state != CheckoutState.RESERVED:
                logger.warning(f"Cart {self.shopping_cart.cart_id}: finalize called in state {self.state.value}")
                return False

            with self.session_factory() as db:
                finalized = self.inventory_service.finalize_stock_adjustments(db, dict(self.reserved_stock))
            if not finalized:
                if notifier is not None:
                    notifier.show_error("Inventory Error", "Not enough copies are left to complete this order.")
                self.revert_reserved_stock()
                return False

            self.complete_reservation()
            return True

    def complete_reservation(self):
        """Mark a reservation whose stock change is already committed as finalized."""
        with self.lock:
            self.reserved_stock.clear()
            self.state = CheckoutState.FINALIZED
            self.remove_checked_out_items_from_cart()

    def remove_checked_out_items_from_cart(self):
        with self.lock:
            selected = self.selected_items()
            books = [item.book for item in selected]
            try:
                with self.session_factory() as db:
                    self.cart_service.remove_books_from_cart(
                        db, self.shopping_cart.cart_id, [book.id for book in books]
                    )
            except SQLAlchemyError as e:
                logger.error(f"Error clearing checked-out items from cart {self.shopping_cart.cart_id}: {e}")
            self.shopping_cart.remove_books(books)
            for item in selected:
                item.remove_listener(self._on_item_changed)
                self.items.remove(item)
            self.update_total_price()

    def revert_reserved_stock(self):
        """Drop the reservation; persistent stock was never touched."""
        with self.lock:
            if self.reserved_stock:
                logger.info(f"Cart {self.shopping_cart.cart_id}: reverting reservation")
            self.reserved_stock.clear()
            if self.state == CheckoutState.RESERVED:
                self.state = CheckoutState.REVERTED
