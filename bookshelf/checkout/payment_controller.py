import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from bookshelf.checkout.notifier import Notifier
from bookshelf.checkout.shopping_cart import ShoppingCart
from bookshelf.checkout.shopping_cart_controller import ShoppingCartController
from bookshelf.core.exceptions import PaymentError, PersistenceError
from bookshelf.db.book.services.inventory_service import InventoryService
from bookshelf.db.order.models.order_schemas import Order, OrderItem
from bookshelf.db.order.services.order_service import OrderService
from bookshelf.payments.card.payment_service import PaymentService
from bookshelf.payments.card import payment_validator

logger = logging.getLogger(__name__)


class PaymentController:
    """
    Payment step of one checkout attempt.

    Created after the cart controller has reserved stock. Exactly one of two
    things ends it: a successful payment (finalize) or a failure / close
    without payment (revert).
    """

    def __init__(self, total_amount: Decimal, user_id: int, shopping_cart: ShoppingCart,
                 cart_controller: ShoppingCartController, payment_service: PaymentService,
                 session_factory: sessionmaker, order_service=OrderService,
                 inventory_service=InventoryService):
        self.total_amount = total_amount
        self.user_id = user_id
        self.shopping_cart = shopping_cart
        self.cart_controller = cart_controller
        self.payment_service = payment_service
        self.session_factory = session_factory
        self.order_service = order_service
        self.inventory_service = inventory_service

        self.payment_completed = False
        self.closed = False
        self.order: Optional[Order] = None

    @property
    def total_amount_label(self) -> str:
        return f"Total Amount: ${self.total_amount:.2f}"

    def handle_payment(self, card_number: str, card_holder_name: str, expiry_date: str,
                       cvv: str, notifier: Notifier) -> Optional[Order]:
        """
        Validate the card, charge it, then write the stock change and the
        order in one transaction.

        Invalid fields leave the checkout reserved so the user can correct
        them. A declined payment, missing stock or a failed order save
        reverts the reservation and closes this payment step.
        """
        if self.closed:
            notifier.show_error("Payment Failed", "This payment session has already ended.")
            return None
        if not self.validate_payment_details(card_number, expiry_date, cvv, notifier):
            return None

        try:
            order_reference = self.process_payment_details(card_number, card_holder_name, expiry_date, cvv)
            order = self.save_order(order_reference)
        except (PaymentError, PersistenceError) as e:
            logger.warning(f"Payment for user {self.user_id} failed: {e.user_message}")
            self.handle_payment_error(notifier)
            return None

        self.payment_completed = True
        self.cart_controller.complete_reservation()
        notifier.show_alert(
            "Payment Successful",
            f"Your payment was successful! Order Reference: {order_reference}",
        )
        self.close_payment_screen()
        return order

    def validate_payment_details(self, card_number: str, expiry_date: str, cvv: str,
                                 notifier: Notifier) -> bool:
        error = payment_validator.validate_payment_details(card_number, expiry_date, cvv)
        if error is not None:
            notifier.show_error("Payment Failed", error)
            return False
        return True

    def process_payment_details(self, card_number: str, card_holder_name: str,
                                expiry_date: str, cvv: str) -> str:
        reference = self.payment_service.process_payment(card_number, card_holder_name, expiry_date, cvv)
        if reference is None:
            raise PaymentError("Payment processing failed.")
        return reference

    def save_order(self, order_reference: str) -> Order:
        """
        Apply the reserved stock and insert the order in the same session;
        ``place_order`` commits both or neither.
        """
        order = Order(
            order_number=order_reference,
            user_id=self.user_id,
            total_price=self.total_amount,
            order_items=self.create_order_items(),
        )
        context = {"order_number": order_reference}
        with self.session_factory() as db:
            try:
                if not self.inventory_service.apply_stock_adjustments(db, dict(self.cart_controller.reserved_stock)):
                    db.rollback()
                    raise PersistenceError("Not enough copies are left to complete this order.", context)
                placed = self.order_service.place_order(db, order)
            except SQLAlchemyError as e:
                db.rollback()
                raise PersistenceError("Error saving order.", context) from e
            if not placed:
                db.rollback()
                raise PersistenceError("Error saving order.", context)
        self.order = order
        return order

    def create_order_items(self) -> List[OrderItem]:
        """Snapshot the selected cart entries at purchase time."""
        return [
            OrderItem(book_id=book.id, title=book.title, quantity=quantity, price=book.price)
            for book, quantity in self.shopping_cart.get_books().items()
            if self.cart_controller.is_book_selected(book)
        ]

    def handle_payment_error(self, notifier: Notifier):
        notifier.show_error("Payment Failed", "An error occurred during payment. Please try again.")
        self.cart_controller.revert_reserved_stock()
        self.close_payment_screen()

    def close_payment_screen(self):
        self.closed = True

    def close(self):
        """Window-close handler: revert unless the payment went through."""
        if not self.payment_completed:
            self.cart_controller.revert_reserved_stock()
        self.close_payment_screen()
