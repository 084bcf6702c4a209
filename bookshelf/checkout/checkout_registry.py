import logging
import threading
from typing import Dict, Optional

from sqlalchemy.orm import sessionmaker

from bookshelf.checkout.notifier import Notifier
from bookshelf.checkout.payment_controller import PaymentController
from bookshelf.checkout.shopping_cart_controller import ShoppingCartController
from bookshelf.core.exceptions import CheckoutStateError
from bookshelf.db.cart.services.cart_service import CartService
from bookshelf.db.order.models.order_schemas import Order
from bookshelf.payments.card.payment_service import PaymentService

logger = logging.getLogger(__name__)


class CheckoutRegistry:
    """
    Application-wide owner of the per-user cart controllers and of the
    payment step that is currently open for each user.
    """

    def __init__(self, session_factory: sessionmaker, payment_service: Optional[PaymentService] = None):
        self.session_factory = session_factory
        self.payment_service = payment_service or PaymentService()
        self.lock = threading.Lock()
        self._controllers: Dict[int, ShoppingCartController] = {}
        self._payments: Dict[int, PaymentController] = {}

    def cart_controller(self, user_id: int) -> ShoppingCartController:
        """Controller của user, load cart từ database ở lần gọi đầu tiên"""
        with self.lock:
            controller = self._controllers.get(user_id)
            if controller is None:
                with self.session_factory() as db:
                    shopping_cart = CartService.load_shopping_cart(db, user_id)
                controller = ShoppingCartController(shopping_cart, self.session_factory)
                self._controllers[user_id] = controller
                logger.info(f"Loaded cart {shopping_cart.cart_id} for user {user_id}")
            return controller

    def payment_controller(self, user_id: int) -> Optional[PaymentController]:
        with self.lock:
            return self._payments.get(user_id)

    def begin_checkout(self, user_id: int, notifier: Notifier) -> Optional[PaymentController]:
        controller = self.cart_controller(user_id)
        with controller.lock:
            total_amount = controller.handle_checkout(notifier)
            if total_amount is None:
                return None

            payment = PaymentController(
                total_amount,
                user_id,
                controller.shopping_cart,
                controller,
                self.payment_service,
                self.session_factory,
            )
            with self.lock:
                self._payments[user_id] = payment
            return payment

    def submit_payment(self, user_id: int, card_number: str, card_holder_name: str,
                       expiry_date: str, cvv: str, notifier: Notifier) -> Optional[Order]:
        payment = self.payment_controller(user_id)
        if payment is None:
            raise CheckoutStateError("No checkout is awaiting payment.", {"user_id": user_id})

        with payment.cart_controller.lock:
            order = payment.handle_payment(card_number, card_holder_name, expiry_date, cvv, notifier)
            if payment.closed:
                self._forget_payment(user_id, payment)
            if order is not None and payment.cart_controller.shopping_cart.is_empty():
                # Nothing left to hold in memory; the next request reloads from the database
                with self.lock:
                    self._controllers.pop(user_id, None)
        return order

    def cancel_payment(self, user_id: int) -> bool:
        """Close the open payment step, reverting its reservation."""
        payment = self.payment_controller(user_id)
        if payment is None:
            return False
        with payment.cart_controller.lock:
            payment.close()
            self._forget_payment(user_id, payment)
        logger.info(f"Payment cancelled for user {user_id}")
        return True

    def discard(self, user_id: int):
        """Drop everything held for a user (logout, account deletion)."""
        self.cancel_payment(user_id)
        with self.lock:
            self._controllers.pop(user_id, None)

    def _forget_payment(self, user_id: int, payment: PaymentController):
        with self.lock:
            if self._payments.get(user_id) is payment:
                del self._payments[user_id]
