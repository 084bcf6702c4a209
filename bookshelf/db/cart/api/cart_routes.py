from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from typing import List

from bookshelf.checkout.checkout_registry import CheckoutRegistry
from bookshelf.checkout.notifier import MessageCollector
from bookshelf.checkout.shopping_cart_controller import ShoppingCartController
from bookshelf.core.exceptions import CheckoutStateError
from bookshelf.db.common.database_connection import get_db
from bookshelf.db.user.services.user_service import UserService
from bookshelf.db.cart.models.cart_schemas import (
    AddToCartRequest, AdjustQuantityRequest, CartTableItemView, CartView, CheckoutRequest,
    CheckoutResponse, Message, PaymentRequest, PaymentResponse, SelectItemRequest,
)

router = APIRouter()


def get_registry(request: Request) -> CheckoutRegistry:
    return request.app.state.checkout_registry


def _ensure_user(db: Session, user_id: int):
    if not UserService.get_user(db, user_id):
        raise HTTPException(status_code=404, detail="User not found")


def build_cart_view(controller: ShoppingCartController, messages: List[Message] = None,
                    success: bool = True) -> CartView:
    """Dựng view của bảng giỏ hàng từ controller"""
    with controller.lock:
        items = [
            CartTableItemView(
                book_id=item.book.id,
                title=item.book.title,
                author=item.book.author,
                price=item.book.price,
                quantity=item.quantity,
                total_amount=item.total_amount,
                selected=item.selected,
            )
            for item in controller.items
        ]
        return CartView(
            success=success,
            cart_id=controller.shopping_cart.cart_id,
            user_id=controller.shopping_cart.user_id,
            items=items,
            total_price=controller.total_price,
            total_price_label=controller.total_price_label,
            checkout_state=controller.state.value,
            messages=messages or [],
        )


@router.get("/cart/{user_id}", response_model=CartView)
async def get_cart(user_id: int, db: Session = Depends(get_db),
                   registry: CheckoutRegistry = Depends(get_registry)):
    """Lấy giỏ hàng của user"""
    _ensure_user(db, user_id)
    controller = registry.cart_controller(user_id)
    controller.refresh_books()
    return build_cart_view(controller)


@router.post("/cart/{user_id}/items", response_model=CartView)
async def add_to_cart(user_id: int, request: AddToCartRequest, db: Session = Depends(get_db),
                      registry: CheckoutRegistry = Depends(get_registry)):
    """Thêm book vào giỏ hàng, cộng dồn nếu đã có"""
    _ensure_user(db, user_id)
    controller = registry.cart_controller(user_id)
    notifier = MessageCollector()
    success = controller.add_book(request.book_id, request.quantity, notifier)
    return build_cart_view(controller, notifier.messages, success)


@router.post("/cart/{user_id}/items/{book_id}/adjust", response_model=CartView)
async def adjust_quantity(user_id: int, book_id: int, request: AdjustQuantityRequest,
                          db: Session = Depends(get_db),
                          registry: CheckoutRegistry = Depends(get_registry)):
    """Tăng/giảm số lượng; về 0 thì xóa khỏi giỏ"""
    _ensure_user(db, user_id)
    controller = registry.cart_controller(user_id)
    notifier = MessageCollector()
    success = controller.adjust_quantity(book_id, request.adjustment, notifier)
    return build_cart_view(controller, notifier.messages, success)


@router.put("/cart/{user_id}/items/{book_id}/select", response_model=CartView)
async def select_item(user_id: int, book_id: int, request: SelectItemRequest,
                      db: Session = Depends(get_db),
                      registry: CheckoutRegistry = Depends(get_registry)):
    """Chọn/bỏ chọn item để checkout"""
    _ensure_user(db, user_id)
    controller = registry.cart_controller(user_id)
    notifier = MessageCollector()
    success = controller.set_selected(book_id, request.selected, notifier)
    return build_cart_view(controller, notifier.messages, success)


@router.delete("/cart/{user_id}/items/{book_id}", response_model=CartView)
async def remove_from_cart(user_id: int, book_id: int, db: Session = Depends(get_db),
                           registry: CheckoutRegistry = Depends(get_registry)):
    """Xóa book khỏi giỏ hàng"""
    _ensure_user(db, user_id)
    controller = registry.cart_controller(user_id)
    notifier = MessageCollector()
    success = controller.remove_item(book_id, notifier)
    return build_cart_view(controller, notifier.messages, success)


@router.post("/cart/{user_id}/checkout", response_model=CheckoutResponse)
async def checkout(user_id: int, request: CheckoutRequest, db: Session = Depends(get_db),
                   registry: CheckoutRegistry = Depends(get_registry)):
    """
    Giữ chỗ (in-memory) các items đã chọn và mở bước thanh toán.
    ``confirmed`` là câu trả lời cho hộp thoại "Confirm Checkout".
    """
    _ensure_user(db, user_id)
    notifier = MessageCollector(confirmed=request.confirmed)
    payment = registry.begin_checkout(user_id, notifier)
    controller = registry.cart_controller(user_id)
    if payment is None:
        return CheckoutResponse(
            success=False,
            cart=build_cart_view(controller),
            messages=notifier.messages,
        )
    return CheckoutResponse(
        success=True,
        total_amount=payment.total_amount,
        total_amount_label=payment.total_amount_label,
        cart=build_cart_view(controller),
        messages=notifier.messages,
    )


@router.post("/cart/{user_id}/payment", response_model=PaymentResponse)
async def submit_payment(user_id: int, request: PaymentRequest, db: Session = Depends(get_db),
                         registry: CheckoutRegistry = Depends(get_registry)):
    """Thanh toán cho checkout đang mở"""
    _ensure_user(db, user_id)
    notifier = MessageCollector()
    order = registry.submit_payment(
        user_id,
        request.card_number,
        request.card_holder_name,
        request.expiry_date,
        request.cvv,
        notifier,
    )
    return PaymentResponse(
        success=order is not None,
        order=order,
        cart=build_cart_view(registry.cart_controller(user_id)),
        messages=notifier.messages,
    )


@router.post("/cart/{user_id}/payment/cancel", response_model=CartView)
async def cancel_payment(user_id: int, db: Session = Depends(get_db),
                         registry: CheckoutRegistry = Depends(get_registry)):
    """Đóng màn hình thanh toán, hoàn lại phần giữ chỗ"""
    _ensure_user(db, user_id)
    if not registry.cancel_payment(user_id):
        raise CheckoutStateError("No checkout is awaiting payment.", {"user_id": user_id})
    return build_cart_view(registry.cart_controller(user_id))
