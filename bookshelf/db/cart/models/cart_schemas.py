from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from decimal import Decimal

from bookshelf.db.order.models.order_schemas import Order


# Cart schemas
class CartItem(BaseModel):
    """Dòng giỏ hàng dùng để lưu/đọc database, không chứa Book"""
    book_id: int
    quantity: int

    model_config = ConfigDict(from_attributes=True)


class AddToCartRequest(BaseModel):
    book_id: int
    quantity: int = Field(1, gt=0)


class AdjustQuantityRequest(BaseModel):
    adjustment: int


class SelectItemRequest(BaseModel):
    selected: bool = True


class CheckoutRequest(BaseModel):
    confirmed: bool = True


class PaymentRequest(BaseModel):
    card_number: str = ""
    card_holder_name: str = ""
    expiry_date: str = ""
    cvv: str = ""


class Message(BaseModel):
    level: str
    title: str
    text: str


class CartTableItemView(BaseModel):
    book_id: int
    title: str
    author: str
    price: Decimal
    quantity: int
    total_amount: Decimal
    selected: bool


class CartView(BaseModel):
    success: bool = True
    cart_id: int
    user_id: int
    items: List[CartTableItemView]
    total_price: Decimal
    total_price_label: str
    checkout_state: str
    messages: List[Message] = []


class CheckoutResponse(BaseModel):
    success: bool
    total_amount: Optional[Decimal] = None
    total_amount_label: Optional[str] = None
    cart: CartView
    messages: List[Message] = []


class PaymentResponse(BaseModel):
    success: bool
    order: Optional[Order] = None
    cart: CartView
    messages: List[Message] = []
