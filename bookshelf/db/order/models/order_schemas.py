from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal


# Order schemas
class OrderItem(BaseModel):
    book_id: int
    title: str
    quantity: int
    price: Decimal

    model_config = ConfigDict(from_attributes=True)


class Order(BaseModel):
    """
    Snapshot of a purchase. ``order_id`` stays None until the order is saved;
    the database assigns it.
    """
    order_id: Optional[int] = None
    order_number: str
    user_id: int
    total_price: Decimal
    order_date: datetime = Field(default_factory=datetime.now)
    order_items: List[OrderItem] = Field(default_factory=list, validation_alias="items")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
