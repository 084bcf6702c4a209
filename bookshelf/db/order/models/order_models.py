from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from datetime import datetime

from bookshelf.db.common.database_connection import Base


class Order(Base):
    """Model cho đơn hàng"""
    __tablename__ = "orders"

    order_id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(50), unique=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    order_date = Column(DateTime, default=datetime.now, nullable=False)

    # Relationships
    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.order_item_id")


class OrderItem(Base):
    """Model cho từng sách trong đơn hàng (snapshot lúc mua)"""
    __tablename__ = "order_items"

    order_item_id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.order_id"), nullable=False)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False)
    title = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    # Relationships
    order = relationship("Order", back_populates="items")
