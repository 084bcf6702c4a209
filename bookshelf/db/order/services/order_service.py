import csv
import io
import logging
from sqlalchemy import delete, desc, insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from typing import Iterable, List, Optional

from bookshelf.db.order.models.order_models import Order, OrderItem
from bookshelf.db.order.models.order_schemas import Order as OrderSchema

logger = logging.getLogger(__name__)

EXPORT_HEADER = ["Order Number", "Order Date", "Title", "Quantity", "Price", "Order Total"]


class OrderService:
    @staticmethod
    def save_order(db: Session, order: OrderSchema) -> bool:
        """
        Lưu order và các order items trong cùng một transaction.

        The order row is flushed first to obtain its generated id, which is
        written back to ``order.order_id`` once the transaction commits.
        Changes already pending in ``db`` (the stock update of a checkout)
        commit or roll back together with the order.

        Returns:
            True khi commit thành công, False nếu có lỗi (đã rollback)
        """
        try:
            db_order = Order(
                order_number=order.order_number,
                user_id=order.user_id,
                total_price=order.total_price,
                order_date=order.order_date,
            )
            db.add(db_order)
            db.flush()

            if order.order_items:
                db.execute(
                    insert(OrderItem),
                    [
                        {
                            "order_id": db_order.order_id,
                            "book_id": item.book_id,
                            "title": item.title,
                            "quantity": item.quantity,
                            "price": item.price,
                        }
                        for item in order.order_items
                    ],
                )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error saving order {order.order_number}: {e}")
            return False

        order.order_id = db_order.order_id
        logger.info(
            f"Saved order {order.order_number} (id={order.order_id}) "
            f"for user {order.user_id} with {len(order.order_items)} item(s)"
        )
        return True

    @staticmethod
    def place_order(db: Session, order: OrderSchema) -> bool:
        """Đặt hàng: order phải có ít nhất một item"""
        if not order.order_items:
            logger.warning(f"Refusing to place order {order.order_number} without items")
            return False
        return OrderService.save_order(db, order)

    @staticmethod
    def _query_orders(db: Session):
        return db.query(Order).options(selectinload(Order.items))\
            .order_by(desc(Order.order_date), desc(Order.order_id))

    @staticmethod
    def _to_schema(rows: Iterable[Order]) -> List[OrderSchema]:
        return [OrderSchema.model_validate(row) for row in rows]

    @staticmethod
    def get_all_orders_by_user(db: Session, user_id: int) -> List[OrderSchema]:
        """Lấy danh sách orders của một user, mới nhất trước"""
        rows = OrderService._query_orders(db).filter(Order.user_id == user_id).all()
        return OrderService._to_schema(rows)

    @staticmethod
    def get_order_by_id(db: Session, order_id: int) -> Optional[OrderSchema]:
        """Lấy order theo ID"""
        row = OrderService._query_orders(db).filter(Order.order_id == order_id).first()
        return OrderSchema.model_validate(row) if row else None

    @staticmethod
    def get_selected_orders_by_user(db: Session, user_id: int, order_ids: List[int]) -> List[OrderSchema]:
        if not order_ids:
            return []
        rows = OrderService._query_orders(db)\
            .filter(Order.user_id == user_id, Order.order_id.in_(order_ids)).all()
        return OrderService._to_schema(rows)

    @staticmethod
    def get_all_orders(db: Session) -> List[OrderSchema]:
        """Lấy tất cả orders (admin)"""
        return OrderService._to_schema(OrderService._query_orders(db).all())

    @staticmethod
    def get_selected_orders_by_ids(db: Session, order_ids: List[int]) -> List[OrderSchema]:
        if not order_ids:
            return []
        rows = OrderService._query_orders(db).filter(Order.order_id.in_(order_ids)).all()
        return OrderService._to_schema(rows)

    @staticmethod
    def delete_order_by_id(db: Session, order_id: int) -> bool:
        """
        Xóa order và các items trong một transaction.
        Rollback và trả về False nếu order không có item hoặc không tồn tại.
        """
        try:
            deleted_items = db.execute(
                delete(OrderItem).where(OrderItem.order_id == order_id)
            ).rowcount
            if deleted_items == 0:
                logger.info(f"No order items found for order ID {order_id}")
                db.rollback()
                return False

            deleted_orders = db.execute(
                delete(Order).where(Order.order_id == order_id)
            ).rowcount
            if deleted_orders == 0:
                logger.info(f"Order ID not found for deletion: {order_id}")
                db.rollback()
                return False

            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error deleting order {order_id}: {e}")
            return False
        return True


def export_orders_csv(orders: Iterable[OrderSchema]) -> str:
    """One CSV row per order item, repeating the order number, date and total."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_HEADER)
    for order in orders:
        for item in order.order_items:
            writer.writerow([
                order.order_number,
                order.order_date.strftime("%Y-%m-%d %H:%M:%S"),
                item.title,
                item.quantity,
                f"{item.price:.2f}",
                f"{order.total_price:.2f}",
            ])
    return buffer.getvalue()
