import logging
from sqlalchemy import delete, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session
from typing import Iterable, List, Optional

from bookshelf.checkout.shopping_cart import ShoppingCart
from bookshelf.db.book.models.book_schemas import Book as BookSchema
from bookshelf.db.book.services.book_service import BookService
from bookshelf.db.cart.models.cart_models import ACTIVE_STATUS, Cart, CartItem
from bookshelf.db.cart.models.cart_schemas import CartItem as CartItemSchema

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class CartService:
    @staticmethod
    def get_active_cart(db: Session, user_id: int) -> Optional[Cart]:
        """Lấy cart đang active của user, None nếu chưa có"""
        return db.query(Cart).filter(Cart.user_id == user_id, Cart.status == ACTIVE_STATUS).first()

    @staticmethod
    def get_or_create_cart(db: Session, user_id: int) -> int:
        """Trả về cart_id của cart active, tạo mới nếu chưa có"""
        cart = CartService.get_active_cart(db, user_id)
        if cart:
            return cart.cart_id

        cart = Cart(user_id=user_id, status=ACTIVE_STATUS)
        db.add(cart)
        db.commit()
        db.refresh(cart)
        logger.info(f"Created cart {cart.cart_id} for user {user_id}")
        return cart.cart_id

    @staticmethod
    def get_cart_items(db: Session, cart_id: int) -> List[CartItemSchema]:
        """Lấy tất cả items trong cart"""
        rows = db.query(CartItem).filter(CartItem.cart_id == cart_id)\
            .order_by(CartItem.cart_item_id).all()
        return [CartItemSchema.model_validate(row) for row in rows]

    @staticmethod
    def add_or_update_book_in_cart(db: Session, cart_id: int, book_id: int, quantity: int):
        """
        Thêm book vào cart. Nếu (cart_id, book_id) đã tồn tại thì cộng dồn quantity.
        """
        dialect = db.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise NotImplementedError(f"Cart upsert is not supported on {dialect}")

        stmt = insert(CartItem).values(cart_id=cart_id, book_id=book_id, quantity=quantity)
        stmt = stmt.on_conflict_do_update(
            index_elements=[CartItem.cart_id, CartItem.book_id],
            set_={"quantity": CartItem.quantity + stmt.excluded.quantity},
        )
        db.execute(stmt)
        db.commit()

    @staticmethod
    def update_book_quantity(db: Session, cart_id: int, book_id: int, quantity: int):
        """Ghi đè quantity của một book trong cart"""
        db.execute(
            update(CartItem)
            .where(CartItem.cart_id == cart_id, CartItem.book_id == book_id)
            .values(quantity=quantity)
        )
        db.commit()

    @staticmethod
    def remove_book_from_cart(db: Session, cart_id: int, book_id: int):
        """Xóa một book khỏi cart"""
        db.execute(
            delete(CartItem).where(CartItem.cart_id == cart_id, CartItem.book_id == book_id)
        )
        db.commit()

    @staticmethod
    def remove_books_from_cart(db: Session, cart_id: int, book_ids: Iterable[int]):
        """Xóa nhiều books khỏi cart trong một lần commit"""
        book_ids = list(book_ids)
        if not book_ids:
            return
        db.execute(
            delete(CartItem).where(CartItem.cart_id == cart_id, CartItem.book_id.in_(book_ids))
        )
        db.commit()

    @staticmethod
    def load_shopping_cart(db: Session, user_id: int) -> ShoppingCart:
        """Dựng ShoppingCart từ cart active của user"""
        cart_id = CartService.get_or_create_cart(db, user_id)
        items = CartService.get_cart_items(db, cart_id)

        books = {
            book.id: BookSchema.model_validate(book)
            for book in BookService.find_books_by_ids(db, [item.book_id for item in items])
        }

        shopping_cart = ShoppingCart(user_id, cart_id)
        for item in items:
            book = books.get(item.book_id)
            if book is None or item.quantity <= 0:
                logger.warning(f"Skipping stale cart row: cart {cart_id}, book {item.book_id}")
                continue
            shopping_cart.add_book(book, item.quantity)
        return shopping_cart
